from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

RowStatus = Literal["running", "degraded", "pending", "exited"]
RowType = Literal["containers", "pods"]


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)


class RuntimeRow(_Frozen):
    type: RowType
    name: str
    status: RowStatus
    cpu: str
    memory: str
    uptime: str
    image: str | None = None
    containers: int | None = None


class Summary(_Frozen):
    hosts: int
    containers: int
    pods: int
    alerts: int


class Metrics(_Frozen):
    cpu: int
    memory: int
    disk: int
    thermal: int


class SystemDetails(_Frozen):
    name: str
    status: RowStatus
    host: str | None = None
    uptime: str | None = None
    hostname: str | None = None
    kernel: str | None = None
    cpu_model: str | None = None
    cores: int | None = None
    threads: int | None = None
    agent_version: str | None = None


class HomelabSnapshot(_Frozen):
    source: Literal["beszel", "mock"]
    synced_at: str
    summary: Summary
    metrics: Metrics
    rows: tuple[RuntimeRow, ...]
    system: SystemDetails | None = None

    def to_json(self) -> dict[str, Any]:
        data = self.model_dump(by_alias=True, exclude={"rows", "system"})
        # image only applies to containers, containers only to pods
        data["rows"] = [row.model_dump(by_alias=True, exclude_none=True) for row in self.rows]
        if self.system is not None:
            data["system"] = self.system.model_dump(by_alias=True)
        return data
