from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from typing import Any

import httpx

from portfolio_api.errors import UpstreamRequestFailure
from portfolio_api.logs import HOMELAB_LOGGER, RequestLogger, make_request_id
from portfolio_api.models.homelab import HomelabSnapshot, Metrics, RuntimeRow, Summary, SystemDetails
from portfolio_api.services.beszel_client import BeszelClient
from portfolio_api.services.homelab_rows import (
    format_uptime,
    normalize_container_row,
    normalize_pod_row,
    normalize_status,
    round_half_up,
)
from portfolio_api.services.lookup import pick_number, pick_records, pick_string
from portfolio_api.settings import BeszelSettings

log = logging.getLogger(HOMELAB_LOGGER)

CONTAINER_COLLECTIONS = ("containers", "container_stats")
POD_COLLECTIONS = ("pods", "podman_pods")

DEFAULT_METRICS = Metrics(cpu=34, memory=62, disk=48, thermal=57)

MOCK_ROWS: tuple[RuntimeRow, ...] = (
    RuntimeRow(type="containers", name="traefik-edge", image="traefik:v3", status="running",
               cpu="3.8%", memory="142MiB", uptime="12d 04h"),
    RuntimeRow(type="containers", name="gitea-app", image="gitea/gitea:1.23", status="running",
               cpu="8.1%", memory="512MiB", uptime="8d 21h"),
    RuntimeRow(type="containers", name="vaultwarden", image="vaultwarden/server:1.33", status="degraded",
               cpu="21.4%", memory="338MiB", uptime="5d 13h"),
    RuntimeRow(type="containers", name="grafana", image="grafana/grafana:11.1", status="running",
               cpu="5.2%", memory="406MiB", uptime="14d 02h"),
    RuntimeRow(type="containers", name="legacy-registry", image="registry:2", status="exited",
               cpu="0.0%", memory="0MiB", uptime="stopped"),
    RuntimeRow(type="pods", name="edge-stack", containers=3, status="running",
               cpu="9.9%", memory="812MiB", uptime="12d 04h"),
    RuntimeRow(type="pods", name="forge-stack", containers=2, status="running",
               cpu="12.0%", memory="724MiB", uptime="8d 21h"),
    RuntimeRow(type="pods", name="auth-stack", containers=2, status="degraded",
               cpu="24.8%", memory="701MiB", uptime="5d 13h"),
    RuntimeRow(type="pods", name="backup-stack", containers=2, status="pending",
               cpu="1.1%", memory="92MiB", uptime="starting"),
)


def utc_timestamp(now: datetime) -> str:
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_rows(
    systems: Sequence[dict[str, Any]],
    container_records: Sequence[dict[str, Any]],
    pod_records: Sequence[dict[str, Any]],
    log: logging.Logger | logging.LoggerAdapter = log,
) -> tuple[RuntimeRow, ...]:
    containers = [normalize_container_row(raw) for raw in container_records]
    pods = [normalize_pod_row(raw) for raw in pod_records]

    # Older agents only report runtimes inline on the system record.
    if not containers:
        embedded = [raw for system in systems for raw in pick_records(system, ("containers", "info.containers"))]
        containers = [normalize_container_row(raw) for raw in embedded]
        log.info("Using embedded system container data count=%d", len(embedded))
    if not pods:
        embedded = [raw for system in systems for raw in pick_records(system, ("pods", "info.pods"))]
        pods = [normalize_pod_row(raw) for raw in embedded]
        log.info("Using embedded system pod data count=%d", len(embedded))

    return (*containers, *pods)


def select_primary_system(
    systems: Sequence[dict[str, Any]], system_name: str | None = None
) -> dict[str, Any] | None:
    if not systems:
        return None
    if system_name:
        wanted = system_name.strip().lower()
        for system in systems:
            if pick_string(system, ("name",)).lower() == wanted:
                return system
    for system in systems:
        if normalize_status(system.get("status")) == "running":
            return system
    return systems[0]


def build_metrics(primary: dict[str, Any] | None) -> Metrics:
    if primary is None:
        return DEFAULT_METRICS

    def metric(paths: tuple[str, ...], default: int) -> int:
        value = pick_number(primary, paths)
        return default if value is None else round_half_up(value)

    return Metrics(
        cpu=metric(("info.cpu", "cpu", "stats.cpu"), DEFAULT_METRICS.cpu),
        memory=metric(("info.mp", "info.memory", "memory", "stats.memory"), DEFAULT_METRICS.memory),
        disk=metric(("info.dp", "info.disk", "disk", "stats.disk"), DEFAULT_METRICS.disk),
        thermal=metric(("info.temp", "temperature", "stats.temp"), DEFAULT_METRICS.thermal),
    )


def build_system_details(primary: dict[str, Any] | None) -> SystemDetails | None:
    if primary is None:
        return None

    def optional_int(paths: tuple[str, ...]) -> int | None:
        value = pick_number(primary, paths)
        return None if value is None else round_half_up(value)

    uptime = pick_string(primary, ("info.uptime",)) or pick_number(primary, ("info.u", "uptime"))
    return SystemDetails(
        name=pick_string(primary, ("name",), "unknown-system"),
        status=normalize_status(primary.get("status")),
        host=pick_string(primary, ("host",)) or None,
        uptime=format_uptime(uptime) if uptime is not None else None,
        hostname=pick_string(primary, ("info.h", "info.hostname", "hostname")) or None,
        kernel=pick_string(primary, ("info.k", "info.kernel", "kernel")) or None,
        cpu_model=pick_string(primary, ("info.m", "info.cpu_model", "cpu_model")) or None,
        cores=optional_int(("info.c", "info.cores", "cores")),
        threads=optional_int(("info.t", "info.threads", "threads")),
        agent_version=pick_string(primary, ("info.v", "info.agent_version", "version")) or None,
    )


def build_summary(host_count: int, rows: Sequence[RuntimeRow]) -> Summary:
    return Summary(
        hosts=host_count,
        containers=sum(1 for row in rows if row.type == "containers"),
        pods=sum(1 for row in rows if row.type == "pods"),
        alerts=sum(1 for row in rows if row.status in ("degraded", "pending")),
    )


def mock_snapshot(synced_at: str) -> HomelabSnapshot:
    return HomelabSnapshot(
        source="mock",
        synced_at=synced_at,
        summary=build_summary(0, MOCK_ROWS),
        metrics=DEFAULT_METRICS,
        rows=MOCK_ROWS,
    )


class HomelabService:
    def __init__(
        self,
        http: httpx.AsyncClient,
        settings: BeszelSettings,
        *,
        logger: logging.Logger | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._http = http
        self._settings = settings
        self._logger = logger or log
        self._now = now or (lambda: datetime.now(timezone.utc))

    async def build_beszel_snapshot(self, log: logging.Logger | logging.LoggerAdapter) -> HomelabSnapshot:
        log.info("Attempting Beszel snapshot base_url=%s", self._settings.base_url)
        client = BeszelClient(self._http, self._settings, log)
        await client.authenticate()

        systems = await client.fetch_collection("systems")
        if not systems:
            log.warning("Beszel systems collection is empty or unavailable")
            raise UpstreamRequestFailure("No systems from Beszel")
        log.info("Fetched systems from Beszel count=%d", len(systems))

        fetches = [
            asyncio.create_task(client.fetch_first_collection(CONTAINER_COLLECTIONS, "containers")),
            asyncio.create_task(client.fetch_first_collection(POD_COLLECTIONS, "pods")),
        ]
        try:
            containers, pods = await asyncio.gather(*fetches)
        except BaseException:
            for task in fetches:
                task.cancel()
            await asyncio.gather(*fetches, return_exceptions=True)
            raise

        rows = build_rows(systems, containers, pods, log)
        wanted = self._settings.system_name
        primary = select_primary_system(systems, wanted)
        if wanted and pick_string(primary, ("name",)).lower() != wanted.strip().lower():
            log.warning("Configured system not found name=%s; using first running system", wanted)

        summary = build_summary(len(systems), rows)
        if not rows:
            log.warning("Beszel data produced zero runtime rows")
        log.info(
            "Built Beszel snapshot hosts=%d containers=%d pods=%d alerts=%d",
            summary.hosts,
            summary.containers,
            summary.pods,
            summary.alerts,
        )
        return HomelabSnapshot(
            source="beszel",
            synced_at=utc_timestamp(self._now()),
            summary=summary,
            metrics=build_metrics(primary),
            rows=rows,
            system=build_system_details(primary),
        )

    async def snapshot(self, request_id: str | None = None) -> HomelabSnapshot:
        log = RequestLogger(self._logger, request_id or make_request_id())
        try:
            return await self.build_beszel_snapshot(log)
        except Exception as exc:
            log.warning(
                "Falling back to mock homelab snapshot base_url=%s: %s: %s",
                self._settings.base_url,
                type(exc).__name__,
                exc,
            )
            return mock_snapshot(utc_timestamp(self._now()))
