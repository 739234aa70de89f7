from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Context, Decimal
from typing import Any

from portfolio_api.models.homelab import RowStatus, RuntimeRow
from portfolio_api.services.lookup import pick_number, pick_string, to_number

# Checked in order; the first group with a matching substring wins.
STATUS_KEYWORDS: tuple[tuple[RowStatus, tuple[str, ...]], ...] = (
    ("running", ("running", "up", "healthy", "active")),
    ("degraded", ("degraded", "warning", "unhealthy", "error")),
    ("pending", ("pending", "starting", "init", "create")),
    ("exited", ("exit", "stopped", "dead", "inactive")),
)

# Memory readings above this are raw bytes, anything else is already MiB.
RAW_BYTES_THRESHOLD = 10_000

# Wide enough to quantize any finite float exactly.
EXACT_DECIMAL = Context(prec=400)

CPU_PATHS = ("cpu", "cpu_percent", "stats.cpu", "info.cpu")
MEMORY_PATHS = ("memory", "mem", "memory_usage", "stats.memory", "info.memory")
UPTIME_TEXT_PATHS = ("uptime", "running_for", "started")
UPTIME_SECONDS_PATHS = ("uptime_seconds",)


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def normalize_status(value: Any) -> RowStatus:
    status = str(value or "").lower()
    for name, keywords in STATUS_KEYWORDS:
        if any(keyword in status for keyword in keywords):
            return name
    return "running"


def format_percent(value: Any, fallback: str = "0.0%") -> str:
    parsed = to_number(value)
    if parsed is None:
        return fallback
    tenths = Decimal(max(0.0, parsed)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP, context=EXACT_DECIMAL)
    return f"{tenths}%"


def format_memory(value: Any, fallback: str = "n/a") -> str:
    parsed = to_number(value)
    if parsed is None:
        return value if isinstance(value, str) else fallback
    if parsed <= 0:
        return "0MiB"
    mib = parsed / (1024 * 1024) if parsed > RAW_BYTES_THRESHOLD else parsed
    return f"{round_half_up(mib)}MiB"


def format_uptime(value: Any) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    seconds = to_number(value)
    if seconds is None or seconds < 0:
        return "n/a"
    days = int(seconds // 86400)
    hours = int((seconds % 86400) // 3600)
    if days > 0:
        return f"{days}d {hours}h"
    minutes = int((seconds % 3600) // 60)
    return f"{hours}h {minutes}m"


def _uptime(raw: dict[str, Any]) -> str:
    return format_uptime(pick_string(raw, UPTIME_TEXT_PATHS) or pick_number(raw, UPTIME_SECONDS_PATHS))


def normalize_container_row(raw: dict[str, Any]) -> RuntimeRow:
    return RuntimeRow(
        type="containers",
        name=pick_string(raw, ("name", "container", "container_name"), "unknown-container"),
        image=pick_string(raw, ("image", "image_name", "container_image"), "n/a"),
        status=normalize_status(pick_string(raw, ("status", "state", "container_status", "info.status"), "running")),
        cpu=format_percent(pick_number(raw, CPU_PATHS)),
        memory=format_memory(pick_number(raw, MEMORY_PATHS)),
        uptime=_uptime(raw),
    )


def normalize_pod_row(raw: dict[str, Any]) -> RuntimeRow:
    containers = pick_number(raw, ("containers", "container_count", "stats.containers"))
    return RuntimeRow(
        type="pods",
        name=pick_string(raw, ("name", "pod", "pod_name"), "unknown-pod"),
        containers=max(0, round_half_up(containers if containers is not None else 0)),
        status=normalize_status(pick_string(raw, ("status", "state", "pod_status", "info.status"), "running")),
        cpu=format_percent(pick_number(raw, CPU_PATHS)),
        memory=format_memory(pick_number(raw, MEMORY_PATHS)),
        uptime=_uptime(raw),
    )
