from __future__ import annotations

import logging
import secrets
import time
from collections.abc import MutableMapping
from typing import Any

HOMELAB_LOGGER = "portfolio_api.homelab"
SPOTIFY_LOGGER = "portfolio_api.spotify"


def make_request_id() -> str:
    return f"{int(time.time() * 1000):x}-{secrets.token_hex(3)}"


class RequestLogger(logging.LoggerAdapter):
    """Prefixes every record with the id of the request being served."""

    def __init__(self, logger: logging.Logger, request_id: str) -> None:
        super().__init__(logger, {"request_id": request_id})
        self.request_id = request_id

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        extra.setdefault("request_id", self.request_id)
        kwargs["extra"] = extra
        return f"[{self.request_id}] {msg}", kwargs


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
