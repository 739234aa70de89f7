from __future__ import annotations


class ProxyError(Exception):
    """Base class for failures inside the API proxies."""


class ConfigurationMissing(ProxyError):
    pass


class UpstreamAuthFailure(ProxyError):
    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class UpstreamRequestFailure(ProxyError):
    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class UpstreamTimeout(ProxyError):
    pass


class PersistenceFailure(ProxyError):
    pass
