from portfolio_api.models.homelab import HomelabSnapshot, Metrics, RuntimeRow, Summary, SystemDetails
from portfolio_api.models.now_playing import (
    CachedResult,
    EndpointResult,
    NowPlayingPayload,
    TokenStoreRecord,
    TrackInfo,
)

__all__ = [
    "CachedResult",
    "EndpointResult",
    "HomelabSnapshot",
    "Metrics",
    "NowPlayingPayload",
    "RuntimeRow",
    "Summary",
    "SystemDetails",
    "TokenStoreRecord",
    "TrackInfo",
]
