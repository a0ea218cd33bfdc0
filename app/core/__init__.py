from .errors import (
    InvalidInput,
    MalformedUpstreamResponse,
    RelayAPIError,
    ResolutionError,
    ResolutionFailed,
    TruncatedRelay,
    UpstreamUnreachable,
)

__all__ = [
    "InvalidInput",
    "MalformedUpstreamResponse",
    "RelayAPIError",
    "ResolutionError",
    "ResolutionFailed",
    "TruncatedRelay",
    "UpstreamUnreachable",
]
