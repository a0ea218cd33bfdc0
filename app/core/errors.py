"""Exception hierarchy for the resolver and relay pipeline.

Routes catch these, log the detail server-side and answer with a fixed,
localized message. Anything a route lets through is answered by the
application handler with the class status_code. Only InvalidInput carries a
message meant for the client; other details never reach it.

RelayAPIError
├── InvalidInput
├── ResolutionError
│   ├── ResolutionFailed
│   └── MalformedUpstreamResponse
├── UpstreamUnreachable
└── TruncatedRelay
"""


class RelayAPIError(Exception):
    """Base class for all pipeline errors"""
    status_code: int = 500


class InvalidInput(RelayAPIError):
    """Missing or non-string URL in a request body or query"""
    status_code = 400


class ResolutionError(RelayAPIError):
    """Metadata resolution did not produce a usable descriptor"""


class ResolutionFailed(ResolutionError):
    """The metadata tool invocation errored (process, network, unsupported site)"""


class MalformedUpstreamResponse(ResolutionError):
    """The metadata tool answered with a structurally invalid payload"""


class UpstreamUnreachable(RelayAPIError):
    """The relay fetch failed before response headers were received"""


class TruncatedRelay(RelayAPIError):
    """The upstream connection dropped after headers were sent to the client.

    No corrected status can be sent at this point; the connection is aborted
    and the client observes an incomplete body.
    """
