class UpstreamError(Exception):
    """Raised when an external processing call fails."""


class UpstreamTimeout(UpstreamError):
    """Raised when the provider did not answer within the configured timeout."""


class UpstreamRejected(UpstreamError):
    """Raised when the provider refused the request (4xx-equivalent)."""


class UpstreamUnavailable(UpstreamError):
    """Raised on network failures and 5xx-equivalent provider errors."""


class PromptLoadError(Exception):
    """Raised when a bundled prompt or schema file cannot be read."""
