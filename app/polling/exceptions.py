class PollingError(Exception):
    """Raised when the extraction endpoint answers with a non-retryable error."""

    def __init__(self, status_code: int, body: object) -> None:
        super().__init__(f"Extraction poll failed with {status_code}: {body}")
        self.status_code = status_code
        self.body = body


class PollingTimeoutError(Exception):
    """Raised when the extraction is still not ready after the last attempt."""
