import time
from collections.abc import Callable
from typing import Any

import httpx

from app.config.settings import Settings
from app.logging.logger import Log
from app.polling.exceptions import PollingError, PollingTimeoutError

NOT_READY_CODE = "extraction_not_ready"
USER_HEADER = "X-User-Id"


class ExtractionPoller:
    """Polls the extraction endpoint until the record's extraction is available.

    Only the "not ready" marker is retried; every other error response is
    surfaced at once. Cancellation is cooperative: stop calling and the
    server-side job runs on unobserved.
    """

    def __init__(
        self,
        *,
        base_url: str,
        user_id: int,
        interval_seconds: float,
        max_attempts: int,
        client: httpx.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._user_id = user_id
        self._interval_seconds = interval_seconds
        self._max_attempts = max_attempts
        self._client = client or httpx.Client()
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        base_url: str,
        user_id: int,
        client: httpx.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> "ExtractionPoller":
        """Create a poller paced by the configured interval and attempt budget."""
        return cls(
            base_url=base_url,
            user_id=user_id,
            interval_seconds=settings.poll_interval_seconds,
            max_attempts=settings.poll_max_attempts,
            client=client,
            sleep=sleep,
        )

    def wait_for_extraction(self, record_id: int) -> dict[str, Any]:
        """Return the extraction projection of a record.

        Raises:
            PollingTimeoutError: after ``max_attempts`` not-ready answers.
            PollingError: on any other non-success response.
        """
        url = f"{self._base_url}/api/analysis/{record_id}/contract"
        headers = {USER_HEADER: str(self._user_id)}
        for attempt in range(1, self._max_attempts + 1):
            response = self._client.get(url, headers=headers)
            if response.status_code == 200:
                return response.json()

            body = self._body(response)
            if not self._is_not_ready(response.status_code, body):
                raise PollingError(response.status_code, body)

            Log.debug("Extraction not ready", record_id=record_id, attempt=attempt)
            if attempt < self._max_attempts:
                self._sleep(self._interval_seconds)

        raise PollingTimeoutError(
            f"Extraction for record {record_id} not ready after {self._max_attempts} attempts"
        )

    @staticmethod
    def _body(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return response.text

    @staticmethod
    def _is_not_ready(status_code: int, body: Any) -> bool:
        return status_code == 404 and isinstance(body, dict) and body.get("code") == NOT_READY_CODE
