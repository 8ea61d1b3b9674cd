from typing import Any

import httpx

from app.logging.logger import Log
from app.processing.base import BaseProcessingAdapter
from app.processing.exceptions import (
    UpstreamRejected,
    UpstreamTimeout,
    UpstreamUnavailable,
)
from app.processing.models import (
    AnalysisResult,
    ContractDocument,
    DataDocument,
    ExtractionResult,
)
from app.processing.payloads import build_analysis, build_extraction

PROCESS_DOCUMENT_PATH = "/process/document"
ANALYZE_PATH = "/analyze"


class HttpProcessingAdapter(BaseProcessingAdapter):
    """Calls a remote extraction/analysis service over HTTP.

    The correlation key travels as the ``job`` query parameter; the file is
    sent as multipart ``file``.
    """

    def __init__(
        self,
        *,
        base_url: str,
        timeout_seconds: int,
        username: str = "",
        password: str = "",
        client: httpx.Client | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        auth = httpx.BasicAuth(username, password) if username else None
        self._client = client or httpx.Client(timeout=timeout_seconds, auth=auth)

    def extract(self, document: ContractDocument) -> ExtractionResult:
        payload = self._post(
            PROCESS_DOCUMENT_PATH,
            document.correlation_key,
            files={"file": (document.filename, document.content, document.mime_type)},
        )
        result = build_extraction(payload)
        Log.info(
            "Extraction response normalized",
            job=document.correlation_key,
            terms=len(result.terms),
            products=len(result.products),
        )
        return result

    def analyze(
        self, extraction: ExtractionResult, data_document: DataDocument
    ) -> AnalysisResult:
        payload = self._post(
            ANALYZE_PATH,
            data_document.correlation_key,
            files={
                "file": (
                    data_document.filename,
                    data_document.content,
                    data_document.mime_type,
                )
            },
            data={"document_name": extraction.document_name},
        )
        return build_analysis(payload)

    def test_connection(self) -> bool:
        """Probe the base URL. Any failure counts as unreachable."""
        try:
            response = self._client.get(self._base_url, timeout=5.0)
        except httpx.HTTPError as exc:
            Log.warning("Processing service unreachable", error=exc)
            return False
        return response.status_code == 200

    def _post(self, path: str, job: str, **kwargs: Any) -> Any:
        url = f"{self._base_url}{path}"
        Log.info("Calling processing service", path=path, job=job)
        try:
            response = self._client.post(url, params={"job": job}, **kwargs)
        except httpx.TimeoutException as exc:
            raise UpstreamTimeout(f"{path} timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable(f"{path} network error: {exc}") from exc

        if 400 <= response.status_code < 500:
            raise UpstreamRejected(
                f"{path} rejected with {response.status_code}: {response.text}"
            )
        if response.status_code >= 500:
            raise UpstreamUnavailable(
                f"{path} failed with {response.status_code}: {response.text}"
            )

        try:
            return response.json()
        except ValueError:
            return response.text
