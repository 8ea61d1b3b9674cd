"""Extraction and analysis on an OpenAI-compatible chat API."""

import io
import json
from pathlib import Path

import httpx
import openai
import pdfplumber

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
from app.processing.prompt_loader import load_prompt

CSV_MIME_TYPE = "text/csv"


class OpenAIProcessingAdapter(BaseProcessingAdapter):
    """Reads contract text with pdfplumber and asks a chat model for structured output."""

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        timeout_seconds: int,
        base_url: str | None = None,
        temperature: float = 0.0,
        prompt_dir: Path | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        # One provider call per transition attempt.
        self._client = openai.OpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            base_url=base_url,
            max_retries=0,
            http_client=http_client,
        )
        self._model = model
        self._temperature = max(0.0, min(0.2, temperature))
        self._extraction_prompt = load_prompt("extraction_prompt.txt", prompt_dir)
        self._extraction_schema = load_prompt("extraction_schema.json", prompt_dir)
        self._analysis_prompt = load_prompt("analysis_prompt.txt", prompt_dir)
        self._analysis_schema = load_prompt("analysis_schema.json", prompt_dir)

    def extract(self, document: ContractDocument) -> ExtractionResult:
        text = self._pdf_text(document.content)
        prompt = self._extraction_prompt.format(
            json_schema=self._extraction_schema,
            contract_text=text,
        )
        content = self._complete(prompt, "extraction_result", self._extraction_schema)
        return build_extraction(content)

    def analyze(
        self, extraction: ExtractionResult, data_document: DataDocument
    ) -> AnalysisResult:
        if data_document.mime_type != CSV_MIME_TYPE:
            raise UpstreamRejected(
                f"Provider only analyzes CSV data, got {data_document.mime_type}"
            )
        prompt = self._analysis_prompt.format(
            json_schema=self._analysis_schema,
            document_name=extraction.document_name,
            terms="\n".join(f"- {term}" for term in extraction.terms),
            products="\n".join(f"- {product}" for product in extraction.products),
            data_filename=data_document.filename,
            data_text=data_document.content.decode("utf-8", errors="replace"),
        )
        content = self._complete(prompt, "analysis_result", self._analysis_schema)
        return build_analysis(content)

    @staticmethod
    def _pdf_text(pdf_bytes: bytes) -> str:
        try:
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                pages = [page.extract_text() or "" for page in pdf.pages]
        except Exception as exc:
            raise UpstreamRejected(f"Contract PDF could not be read: {exc}") from exc
        text = "\n".join(pages).strip()
        if not text:
            raise UpstreamRejected("Contract PDF contains no extractable text")
        return text

    def _complete(self, prompt: str, schema_name: str, schema: str) -> str:
        Log.debug("Processing prompt", schema=schema_name, chars=len(prompt))
        try:
            response = self._client.chat.completions.create(
                model=self._model,
                temperature=self._temperature,
                response_format={
                    "type": "json_schema",
                    "json_schema": {
                        "name": schema_name,
                        "strict": True,
                        "schema": json.loads(schema),
                    },
                },
                messages=[{"role": "user", "content": prompt}],
            )
        except (openai.APITimeoutError, httpx.TimeoutException) as exc:
            raise UpstreamTimeout(f"AI provider timed out: {exc}") from exc
        except (openai.APIConnectionError, httpx.ConnectError) as exc:
            raise UpstreamUnavailable(f"AI provider network error: {exc}") from exc
        except openai.APIStatusError as exc:
            if exc.status_code < 500:
                raise UpstreamRejected(
                    f"AI provider rejected request ({exc.status_code}): {exc}"
                ) from exc
            raise UpstreamUnavailable(
                f"AI provider failed ({exc.status_code}): {exc}"
            ) from exc
        except openai.APIError as exc:
            raise UpstreamUnavailable(f"AI provider API error: {exc}") from exc

        if not response.choices:
            raise UpstreamUnavailable("AI returned no choices")
        return response.choices[0].message.content or ""
