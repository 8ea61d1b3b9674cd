"""Normalization of provider payloads into result models.

Providers answer in several shapes. Each raw payload is first classified into
one tagged variant, then a builder turns every variant (the fallback included)
into a result. Missing or unexpected fields degrade to empty values; nothing
here raises.
"""

import json
from dataclasses import dataclass
from typing import Any

from app.processing.models import AnalysisResult, ExtractionResult

UNKNOWN_DOCUMENT = "Unknown Document"

_ENVELOPE_KEYS = ("data", "result", "payload")

_RESULT_KEYS = frozenset(
    {
        "documentName",
        "document_name",
        "document",
        "terms",
        "products",
        "summary",
        "analysis_markdown",
        "markdownReport",
        "markdown_report",
        "markdown",
    }
)


@dataclass(frozen=True)
class DirectPayload:
    """A JSON object carrying the result fields at top level."""

    fields: dict[str, Any]
    raw: Any


@dataclass(frozen=True)
class EnvelopePayload:
    """A JSON object wrapping the result fields under a single envelope key."""

    envelope_key: str
    fields: dict[str, Any]
    raw: Any


@dataclass(frozen=True)
class UnrecognizedPayload:
    """Anything else: plain text, lists, scalars, null."""

    raw: Any


Payload = DirectPayload | EnvelopePayload | UnrecognizedPayload


def classify_payload(raw: Any) -> Payload:
    """Tag a decoded provider response with its variant."""
    if isinstance(raw, str):
        decoded = _try_json(raw)
        if decoded is None:
            return UnrecognizedPayload(raw=raw)
        raw = decoded
    if not isinstance(raw, dict):
        return UnrecognizedPayload(raw=raw)
    if not _RESULT_KEYS.intersection(raw):
        for key in _ENVELOPE_KEYS:
            inner = raw.get(key)
            if isinstance(inner, dict):
                return EnvelopePayload(envelope_key=key, fields=inner, raw=raw)
    return DirectPayload(fields=raw, raw=raw)


def build_extraction(raw: Any) -> ExtractionResult:
    payload = classify_payload(raw)
    if isinstance(payload, (DirectPayload, EnvelopePayload)):
        fields = payload.fields
        return ExtractionResult(
            document_name=_first_text(fields, "documentName", "document_name", "document")
            or UNKNOWN_DOCUMENT,
            status=_first_text(fields, "status"),
            terms=_text_list(fields.get("terms")),
            products=_text_list(fields.get("products")),
            raw=payload.raw,
        )
    return ExtractionResult(document_name=UNKNOWN_DOCUMENT, raw=payload.raw)


def build_analysis(raw: Any) -> AnalysisResult:
    payload = classify_payload(raw)
    if isinstance(payload, (DirectPayload, EnvelopePayload)):
        fields = payload.fields
        markdown = _first_text(
            fields, "analysis_markdown", "markdownReport", "markdown_report", "markdown"
        )
        summary = _first_text(fields, "summary") or _summary_from_markdown(markdown)
        return AnalysisResult(summary=summary, markdown_report=markdown)
    if isinstance(payload.raw, str):
        # Plain-text analysis bodies are treated as the report itself.
        markdown = payload.raw.strip()
        return AnalysisResult(summary=_summary_from_markdown(markdown), markdown_report=markdown)
    return AnalysisResult(summary="", markdown_report="")


def _try_json(text: str) -> Any:
    cleaned = text.strip()
    if cleaned.startswith("```"):
        lines = cleaned.splitlines()[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        cleaned = "\n".join(lines)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        return None


def _first_text(fields: dict[str, Any], *keys: str) -> str:
    for key in keys:
        value = fields.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def _text_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if not isinstance(value, list):
        return [_item_text(value)]
    return [text for text in (_item_text(item) for item in value) if text]


def _item_text(item: Any) -> str:
    if isinstance(item, str):
        return item.strip()
    if isinstance(item, dict):
        for key in ("name", "term", "text"):
            value = item.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    if item is None:
        return ""
    return json.dumps(item, sort_keys=True, default=str)


def _summary_from_markdown(markdown: str) -> str:
    for line in markdown.splitlines():
        stripped = line.strip().lstrip("#").strip()
        if stripped:
            return stripped
    return ""
