from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ContractDocument:
    """Contract file handed to the extraction stage."""

    correlation_key: str
    upload_id: int
    filename: str
    mime_type: str
    content: bytes


@dataclass(frozen=True)
class DataDocument:
    """Tabular data file handed to the analysis stage."""

    correlation_key: str
    upload_id: int
    filename: str
    mime_type: str
    content: bytes


@dataclass(frozen=True)
class ExtractionResult:
    """Normalized output of the extraction stage."""

    document_name: str
    status: str = ""
    terms: list[str] = field(default_factory=list)
    products: list[str] = field(default_factory=list)
    raw: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "document_name": self.document_name,
            "status": self.status,
            "terms": list(self.terms),
            "products": list(self.products),
            "raw": self.raw,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExtractionResult":
        """Rebuild a stored result. Stored rows were written by ``to_dict``."""
        return cls(
            document_name=str(data.get("document_name") or ""),
            status=str(data.get("status") or ""),
            terms=[str(t) for t in data.get("terms") or []],
            products=[str(p) for p in data.get("products") or []],
            raw=data.get("raw"),
        )


@dataclass(frozen=True)
class AnalysisResult:
    """Normalized output of the analysis stage."""

    summary: str
    markdown_report: str

    def to_dict(self) -> dict[str, Any]:
        return {"summary": self.summary, "markdown_report": self.markdown_report}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AnalysisResult":
        return cls(
            summary=str(data.get("summary") or ""),
            markdown_report=str(data.get("markdown_report") or ""),
        )
