"""Example processing adapter.

Use this module as a reference when implementing new providers.
Implement BaseProcessingAdapter and register the provider in
ProcessingAdapterFactory.
"""

from typing import ClassVar

from app.processing.base import BaseProcessingAdapter
from app.processing.models import (
    AnalysisResult,
    ContractDocument,
    DataDocument,
    ExtractionResult,
)
from app.processing.payloads import build_analysis, build_extraction


class ExampleProcessingAdapter(BaseProcessingAdapter):
    """Returns fixed payloads without network calls.

    Responses pass through the same payload builders as real providers.
    """

    EXTRACTION_RESPONSE: ClassVar[dict[str, object]] = {
        "documentName": "Example Supply Agreement",
        "status": "completed",
        "terms": ["Net 30 payment", "2% volume rebate above 10,000 units"],
        "products": ["Widget A", "Widget B"],
    }

    ANALYSIS_RESPONSE: ClassVar[dict[str, object]] = {
        "summary": "Transactions comply with the contract terms.",
        "analysis_markdown": "# Analysis\n\nTransactions comply with the contract terms.",
    }

    def extract(self, document: ContractDocument) -> ExtractionResult:
        _ = document
        return build_extraction(dict(self.EXTRACTION_RESPONSE))

    def analyze(
        self, extraction: ExtractionResult, data_document: DataDocument
    ) -> AnalysisResult:
        _ = extraction, data_document
        return build_analysis(dict(self.ANALYSIS_RESPONSE))
