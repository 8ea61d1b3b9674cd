from abc import ABC, abstractmethod

from app.processing.models import (
    AnalysisResult,
    ContractDocument,
    DataDocument,
    ExtractionResult,
)


class BaseProcessingAdapter(ABC):
    """Contract for all external extraction/analysis providers."""

    @abstractmethod
    def extract(self, document: ContractDocument) -> ExtractionResult:
        """Run structured extraction over a contract file.

        Args:
            document: The contract upload with its bytes.

        Returns:
            ExtractionResult with document name, status, terms and products.

        Raises:
            UpstreamError: on any provider failure. Never retried here.
        """

    @abstractmethod
    def analyze(
        self, extraction: ExtractionResult, data_document: DataDocument
    ) -> AnalysisResult:
        """Run the analysis stage over a completed extraction and the data file.

        Raises:
            UpstreamError: on any provider failure. Never retried here.
        """

    def test_connection(self) -> bool:
        """Cheap reachability probe. Providers without one report reachable."""
        return True
