from app.processing.base import BaseProcessingAdapter
from app.processing.factory import ProcessingAdapterFactory

__all__ = ["BaseProcessingAdapter", "ProcessingAdapterFactory"]
