"""Abstract base class for document analysis providers.

A provider turns an invoice image into zero or more field bags, one per
document found in the image. Field bags hold plain Python values so the
reconciler never sees SDK types.

Based on Strategy Pattern:
https://refactoring.guru/design-patterns/strategy/python
"""

from abc import ABC, abstractmethod

from invoice_processor.reconcile.fields import RawFieldBag
from invoice_processor.shared.config import Settings


class AnalysisProvider(ABC):
    """Abstract base class for invoice analysis providers.

    Implementations raise AnalysisFailure when the service call fails.
    """

    def __init__(self, settings: Settings) -> None:
        """Initialize provider with settings.

        Args:
            settings: Application settings
        """
        self.settings = settings

    @abstractmethod
    async def analyze_document(self, data: bytes) -> list[RawFieldBag]:
        """Analyze image bytes.

        Args:
            data: Raw image or PDF bytes

        Returns:
            One field bag per analyzed document
        """

    @abstractmethod
    async def analyze_document_from_url(self, url: str) -> list[RawFieldBag]:
        """Analyze a document the service fetches itself.

        Args:
            url: Publicly reachable document URL

        Returns:
            One field bag per analyzed document
        """

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this provider is configured (endpoint, credentials)."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Get provider name for logging/metrics."""
