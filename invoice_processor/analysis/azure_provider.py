"""Azure Document Intelligence provider using the prebuilt invoice model.

Uses the async Form Recognizer client. Analysis is a long-running operation
that is awaited to completion; there is no retry.

Based on azure-ai-formrecognizer:
https://learn.microsoft.com/python/api/overview/azure/ai-formrecognizer-readme
"""

import logging
from typing import Any

from azure.ai.formrecognizer.aio import DocumentAnalysisClient
from azure.core.credentials import AzureKeyCredential
from azure.core.exceptions import AzureError

from invoice_processor.analysis.base import AnalysisProvider
from invoice_processor.reconcile.fields import RawFieldBag
from invoice_processor.shared.errors import AnalysisFailure

logger = logging.getLogger(__name__)


def field_value(field: Any) -> Any:
    """Convert an SDK DocumentField to a plain Python value.

    Currency fields become their amount; lists and dictionaries are
    converted recursively. Types without a plain form fall back to the
    field's raw content.
    """
    if field is None or field.value is None:
        return None

    value_type = field.value_type
    if value_type == "currency":
        return field.value.amount
    if value_type == "list":
        return [field_value(entry) for entry in field.value]
    if value_type == "dictionary":
        return {name: field_value(entry) for name, entry in field.value.items()}
    if value_type in ("string", "date", "time", "float", "double", "integer", "boolean"):
        return field.value
    return field.content if field.content is not None else str(field.value)


def document_fields(document: Any) -> RawFieldBag:
    return {name: field_value(field) for name, field in (document.fields or {}).items()}


class AzureAnalysisProvider(AnalysisProvider):
    """Analysis provider backed by Azure Document Intelligence.

    Requires APP_ANALYSIS_ENDPOINT and APP_ANALYSIS_KEY.
    """

    @property
    def provider_name(self) -> str:
        return "azure"

    def is_available(self) -> bool:
        return bool(self.settings.analysis_endpoint and self.settings.analysis_key)

    def _create_client(self) -> DocumentAnalysisClient:
        return DocumentAnalysisClient(
            endpoint=self.settings.analysis_endpoint,
            credential=AzureKeyCredential(self.settings.analysis_key),
        )

    async def analyze_document(self, data: bytes) -> list[RawFieldBag]:
        """Analyze image bytes with the configured prebuilt model."""
        logger.info(f"Analyzing {len(data)} bytes with {self.settings.analysis_model_id}")
        try:
            async with self._create_client() as client:
                poller = await client.begin_analyze_document(
                    self.settings.analysis_model_id, document=data
                )
                result = await poller.result()
        except (AzureError, ValueError) as e:
            raise AnalysisFailure(f"Document analysis failed: {e}") from e

        return self._to_field_bags(result)

    async def analyze_document_from_url(self, url: str) -> list[RawFieldBag]:
        """Analyze a document fetched by the service from ``url``."""
        logger.info(f"Analyzing {url} with {self.settings.analysis_model_id}")
        try:
            async with self._create_client() as client:
                poller = await client.begin_analyze_document_from_url(
                    self.settings.analysis_model_id, document_url=url
                )
                result = await poller.result()
        except (AzureError, ValueError) as e:
            raise AnalysisFailure(f"Document analysis failed: {e}") from e

        return self._to_field_bags(result)

    @staticmethod
    def _to_field_bags(result: Any) -> list[RawFieldBag]:
        documents = result.documents or []
        logger.info(f"Document analysis completed. Found {len(documents)} documents")
        return [document_fields(document) for document in documents]
