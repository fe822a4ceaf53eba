"""Unit tests for InvoiceProcessor orchestration and status recording."""

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from invoice_processor.inventory.service import inventory_collection
from invoice_processor.processing.service import ExtractionJob, InvoiceProcessor
from invoice_processor.processing.status import InvoiceStatusRecorder, invoice_collection
from invoice_processor.reconcile.schema import NormalizedInvoice
from invoice_processor.shared.config import Settings
from invoice_processor.shared.errors import (
    AnalysisFailure,
    InvalidRequest,
    PersistenceFailure,
    UnreachableSource,
)
from invoice_processor.store.memory_store import MemoryDocumentStore

INVOICE_FIELDS: dict[str, Any] = {
    "VendorName": "Snowy Milk Parlour",
    "InvoiceId": "INV-1",
    "InvoiceTotal": 240.0,
    "Items": [
        {
            "Description": "Choco 250 ML (24 Nos)",
            "Quantity": 24,
            "UnitPrice": 10.0,
            "Amount": 240.0,
        }
    ],
}


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, store_backend="memory")


@pytest_asyncio.fixture
async def store(settings: Settings) -> MemoryDocumentStore:
    """Memory store with invoice i1 of tenant t1 already uploaded."""
    store = MemoryDocumentStore(settings)
    await store.set(invoice_collection("t1"), "i1", {"status": "uploaded"})
    return store


@pytest.fixture
def analysis() -> MagicMock:
    """Create mock analysis provider returning one invoice document."""
    provider = MagicMock()
    provider.is_available.return_value = True
    provider.analyze_document = AsyncMock(return_value=[INVOICE_FIELDS])
    provider.analyze_document_from_url = AsyncMock(return_value=[INVOICE_FIELDS])
    return provider


@pytest.fixture
def fetcher() -> MagicMock:
    fetcher = MagicMock()
    fetcher.fetch = AsyncMock(return_value=b"image-bytes")
    return fetcher


@pytest.fixture
def processor(
    settings: Settings, analysis: MagicMock, store: MemoryDocumentStore, fetcher: MagicMock
) -> InvoiceProcessor:
    return InvoiceProcessor(settings, analysis, store, fetcher=fetcher)


def invoice_doc(store: MemoryDocumentStore, tenant_id: str = "t1") -> dict[str, Any]:
    return store.documents(invoice_collection(tenant_id))["i1"]


class TestExtractionJob:
    """Test inbound job parsing."""

    def test_parses_camel_case(self) -> None:
        job = ExtractionJob.model_validate(
            {"tenantId": "t1", "invoiceId": "i1", "imageUrl": "gs://b/x.jpg"}
        )

        assert job.tenant_id == "t1"
        assert job.invoice_id == "i1"
        assert job.image_url == "gs://b/x.jpg"

    def test_missing_fields_default(self) -> None:
        job = ExtractionJob.model_validate({})

        assert job.tenant_id == ""
        assert job.invoice_id is None
        assert job.image_url is None


class TestProcessSuccess:
    """Test the successful processing path."""

    @pytest.mark.asyncio
    async def test_external_url_is_analyzed_directly(
        self,
        processor: InvoiceProcessor,
        analysis: MagicMock,
        fetcher: MagicMock,
        store: MemoryDocumentStore,
    ) -> None:
        job = ExtractionJob(tenant_id="t1", invoice_id="i1", image_url="https://example/doc.pdf")

        invoice = await processor.process(job)

        analysis.analyze_document_from_url.assert_awaited_once_with("https://example/doc.pdf")
        fetcher.fetch.assert_not_awaited()
        assert invoice.customer_name == "Snowy Milk Parlour"
        assert invoice.supplier_name == "Aravindhan Agency"
        assert invoice.net_amount == 240.0

        document = invoice_doc(store)
        assert document["status"] == "completed"
        assert document["extractedData"]["invoiceNumber"] == "INV-1"
        assert "processingStartedAt" in document
        assert "processedAt" in document

    @pytest.mark.asyncio
    async def test_storage_reference_is_downloaded(
        self,
        processor: InvoiceProcessor,
        analysis: MagicMock,
        fetcher: MagicMock,
    ) -> None:
        job = ExtractionJob(tenant_id="t1", invoice_id="i1", image_url="gs://bucket/t1/i1.jpg")

        await processor.process(job)

        fetcher.fetch.assert_awaited_once_with(
            "https://firebasestorage.googleapis.com/v0/b/bucket/o/t1%2Fi1.jpg?alt=media"
        )
        analysis.analyze_document.assert_awaited_once_with(b"image-bytes")
        analysis.analyze_document_from_url.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_items_are_aggregated_into_inventory(
        self, processor: InvoiceProcessor, store: MemoryDocumentStore
    ) -> None:
        job = ExtractionJob(tenant_id="t1", invoice_id="i1", image_url="https://example/doc.pdf")

        await processor.process(job)

        records = list(store.documents(inventory_collection("t1")).values())
        assert len(records) == 1
        assert records[0]["quantity"] == 24
        assert records[0]["itemName"] == "Choco 250 ML"

    @pytest.mark.asyncio
    async def test_missing_invoice_document_skips_inventory(
        self, settings: Settings, analysis: MagicMock, fetcher: MagicMock
    ) -> None:
        """Completion cannot be recorded on a missing document, so items are not counted."""
        store = MemoryDocumentStore(settings)
        processor = InvoiceProcessor(settings, analysis, store, fetcher=fetcher)
        job = ExtractionJob(tenant_id="t1", invoice_id="i1", image_url="https://example/doc.pdf")

        invoice = await processor.process(job)

        assert invoice.invoice_number == "INV-1"
        assert store.documents(inventory_collection("t1")) == {}

    @pytest.mark.asyncio
    async def test_unavailable_store_still_returns_result(
        self, settings: Settings, analysis: MagicMock, fetcher: MagicMock
    ) -> None:
        store = MagicMock()
        store.is_available.return_value = False
        processor = InvoiceProcessor(settings, analysis, store, fetcher=fetcher)
        job = ExtractionJob(tenant_id="t1", invoice_id="i1", image_url="https://example/doc.pdf")

        invoice = await processor.process(job)

        assert invoice.invoice_number == "INV-1"
        store.update.assert_not_called()
        store.set.assert_not_called()


class TestProcessFailures:
    """Test failure paths and status recording."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "job",
        [
            ExtractionJob(tenant_id="t1", image_url="https://example/doc.pdf"),
            ExtractionJob(tenant_id="t1", invoice_id="i1"),
            ExtractionJob(tenant_id="t1", invoice_id="", image_url="https://example/doc.pdf"),
        ],
    )
    async def test_invalid_request(
        self,
        processor: InvoiceProcessor,
        analysis: MagicMock,
        store: MemoryDocumentStore,
        job: ExtractionJob,
    ) -> None:
        with pytest.raises(InvalidRequest, match="ImageUrl and InvoiceId are required"):
            await processor.process(job)

        analysis.analyze_document_from_url.assert_not_awaited()
        assert invoice_doc(store)["status"] == "uploaded"

    @pytest.mark.asyncio
    async def test_analysis_not_configured(
        self, processor: InvoiceProcessor, analysis: MagicMock, store: MemoryDocumentStore
    ) -> None:
        analysis.is_available.return_value = False
        job = ExtractionJob(tenant_id="t1", invoice_id="i1", image_url="https://example/doc.pdf")

        with pytest.raises(AnalysisFailure):
            await processor.process(job)

        document = invoice_doc(store)
        assert document["status"] == "failed"
        assert document["errorMessage"] == "Document analysis not configured"

    @pytest.mark.asyncio
    async def test_analysis_error_marks_failed(
        self, processor: InvoiceProcessor, analysis: MagicMock, store: MemoryDocumentStore
    ) -> None:
        analysis.analyze_document_from_url.side_effect = AnalysisFailure("InvalidImage")
        job = ExtractionJob(tenant_id="t1", invoice_id="i1", image_url="https://example/doc.pdf")

        with pytest.raises(AnalysisFailure):
            await processor.process(job)

        document = invoice_doc(store)
        assert document["status"] == "failed"
        assert document["errorMessage"] == "Processing error: InvalidImage"
        assert store.documents(inventory_collection("t1")) == {}

    @pytest.mark.asyncio
    async def test_unreachable_image_marks_failed(
        self,
        processor: InvoiceProcessor,
        analysis: MagicMock,
        fetcher: MagicMock,
        store: MemoryDocumentStore,
    ) -> None:
        fetcher.fetch.side_effect = UnreachableSource("Cannot access storage URL. Status: 403")
        job = ExtractionJob(tenant_id="t1", invoice_id="i1", image_url="gs://bucket/t1/i1.jpg")

        with pytest.raises(UnreachableSource):
            await processor.process(job)

        analysis.analyze_document.assert_not_awaited()
        assert invoice_doc(store)["errorMessage"].startswith("Processing error: Cannot access")

    @pytest.mark.asyncio
    async def test_malformed_url_marks_failed(
        self, processor: InvoiceProcessor, analysis: MagicMock, store: MemoryDocumentStore
    ) -> None:
        job = ExtractionJob(tenant_id="t1", invoice_id="i1", image_url="https://[bad")

        with pytest.raises(UnreachableSource, match="Invalid image URL"):
            await processor.process(job)

        analysis.analyze_document_from_url.assert_not_awaited()
        document = invoice_doc(store)
        assert document["status"] == "failed"
        assert document["errorMessage"].startswith("Processing error: Invalid image URL")

    @pytest.mark.asyncio
    async def test_unexpected_error_marks_failed(
        self, processor: InvoiceProcessor, analysis: MagicMock, store: MemoryDocumentStore
    ) -> None:
        analysis.analyze_document_from_url.side_effect = RuntimeError("connection reset")
        job = ExtractionJob(tenant_id="t1", invoice_id="i1", image_url="https://example/doc.pdf")

        with pytest.raises(AnalysisFailure, match="connection reset") as exc_info:
            await processor.process(job)

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        document = invoice_doc(store)
        assert document["status"] == "failed"
        assert document["errorMessage"] == "Processing error: connection reset"

    @pytest.mark.asyncio
    async def test_no_documents(
        self, processor: InvoiceProcessor, analysis: MagicMock, store: MemoryDocumentStore
    ) -> None:
        analysis.analyze_document_from_url.return_value = []
        job = ExtractionJob(tenant_id="t1", invoice_id="i1", image_url="https://example/doc.pdf")

        with pytest.raises(AnalysisFailure, match="No documents found in analysis"):
            await processor.process(job)

        assert invoice_doc(store)["errorMessage"] == "No documents found in analysis"

    @pytest.mark.asyncio
    async def test_failed_status_creates_missing_document(
        self, settings: Settings, analysis: MagicMock, fetcher: MagicMock
    ) -> None:
        store = MemoryDocumentStore(settings)
        processor = InvoiceProcessor(settings, analysis, store, fetcher=fetcher)
        analysis.analyze_document_from_url.return_value = []
        job = ExtractionJob(tenant_id="t1", invoice_id="i1", image_url="https://example/doc.pdf")

        with pytest.raises(AnalysisFailure):
            await processor.process(job)

        assert invoice_doc(store)["status"] == "failed"


class TestInvoiceStatusRecorder:
    """Test best-effort status writes."""

    @pytest.mark.asyncio
    async def test_persistence_failure_is_reported_not_raised(self) -> None:
        store = MagicMock()
        store.is_available.return_value = True
        store.update = AsyncMock(side_effect=PersistenceFailure("Firestore unavailable"))
        recorder = InvoiceStatusRecorder(store)

        assert await recorder.mark_processing("t1", "i1") is False

    @pytest.mark.asyncio
    async def test_mark_failed_without_message(self, settings: Settings) -> None:
        store = MemoryDocumentStore(settings)
        recorder = InvoiceStatusRecorder(store)

        assert await recorder.mark_failed("t1", "i1", "") is True

        assert "errorMessage" not in invoice_doc(store)

    @pytest.mark.asyncio
    async def test_mark_completed_stores_camel_case_result(self, settings: Settings) -> None:
        store = MemoryDocumentStore(settings)
        await store.set(invoice_collection("t1"), "i1", {"status": "processing"})
        recorder = InvoiceStatusRecorder(store)
        invoice = NormalizedInvoice(supplier_name="A", customer_name="B", net_amount=5.0)

        assert await recorder.mark_completed("t1", "i1", invoice) is True

        document = invoice_doc(store)
        assert document["status"] == "completed"
        assert document["extractedData"]["netAmount"] == 5.0
