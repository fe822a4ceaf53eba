"""Invoice processing orchestration.

One job runs start to finish on the calling task:

1. Mark the invoice ``processing``
2. Download the image when it lives in storage, else pass the URL through
3. Analyze with the prebuilt invoice model
4. Reconcile the first document's fields
5. Mark the invoice ``completed`` with the result and aggregate inventory

Analysis and source failures mark the invoice ``failed`` and propagate; any
other error while analyzing is raised as AnalysisFailure after the same
status write.
Persistence failures are logged and never change the outcome.
"""

import logging
import time

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from invoice_processor.analysis.base import AnalysisProvider
from invoice_processor.api import metrics
from invoice_processor.inventory.service import InventoryAggregator
from invoice_processor.processing.source import ImageFetcher, storage_download_url
from invoice_processor.processing.status import InvoiceStatusRecorder
from invoice_processor.reconcile.fields import RawFieldBag
from invoice_processor.reconcile.parties import PartyDirectory
from invoice_processor.reconcile.schema import NormalizedInvoice
from invoice_processor.reconcile.service import reconcile_invoice
from invoice_processor.shared.config import Settings
from invoice_processor.shared.errors import AnalysisFailure, InvalidRequest, UnreachableSource
from invoice_processor.store.base import DocumentStore

logger = logging.getLogger(__name__)


class ExtractionJob(BaseModel):
    """Inbound request to process one invoice image.

    Attributes:
        tenant_id: Tenant owning the invoice
        invoice_id: Invoice document to update
        image_url: Storage reference or URL of the scanned invoice
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    tenant_id: str = ""
    invoice_id: str | None = None
    image_url: str | None = None


class InvoiceProcessor:
    """Runs extraction jobs against the analysis service and document store."""

    def __init__(
        self,
        settings: Settings,
        analysis: AnalysisProvider,
        store: DocumentStore,
        fetcher: ImageFetcher | None = None,
    ) -> None:
        """Initialize processor.

        Args:
            settings: Application settings
            analysis: Document analysis provider
            store: Document store for invoice status and inventory
            fetcher: Image fetcher for storage-hosted images
        """
        self.settings = settings
        self.analysis = analysis
        self.store = store
        self.fetcher = fetcher or ImageFetcher(settings)
        self.directory = PartyDirectory.from_settings(settings)
        self.status = InvoiceStatusRecorder(store)
        self.inventory = InventoryAggregator(
            store, dedupe_invoices=settings.inventory_dedupe_invoices
        )

    async def process(self, job: ExtractionJob) -> NormalizedInvoice:
        """Process one extraction job.

        Args:
            job: Inbound job

        Returns:
            Reconciled invoice

        Raises:
            InvalidRequest: If invoice id or image URL is missing
            UnreachableSource: If a storage-hosted image cannot be fetched
            AnalysisFailure: If analysis is unavailable, fails, or finds no document
        """
        if not job.invoice_id or not job.image_url:
            logger.warning("Invalid request: ImageUrl or InvoiceId is missing")
            metrics.invoices_processed_total.labels(status="invalid").inc()
            raise InvalidRequest("ImageUrl and InvoiceId are required")

        tenant_id, invoice_id = job.tenant_id, job.invoice_id
        logger.info(f"Processing invoice {invoice_id} from tenant {tenant_id}")
        logger.info(f"Image URL: {job.image_url}")

        await self.status.mark_processing(tenant_id, invoice_id)

        if not self.analysis.is_available():
            logger.warning("Document analysis service not configured")
            await self._fail(tenant_id, invoice_id, "Document analysis not configured")
            raise AnalysisFailure("Document analysis not configured")

        try:
            documents = await self._analyze(job.image_url)
        except (UnreachableSource, AnalysisFailure) as e:
            logger.error(f"Document analysis failed for invoice {invoice_id}: {e}")
            await self._fail(tenant_id, invoice_id, f"Processing error: {e}")
            raise
        except Exception as e:
            # Any other error must still leave the invoice in a terminal state
            logger.exception(f"Unexpected error analyzing invoice {invoice_id}: {e}")
            await self._fail(tenant_id, invoice_id, f"Processing error: {e}")
            raise AnalysisFailure(f"Processing error: {e}") from e

        if not documents:
            logger.warning("No documents found in the analysis result")
            await self._fail(tenant_id, invoice_id, "No documents found in analysis")
            raise AnalysisFailure("No documents found in analysis")

        fields = documents[0]
        self._log_fields(fields)

        invoice = reconcile_invoice(fields, self.directory)
        logger.info(f"Extracted data: {invoice.model_dump_json(by_alias=True)}")

        if await self.status.mark_completed(tenant_id, invoice_id, invoice) and invoice.items:
            await self.inventory.record_items(tenant_id, invoice_id, invoice.items)

        metrics.invoices_processed_total.labels(status="completed").inc()
        return invoice

    async def _analyze(self, image_url: str) -> list[RawFieldBag]:
        download_url = storage_download_url(image_url, self.settings)

        start = time.time()
        try:
            if download_url is not None:
                logger.info(f"Processing storage URL as stream: {download_url}")
                data = await self.fetcher.fetch(download_url)
                metrics.image_download_size_bytes.observe(len(data))
                documents = await self.analysis.analyze_document(data)
            else:
                logger.info("Processing URL directly")
                documents = await self.analysis.analyze_document_from_url(image_url)
        except AnalysisFailure:
            metrics.analysis_requests_total.labels(status="failed").inc()
            raise
        finally:
            metrics.analysis_duration_seconds.observe(time.time() - start)

        metrics.analysis_requests_total.labels(status="success" if documents else "empty").inc()
        return documents

    async def _fail(self, tenant_id: str, invoice_id: str, error_message: str) -> None:
        metrics.invoices_processed_total.labels(status="failed").inc()
        await self.status.mark_failed(tenant_id, invoice_id, error_message)

    @staticmethod
    def _log_fields(fields: RawFieldBag) -> None:
        logger.info("=== Available Fields ===")
        for name, value in fields.items():
            logger.info(f"{name}: {value}")
        logger.info("========================")
