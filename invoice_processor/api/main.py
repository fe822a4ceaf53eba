"""FastAPI application for invoice processing.

Production-ready API with:
- Health and readiness checks for Kubernetes
- Invoice processing endpoint (analysis, reconciliation, persistence)
- Structured error responses
- Prometheus metrics for monitoring

Based on FastAPI best practices:
https://fastapi.tiangolo.com/
"""

import logging
import time

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from invoice_processor.analysis.azure_provider import AzureAnalysisProvider
from invoice_processor.api import metrics
from invoice_processor.processing.service import ExtractionJob, InvoiceProcessor
from invoice_processor.reconcile.schema import NormalizedInvoice
from invoice_processor.shared.config import get_settings
from invoice_processor.shared.errors import InvalidRequest, InvoiceProcessingError
from invoice_processor.store.factory import create_document_store

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Invoice Processor",
    description="Invoice image analysis, reconciliation and inventory aggregation",
    version=settings.service_version,
)

analysis_provider = AzureAnalysisProvider(settings)
document_store = create_document_store(settings)
processor = InvoiceProcessor(settings, analysis_provider, document_store)

if not analysis_provider.is_available():
    logger.warning("Document analysis credentials not configured")


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):  # type: ignore[no-untyped-def]
    """Middleware to collect request metrics.

    Tracks:
    - Request count by method, endpoint, and status
    - Request duration by method and endpoint
    """
    # Skip metrics for /metrics endpoint itself
    if request.url.path == "/metrics":
        return await call_next(request)

    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time

    metrics.http_requests_total.labels(
        method=request.method,
        endpoint=request.url.path,
        status=response.status_code,
    ).inc()

    metrics.http_request_duration_seconds.labels(
        method=request.method,
        endpoint=request.url.path,
    ).observe(duration)

    return response


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    service: str


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    ready: bool
    analysis_available: bool
    store_available: bool


class ProcessInvoiceResponse(BaseModel):
    """Successful invoice processing response."""

    success: bool
    message: str
    data: NormalizedInvoice


class ErrorResponse(BaseModel):
    """Failed invoice processing response."""

    success: bool = False
    error: str


@app.exception_handler(InvalidRequest)
async def invalid_request_handler(request: Request, exc: InvalidRequest) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponse(error=str(exc)).model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponse(error=f"Invalid request body: {details}").model_dump(),
    )


@app.exception_handler(InvoiceProcessingError)
async def processing_error_handler(request: Request, exc: InvoiceProcessingError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(error=str(exc)).model_dump(),
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unexpected error in {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(error=str(exc)).model_dump(),
    )


@app.get("/health", response_model=HealthResponse, tags=["Health"])
def health_check() -> HealthResponse:
    """Health check endpoint for liveness probe."""
    return HealthResponse(
        status="healthy", version=settings.service_version, service=settings.service_name
    )


@app.get("/ready", response_model=ReadinessResponse, tags=["Health"])
def readiness_check() -> ReadinessResponse:
    """Readiness check endpoint for Kubernetes readiness probe.

    Ready means invoices can be analyzed; persistence is optional.
    """
    analysis_available = processor.analysis.is_available()
    return ReadinessResponse(
        ready=analysis_available,
        analysis_available=analysis_available,
        store_available=processor.store.is_available(),
    )


@app.get("/metrics", tags=["Monitoring"])
def get_metrics() -> Response:
    """Prometheus metrics endpoint."""
    metrics_data, content_type = metrics.get_metrics()
    return Response(content=metrics_data, media_type=content_type)


@app.post(
    "/api/v1/invoices/process",
    response_model=ProcessInvoiceResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    tags=["Invoices"],
)
async def process_invoice(job: ExtractionJob) -> ProcessInvoiceResponse:
    """Analyze an invoice image and reconcile it into the invoice schema.

    ## Usage Example

    ```bash
    curl -X POST "http://localhost:8000/api/v1/invoices/process" \\
      -H "Content-Type: application/json" \\
      -d '{"tenantId": "t1", "invoiceId": "i1", "imageUrl": "gs://bucket/invoices/i1.jpg"}'
    ```

    ## Image Sources

    - `gs://bucket/path` and storage gateway URLs are downloaded and sent as bytes
    - Any other URL is fetched by the analysis service directly

    ## Side Effects

    - `tenants/{tenantId}/invoices/{invoiceId}` moves to `processing`, then
      `completed` (with `extractedData`) or `failed` (with `errorMessage`)
    - Line items are aggregated into `tenants/{tenantId}/inventory`
    - Persistence failures are logged only; the response is unaffected

    ## Error Handling

    - Returns 400 if `invoiceId` or `imageUrl` is missing or the body is malformed
    - Returns 500 if the image is unreachable or analysis fails

    Args:
        job: Tenant, invoice id and image URL

    Returns:
        Reconciled invoice data
    """
    invoice = await processor.process(job)
    return ProcessInvoiceResponse(
        success=True,
        message="Invoice processed successfully",
        data=invoice,
    )
