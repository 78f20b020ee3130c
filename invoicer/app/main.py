"""
FastAPI entrypoint for the invoice engine.

Accepts raw invoice form fields, runs the generation pipeline and returns
the generated DOCX together with an HTML preview. The most recent document
is kept under a fixed name for later download.
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from importlib.metadata import PackageNotFoundError, version

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from invoicer.app.api.invoices import router as invoices_router
from invoicer.app.config import Settings, get_settings
from invoicer.app.coordinator.pipeline import InvoicePipeline
from invoicer.app.errors import InvoicePipelineError, InvoiceValidationError

logger = logging.getLogger("invoicer.main")


def get_app_version() -> str:
    try:
        return version("invoice-engine")
    except PackageNotFoundError:
        return "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Guarantees:
    - Fail-fast startup if configuration is invalid
    - Fail-fast startup if the invoice template is missing
    - One pipeline instance shared by all requests
    """
    try:
        settings = get_settings()
    except Exception:
        logger.exception("invalid_invoicer_configuration")
        raise

    logging.basicConfig(
        level=settings.log_level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    if not settings.template_path.is_file():
        raise RuntimeError(
            f"Invoice template does not exist: {settings.template_path}"
        )

    app.state.pipeline = InvoicePipeline(settings=settings)

    logger.info(
        "invoicer_startup_complete",
        extra={
            "version": get_app_version(),
            "template_path": str(settings.template_path),
            "output_path": str(settings.output_path),
            "strict_preview": settings.strict_preview,
        },
    )

    try:
        yield
    finally:
        logger.info("invoicer_shutdown")


async def pipeline_error_handler(
    request: Request,
    exc: InvoicePipelineError,
) -> JSONResponse:
    """Render terminal pipeline failures as structured error bodies."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.to_payload()},
    )


async def request_validation_error_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Report unparseable or non-object request bodies like field errors."""
    errors = {}
    for error in exc.errors():
        # loc starts with "body"; what follows is a field or a JSON offset
        loc = [str(part) for part in error.get("loc", ())][1:]
        if error.get("type") == "json_invalid":
            loc = []
        errors[".".join(loc) or "__root__"] = error.get("msg", "invalid request")

    invalid = InvoiceValidationError(errors)
    logger.info("invoice_request_rejected", extra={"fields": sorted(errors)})
    return JSONResponse(
        status_code=invalid.status_code,
        content={"error": invalid.to_payload()},
    )


def create_app() -> FastAPI:
    """Application factory for the invoice engine."""
    app = FastAPI(
        title="invoice-engine",
        description="Invoice document generation with inline HTML preview",
        version=get_app_version(),
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        expose_headers=["X-Invoice-Id", "X-Document-Hash"],
    )

    app.add_exception_handler(InvoicePipelineError, pipeline_error_handler)
    app.add_exception_handler(
        RequestValidationError, request_validation_error_handler
    )
    app.include_router(invoices_router, prefix="/invoices")

    @app.get(
        "/health",
        tags=["Monitoring"],
        summary="Service health check",
    )
    def health_check(settings: Settings = Depends(get_settings)) -> JSONResponse:
        """Liveness check. Reports whether the template file is present."""
        return JSONResponse(
            content={
                "status": "ok",
                "service": "invoicer",
                "version": app.version,
                "template_present": settings.template_path.is_file(),
            }
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        "invoicer.app.main:app",
        host=_settings.host,
        port=_settings.port,
        log_level=_settings.log_level.lower(),
    )
