from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, File, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from purepdf_backend import __version__
from purepdf_backend.config import Settings, configure_logging, load_settings
from purepdf_backend.errors import InternalFault, NoFileUploaded, PurePdfError, unexpected_error_message
from purepdf_backend.pipeline import ConversionPipeline
from purepdf_backend.render import ChromiumRenderer
from purepdf_backend.responses import CleanupFileResponse
from purepdf_backend.storage import StoragePaths, ensure_storage_dirs, remove_files, sweep_storage
from purepdf_backend.upload import UploadedDocument, receive_upload


logger = logging.getLogger("purepdf.server")

HEALTH_MESSAGE = "PUREPDF Backend Server is running!"


class HealthResponse(BaseModel):
    status: str
    message: str
    timestamp: str


class ErrorResponse(BaseModel):
    message: str


def _utc_timestamp() -> str:
    # UTC, millisecond precision, Z suffix: 2024-01-01T12:00:00.000Z
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def create_app(settings: Optional[Settings] = None, pipeline: Optional[ConversionPipeline] = None) -> FastAPI:
    settings = settings or load_settings()
    storage = StoragePaths.from_settings(settings)
    ensure_storage_dirs(storage)
    pipeline = pipeline or ConversionPipeline(ChromiumRenderer.from_settings(settings))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        ensure_storage_dirs(storage)
        # Anything left here belongs to requests of a previous process.
        stale = sweep_storage(storage)
        if stale:
            logger.info("Removed %d stale temporary files", stale)
        logger.info("PUREPDF Backend Server is listening on port %d", settings.port)
        logger.info("Upload directory: %s", storage.upload_dir)
        logger.info("Files directory: %s", storage.files_dir)
        yield

    app = FastAPI(title="PUREPDF Backend", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.storage = storage
    app.state.pipeline = pipeline

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(PurePdfError)
    async def _purepdf_error(request: Request, exc: PurePdfError) -> JSONResponse:
        return JSONResponse(exc.to_payload(settings.expose_error_details), status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        # Only the multipart `file` field is validated; a non-file value counts as no file.
        err = NoFileUploaded()
        return JSONResponse(err.to_payload(settings.expose_error_details), status_code=err.status_code)

    @app.exception_handler(Exception)
    async def _unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled error", exc_info=exc)
        return JSONResponse(
            {"message": unexpected_error_message(exc, settings.expose_error_details)},
            status_code=500,
        )

    @app.post(
        "/convertFile",
        responses={
            200: {"content": {"application/pdf": {}}, "description": "The converted PDF"},
            400: {"model": ErrorResponse},
            500: {"model": ErrorResponse},
            503: {"model": ErrorResponse},
        },
    )
    async def convert_file(request: Request, file: Optional[UploadFile] = File(None)) -> Response:
        """Convert an uploaded .doc/.docx to PDF and return it as an attachment."""
        document: Optional[UploadedDocument] = None
        try:
            document = await receive_upload(file, storage, settings.max_upload_bytes)
            output = await request.app.state.pipeline.convert(document, storage)
        except PurePdfError:
            if document is not None:
                remove_files([document.stored_path])
            raise
        except Exception as e:
            logger.exception("Server error")
            if document is not None:
                remove_files([document.stored_path])
            raise InternalFault(str(e)) from e

        return CleanupFileResponse(
            output.path,
            filename=output.download_filename,
            media_type=output.media_type,
            cleanup_paths=[document.stored_path],
            cleanup_delay=settings.cleanup_delay_seconds,
        )

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="OK", message=HEALTH_MESSAGE, timestamp=_utc_timestamp())

    return app


_settings = load_settings()
configure_logging(_settings.log_level)
app = create_app(_settings)


if __name__ == "__main__":
    # Convenience: python server.py
    import uvicorn

    uvicorn.run("server:app", host=_settings.host, port=_settings.port, reload=False)
