from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Protocol

from .errors import ConversionFailed, PurePdfError
from .markup import build_document, extract_markup
from .storage import OUTPUT_EXTENSION, StoragePaths, output_path_for, remove_files
from .upload import UploadedDocument


logger = logging.getLogger(__name__)

PDF_MEDIA_TYPE = "application/pdf"


class Renderer(Protocol):
    def render(self, html: str, output_path: Path) -> Awaitable[Path]:
        """Print `html` to a PDF at `output_path`."""


@dataclass(frozen=True)
class ConversionRequest:
    document: UploadedDocument
    output_path: Path

    @property
    def download_filename(self) -> str:
        # Built from the client's name; the timestamped stored name stays internal.
        return f"{Path(self.document.original_filename).stem}{OUTPUT_EXTENSION}"


@dataclass(frozen=True)
class GeneratedOutput:
    path: Path
    download_filename: str
    media_type: str = PDF_MEDIA_TYPE


class ConversionPipeline:
    """DOCX -> HTML (mammoth) -> styled page -> PDF (Chromium)."""

    def __init__(self, renderer: Renderer, extractor: Callable[[Path], str] = extract_markup) -> None:
        self._renderer = renderer
        self._extractor = extractor

    def plan(self, document: UploadedDocument, storage: StoragePaths) -> ConversionRequest:
        return ConversionRequest(document=document, output_path=output_path_for(storage, document.stored_path))

    async def convert(self, document: UploadedDocument, storage: StoragePaths) -> GeneratedOutput:
        request = self.plan(document, storage)
        logger.info("Converting file: %s", document.original_filename)

        try:
            logger.info("Converting DOCX to HTML...")
            content = await asyncio.to_thread(self._extractor, document.stored_path)
            html = build_document(content)

            logger.info("Converting HTML to PDF...")
            await self._renderer.render(html, request.output_path)
            if not request.output_path.is_file():
                raise RuntimeError("renderer produced no output file")
        except PurePdfError:
            remove_files([request.output_path])
            raise
        except Exception as e:
            logger.exception("Conversion error")
            remove_files([request.output_path])
            raise ConversionFailed(str(e)) from e

        logger.info("File converted successfully: %s", request.output_path.name)
        return GeneratedOutput(path=request.output_path, download_filename=request.download_filename)
