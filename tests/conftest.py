"""Shared test fixtures for the PUREPDF backend."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from purepdf_backend.config import Settings
from purepdf_backend.pipeline import ConversionPipeline
from purepdf_backend.storage import StoragePaths, ensure_storage_dirs


DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
FAKE_PDF = b"%PDF-1.4\n% fake\n%%EOF\n"


class FakeRenderer:
    """Stands in for Chromium: writes a tiny PDF and remembers the HTML it got."""

    def __init__(self, error: Exception | None = None, write_partial: bool = False) -> None:
        self.error = error
        self.write_partial = write_partial
        self.calls: list[tuple[str, Path]] = []

    async def render(self, html: str, output_path: Path) -> Path:
        self.calls.append((html, Path(output_path)))
        if self.write_partial:
            Path(output_path).write_bytes(b"%PDF-1.4\n")
        if self.error is not None:
            raise self.error
        Path(output_path).write_bytes(FAKE_PDF)
        return Path(output_path)


class GatedRenderer(FakeRenderer):
    """Holds every render until `expected` calls are in flight and the test opens the gate."""

    def __init__(self, expected: int = 1) -> None:
        super().__init__()
        self.expected = expected
        self.all_entered = asyncio.Event()
        self.gate = asyncio.Event()

    async def render(self, html: str, output_path: Path) -> Path:
        self.calls.append((html, Path(output_path)))
        if len(self.calls) >= self.expected:
            self.all_entered.set()
        await self.gate.wait()
        Path(output_path).write_bytes(FAKE_PDF)
        return Path(output_path)


def fake_extractor(path: Path) -> str:
    return "<h1>Notes</h1><p>Hello world</p>"


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        upload_dir=tmp_path / "uploads",
        files_dir=tmp_path / "files",
        cleanup_delay_seconds=0,
    )


@pytest.fixture
def storage(settings) -> StoragePaths:
    paths = StoragePaths.from_settings(settings)
    ensure_storage_dirs(paths)
    return paths


@pytest.fixture
def renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture
def make_app(settings):
    from server import create_app

    def _make(pipeline: ConversionPipeline, **overrides):
        return create_app(replace(settings, **overrides), pipeline=pipeline)

    return _make


@pytest.fixture
def make_client(make_app):
    def _make(pipeline: ConversionPipeline, **overrides) -> TestClient:
        return TestClient(make_app(pipeline, **overrides))

    return _make


@pytest.fixture
def client(make_client, renderer) -> TestClient:
    return make_client(ConversionPipeline(renderer, extractor=fake_extractor))


def listing(directory: Path) -> list[str]:
    return sorted(p.name for p in directory.iterdir())
