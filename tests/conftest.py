"""
Pytest Configuration and Fixtures for PDF Ingestion Service Tests
"""
from typing import Any, Dict, List

import fitz  # PyMuPDF
import pytest
from hypothesis import settings

# Configure Hypothesis profiles
settings.register_profile("ci", max_examples=100, deadline=None)
settings.register_profile("dev", max_examples=50, deadline=5000)
settings.load_profile("dev")


SAMPLE_PARAGRAPH = (
    "Ballast water exchange must be recorded in the ship log together with the "
    "position, the volume exchanged and the method used for the exchange."
)


def build_text_pdf(lines_per_page: List[List[str]]) -> bytes:
    """Create a PDF with one text line per entry, 14pt apart."""
    doc = fitz.open()
    for lines in lines_per_page:
        page = doc.new_page()
        for index, line in enumerate(lines):
            page.insert_text((72, 72 + index * 14), line, fontsize=11)
    data = doc.tobytes()
    doc.close()
    return data


def build_image_only_pdf(page_count: int = 2) -> bytes:
    """Create a PDF whose pages hold only drawings, no text."""
    doc = fitz.open()
    for _ in range(page_count):
        page = doc.new_page()
        page.draw_rect(fitz.Rect(50, 50, 300, 300), color=(0, 0, 0), fill=(0.6, 0.6, 0.6))
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def text_pdf_bytes() -> bytes:
    """Two pages with plenty of extractable text."""
    return build_text_pdf([[SAMPLE_PARAGRAPH[:80], SAMPLE_PARAGRAPH[80:]] * 4] * 2)


@pytest.fixture
def short_text_pdf_bytes() -> bytes:
    return build_text_pdf([["Short note"]])


@pytest.fixture
def image_pdf_bytes() -> bytes:
    return build_image_only_pdf()


class FakeEmbeddings:
    """Embedding provider returning a fixed vector, or raising queued errors first."""

    def __init__(self, vector=None, errors=None):
        self.vector = vector if vector is not None else [0.6, 0.8]
        self.errors = list(errors or [])
        self.calls: List[str] = []

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        if self.errors:
            raise self.errors.pop(0)
        return self.vector


class FakeCollection:
    def __init__(self, name: str):
        self.name = name
        self.added: List[Dict[str, Any]] = []

    async def add(self, ids, embeddings, documents, metadatas) -> None:
        self.added.append({
            "ids": ids,
            "embeddings": embeddings,
            "documents": documents,
            "metadatas": metadatas,
        })


class FakeCollectionStore:
    def __init__(self, available: bool = True):
        self.collections: Dict[str, FakeCollection] = {}
        self.available = available

    async def get_or_create(self, name: str) -> FakeCollection:
        if name not in self.collections:
            self.collections[name] = FakeCollection(name)
        return self.collections[name]

    def is_available(self) -> bool:
        return self.available


class HTTPStatusError(Exception):
    """Client error carrying an HTTP status, like most SDK exceptions."""

    def __init__(self, status_code: int, message: str = ""):
        super().__init__(message or f"HTTP {status_code}")
        self.status_code = status_code


@pytest.fixture
def fake_embeddings() -> FakeEmbeddings:
    return FakeEmbeddings()


@pytest.fixture
def fake_collection_store() -> FakeCollectionStore:
    return FakeCollectionStore()


@pytest.fixture
def make_embeddings():
    """Factory for FakeEmbeddings(vector=None, errors=None)."""
    return FakeEmbeddings


@pytest.fixture
def http_error():
    """Factory for HTTPStatusError(status_code, message="")."""
    return HTTPStatusError


@pytest.fixture
def pdf_builder():
    """Factory building a text PDF from a list of pages of lines."""
    return build_text_pdf
