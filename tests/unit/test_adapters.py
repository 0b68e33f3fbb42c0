"""
Unit tests for the Gemini embedding and ChromaDB adapters.

Both SDK clients are replaced with mocks; no network access.
"""
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import numpy as np
import pytest

from pdf_ingest.engine.gemini_embedding import GeminiDocumentEmbeddings
from pdf_ingest.repositories.vector_store_repository import ChromaCollectionStore


def embed_response(values):
    return SimpleNamespace(embeddings=[SimpleNamespace(values=values)] if values is not None else [])


@pytest.fixture
def embeddings():
    instance = GeminiDocumentEmbeddings(api_key="test-key", dimensions=768, max_chars=50)
    instance._client = MagicMock()
    instance._client.aio.models.embed_content = AsyncMock(return_value=embed_response([3.0, 4.0]))
    return instance


class TestGeminiDocumentEmbeddings:

    @pytest.mark.asyncio
    async def test_vector_is_l2_normalized(self, embeddings):
        vector = await embeddings.embed("Some document text")

        assert vector == pytest.approx([0.6, 0.8])
        assert np.linalg.norm(vector) == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_request_uses_document_task_and_dimensions(self, embeddings):
        await embeddings.embed("line one\nline two")

        kwargs = embeddings._client.aio.models.embed_content.await_args.kwargs
        assert kwargs["contents"] == "line one line two"
        assert kwargs["config"].task_type == "RETRIEVAL_DOCUMENT"
        assert kwargs["config"].output_dimensionality == 768

    @pytest.mark.asyncio
    async def test_input_truncated(self, embeddings):
        await embeddings.embed("x" * 200)

        kwargs = embeddings._client.aio.models.embed_content.await_args.kwargs
        assert kwargs["contents"] == "x" * 50

    @pytest.mark.asyncio
    async def test_empty_response_returns_empty_vector(self, embeddings):
        embeddings._client.aio.models.embed_content.return_value = embed_response(None)

        assert await embeddings.embed("text") == []

    @pytest.mark.asyncio
    async def test_api_errors_propagate(self, embeddings, http_error):
        embeddings._client.aio.models.embed_content.side_effect = http_error(503)

        with pytest.raises(Exception) as exc_info:
            await embeddings.embed("text")
        assert exc_info.value.status_code == 503


class TestChromaCollectionStore:

    @pytest.mark.asyncio
    async def test_get_or_create_and_add(self):
        client = MagicMock()
        collection = MagicMock()
        collection.name = "manuals"
        client.get_or_create_collection.return_value = collection
        store = ChromaCollectionStore(host="chroma", port=8000, client=client)

        handle = await store.get_or_create("manuals")
        await handle.add(
            ids=["doc-1"],
            embeddings=[[0.6, 0.8]],
            documents=["text"],
            metadatas=[{"filename": "a.pdf"}],
        )

        client.get_or_create_collection.assert_called_once_with(name="manuals")
        collection.add.assert_called_once_with(
            ids=["doc-1"],
            embeddings=[[0.6, 0.8]],
            documents=["text"],
            metadatas=[{"filename": "a.pdf"}],
        )
        assert handle.name == "manuals"

    @pytest.mark.asyncio
    async def test_query(self):
        client = MagicMock()
        collection = client.get_or_create_collection.return_value
        collection.query.return_value = {"ids": [["doc-1"]]}
        store = ChromaCollectionStore(client=client)

        handle = await store.get_or_create("manuals")
        result = await handle.query([[0.6, 0.8]], n_results=1)

        assert result == {"ids": [["doc-1"]]}
        collection.query.assert_called_once_with(query_embeddings=[[0.6, 0.8]], n_results=1)

    def test_availability_from_heartbeat(self):
        client = MagicMock()
        assert ChromaCollectionStore(client=client).is_available() is True

        client.heartbeat.side_effect = ConnectionError("refused")
        assert ChromaCollectionStore(client=client).is_available() is False
