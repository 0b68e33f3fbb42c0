"""
Vector Store Repository (ChromaDB).

Collection store used by the ingestion pipeline:
- get_or_create(name) -> collection handle
- handle.add(ids, embeddings, documents, metadatas)
- handle.query(query_embeddings, n_results)

chromadb calls are blocking and run in worker threads.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Protocol

from pdf_ingest.core.config import settings

logger = logging.getLogger(__name__)


class CollectionHandle(Protocol):
    async def add(
        self,
        ids: List[str],
        embeddings: List[List[float]],
        documents: List[str],
        metadatas: List[Dict[str, Any]]
    ) -> None: ...


class CollectionStore(Protocol):
    async def get_or_create(self, name: str) -> CollectionHandle: ...


class ChromaCollectionHandle:
    """Async facade over a chromadb Collection."""

    def __init__(self, collection):
        self._collection = collection

    @property
    def name(self) -> str:
        return self._collection.name

    async def add(
        self,
        ids: List[str],
        embeddings: List[List[float]],
        documents: List[str],
        metadatas: List[Dict[str, Any]]
    ) -> None:
        await asyncio.to_thread(
            self._collection.add,
            ids=ids,
            embeddings=embeddings,
            documents=documents,
            metadatas=metadatas,
        )
        logger.info(f"Added {len(ids)} document(s) to collection {self.name}")

    async def query(self, query_embeddings: List[List[float]], n_results: int = 5) -> Dict[str, Any]:
        return await asyncio.to_thread(
            self._collection.query,
            query_embeddings=query_embeddings,
            n_results=n_results,
        )


class ChromaCollectionStore:
    """
    ChromaDB HTTP client wrapper.

    The client is created on first use so the app can start without a
    running vector store.
    """

    def __init__(self, host: Optional[str] = None, port: Optional[int] = None, client=None):
        self.host = host or settings.chroma_host
        self.port = port or settings.chroma_port
        self._client = client

    @property
    def client(self):
        if self._client is None:
            import chromadb
            self._client = chromadb.HttpClient(host=self.host, port=self.port)
            logger.info(f"Connected ChromaDB client to {self.host}:{self.port}")
        return self._client

    async def get_or_create(self, name: str) -> ChromaCollectionHandle:
        collection = await asyncio.to_thread(self.client.get_or_create_collection, name=name)
        return ChromaCollectionHandle(collection)

    def is_available(self) -> bool:
        try:
            self.client.heartbeat()
            return True
        except Exception as e:
            logger.warning(f"ChromaDB heartbeat failed: {e}")
            return False


_collection_store: Optional[ChromaCollectionStore] = None


def get_collection_store() -> ChromaCollectionStore:
    """Get or create ChromaCollectionStore singleton."""
    global _collection_store
    if _collection_store is None:
        _collection_store = ChromaCollectionStore()
    return _collection_store
