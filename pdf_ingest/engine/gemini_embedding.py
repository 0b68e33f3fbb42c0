"""
Gemini document embeddings for ingested PDFs.

1. Force configured dimensions (Matryoshka Representation Learning)
2. Manual L2 normalization
3. RETRIEVAL_DOCUMENT task type

API errors propagate unchanged so the retry wrapper can classify them by
status code; an empty response yields [] (fails closed).
"""
import logging
from typing import List, Optional

import numpy as np

from pdf_ingest.core.config import settings

logger = logging.getLogger(__name__)


class GeminiDocumentEmbeddings:
    """
    Text -> vector embedding through the Google GenAI async client.

    Usage:
        embeddings = GeminiDocumentEmbeddings()
        vector = await embeddings.embed(text)
    """

    MODEL_NAME = "models/gemini-embedding-001"
    OUTPUT_DIMENSIONS = 768
    TASK_TYPE_DOCUMENT = "RETRIEVAL_DOCUMENT"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: Optional[str] = None,
        dimensions: Optional[int] = None,
        max_chars: Optional[int] = None
    ):
        self._api_key = api_key or settings.google_api_key
        self._model_name = model_name or settings.embedding_model or self.MODEL_NAME
        self._dimensions = dimensions or settings.embedding_dimensions or self.OUTPUT_DIMENSIONS
        self._max_chars = max_chars or settings.embedding_max_chars
        self._client = None

        if not self._api_key:
            logger.warning("Google API key not configured. Embeddings will fail.")

    @property
    def client(self):
        """Lazy initialization of Google GenAI client."""
        if self._client is None:
            from google import genai
            self._client = genai.Client(api_key=self._api_key)
            logger.info(f"Initialized Gemini client with model: {self._model_name}")
        return self._client

    def _normalize(self, vector: List[float]) -> List[float]:
        """L2 normalization, required for MRL dimensions other than 3072."""
        arr = np.array(vector, dtype=np.float32)
        norm = np.linalg.norm(arr)

        if norm > 0:
            return (arr / norm).tolist()
        logger.warning("Zero vector encountered during normalization")
        return list(vector)

    def _prepare(self, text: str) -> str:
        return text.replace("\n", " ")[:self._max_chars]

    async def embed(self, text: str) -> List[float]:
        """Embed a document's text for storage."""
        from google.genai import types

        response = await self.client.aio.models.embed_content(
            model=self._model_name,
            contents=self._prepare(text),
            config=types.EmbedContentConfig(
                task_type=self.TASK_TYPE_DOCUMENT,
                output_dimensionality=self._dimensions
            )
        )

        if not response.embeddings or not response.embeddings[0].values:
            logger.error("Embedding response contained no vector")
            return []

        return self._normalize(response.embeddings[0].values)
