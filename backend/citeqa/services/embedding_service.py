"""Embedding service: Sentence Transformers with a deterministic hash fallback."""
import asyncio
import math
import os
import threading
from typing import Any, List, Optional, Tuple

import numpy as np

from citeqa.exceptions import EmbeddingError
from citeqa.utils.logger import logger
from citeqa.utils.metrics import EMBEDDING_FALLBACKS

EMBEDDING_DIMENSIONS = 384
DEFAULT_MODEL_NAME = "sentence-transformers/all-MiniLM-L6-v2"

EMBEDDER_MODEL = "model"
EMBEDDER_HASH = "hash"


def _token_hash(code_units: List[int]) -> int:
    """31-multiplier rolling hash over UTF-16 code units, wrapped to signed 32 bits."""
    value = 0
    for code in code_units:
        value = (value * 31 + code) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return value


def _utf16_code_units(token: str) -> List[int]:
    data = token.encode("utf-16-le")
    return [data[i] | (data[i + 1] << 8) for i in range(0, len(data), 2)]


def hash_embedding(text: str, dimensions: int = EMBEDDING_DIMENSIONS) -> List[float]:
    """
    Deterministic bag-of-words embedding that needs no model.

    Tokens are the lower-cased whitespace-separated words longer than two
    characters. Each token increments the bucket ``abs(hash) % dimensions``;
    the result is L2-normalised unless every bucket is zero.

    Args:
        text: Text to embed
        dimensions: Vector length

    Returns:
        Embedding vector as a list of floats
    """
    buckets = [0.0] * dimensions
    for token in text.lower().split():
        code_units = _utf16_code_units(token)
        if len(code_units) <= 2:
            continue
        buckets[abs(_token_hash(code_units)) % dimensions] += 1.0

    magnitude = math.sqrt(sum(value * value for value in buckets))
    if magnitude == 0:
        return buckets
    return [value / magnitude for value in buckets]


def _get_model_path() -> Optional[str]:
    """Get local model path if available."""
    local_model_path = os.getenv("EMBEDDING_MODEL_PATH")
    if local_model_path and os.path.isdir(local_model_path):
        return local_model_path
    return None


class EmbeddingService:
    """Service for generating text embeddings.

    The Sentence Transformers model is loaded lazily on first use and called
    in a worker thread under a timeout. Any failure (load error, timeout,
    malformed output) falls back to hash_embedding; callers never see it.
    """

    def __init__(
        self,
        model_name: str = DEFAULT_MODEL_NAME,
        timeout_seconds: float = 30.0,
        use_model: bool = True,
        batch_size: int = 64,
        model: Optional[Any] = None,
        dimensions: int = EMBEDDING_DIMENSIONS,
    ):
        """
        Initialize embedding service (model loaded lazily on first use).

        Args:
            model_name: Name of the sentence transformer model
            timeout_seconds: Upper bound for a single encode call
            use_model: False to always use the hash embedder
            batch_size: Batch size for model encoding
            model: Preloaded model exposing ``encode(texts, ...)``
            dimensions: Length of fallback vectors
        """
        self.model_name = model_name
        self.timeout_seconds = timeout_seconds
        self.use_model = use_model
        self.batch_size = batch_size
        self.dimensions = dimensions
        self._model = model
        self._model_unavailable = False
        self._lock = threading.Lock()
        logger.info(
            f"EmbeddingService initialized (model={model_name if use_model else 'hash fallback only'})"
        )

    def _load_model(self) -> Any:
        """Load the model (thread-safe lazy loading)."""
        if self._model is None:
            with self._lock:
                if self._model is None:
                    try:
                        from sentence_transformers import SentenceTransformer

                        model_path = _get_model_path()
                        logger.info(f"Loading embedding model from {model_path or self.model_name}")
                        self._model = SentenceTransformer(model_path or self.model_name, device="cpu")
                    except Exception as e:
                        self._model_unavailable = True
                        raise EmbeddingError(f"Failed to load embedding model: {str(e)}") from e
                    logger.info("Embedding model loaded successfully")
        return self._model

    def _encode(self, texts: List[str]) -> List[List[float]]:
        """Encode texts with the model and check the shape of what comes back."""
        model = self._load_model()
        embeddings = model.encode(
            texts,
            batch_size=self.batch_size,
            show_progress_bar=False,
            convert_to_numpy=True,
            normalize_embeddings=False,
        )

        matrix = np.asarray(embeddings, dtype=float)
        if matrix.ndim != 2 or matrix.shape[0] != len(texts) or matrix.shape[1] == 0:
            raise EmbeddingError(f"Malformed embedding output with shape {matrix.shape}")
        if not np.isfinite(matrix).all():
            raise EmbeddingError("Embedding output contains non-finite values")

        return matrix.tolist()

    def fallback_embeddings(self, texts: List[str], reason: str) -> List[List[float]]:
        """Hash-embed texts and count the fallback."""
        EMBEDDING_FALLBACKS.labels(reason=reason).inc(len(texts))
        return [hash_embedding(text, self.dimensions) for text in texts]

    async def embed_batch(self, texts: List[str]) -> Tuple[List[List[float]], str]:
        """
        Generate embeddings and report which embedder produced them.

        Vectors from the model and from hash_embedding live in different
        spaces, so callers that store vectors keep the embedder alongside them.

        Args:
            texts: List of text strings to embed

        Returns:
            (one vector per text, EMBEDDER_MODEL or EMBEDDER_HASH)
        """
        if not texts:
            return [], EMBEDDER_MODEL if self.use_model and not self._model_unavailable else EMBEDDER_HASH

        if not self.use_model:
            return self.fallback_embeddings(texts, "disabled"), EMBEDDER_HASH
        if self._model_unavailable:
            return self.fallback_embeddings(texts, "model_unavailable"), EMBEDDER_HASH

        try:
            vectors = await asyncio.wait_for(
                asyncio.to_thread(self._encode, texts), timeout=self.timeout_seconds
            )
            return vectors, EMBEDDER_MODEL
        except asyncio.TimeoutError:
            logger.warning(
                f"Embedding model timed out after {self.timeout_seconds}s, using hash embeddings"
            )
            return self.fallback_embeddings(texts, "timeout"), EMBEDDER_HASH
        except Exception as e:
            logger.warning(f"Embedding model failed, using hash embeddings: {str(e)}", exc_info=True)
            return self.fallback_embeddings(texts, "error"), EMBEDDER_HASH

    async def embed_many(self, texts: List[str]) -> List[List[float]]:
        """
        Generate embeddings for a list of texts.

        Args:
            texts: List of text strings to embed

        Returns:
            One embedding vector per text, in order
        """
        vectors, _ = await self.embed_batch(texts)
        return vectors

    async def embed(self, text: str) -> List[float]:
        """
        Generate embedding for a single text.

        Args:
            text: Text string to embed

        Returns:
            Embedding vector as a list of floats
        """
        return (await self.embed_many([text]))[0]

    async def embed_query(self, text: str, embedder: str) -> Optional[List[float]]:
        """
        Embed a query in the same space as an index built by ``embedder``.

        Hash indexes get a hash query vector directly. For model indexes the
        query must come from the model too; if the model fails for this query
        there is no comparable vector and None is returned.
        """
        if embedder == EMBEDDER_HASH:
            return hash_embedding(text, self.dimensions)

        vectors, query_embedder = await self.embed_batch([text])
        if query_embedder != embedder:
            logger.warning("Query embedded by the fallback cannot be compared with model vectors")
            return None
        return vectors[0]
