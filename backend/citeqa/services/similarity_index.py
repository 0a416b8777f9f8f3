"""Per-document vector index with cosine-similarity search."""
from typing import Dict, List, Sequence

import numpy as np

from citeqa.models.document import Chunk, RetrievedChunk
from citeqa.services.embedding_service import EMBEDDER_MODEL

DEFAULT_MIN_SIMILARITY = 0.1


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity of two vectors.

    The shorter vector is padded with zeros. Returns 0.0 when either vector
    has zero magnitude; the result is clamped to [-1, 1].
    """
    va = np.asarray(a, dtype=float)
    vb = np.asarray(b, dtype=float)
    if va.size != vb.size:
        size = max(va.size, vb.size)
        va = np.pad(va, (0, size - va.size))
        vb = np.pad(vb, (0, size - vb.size))

    magnitude_a = float(np.linalg.norm(va))
    magnitude_b = float(np.linalg.norm(vb))
    if magnitude_a == 0.0 or magnitude_b == 0.0:
        return 0.0

    similarity = float(np.dot(va, vb)) / (magnitude_a * magnitude_b)
    return max(-1.0, min(1.0, similarity))


class SimilarityIndex:
    """Read-only mapping from chunk index to vector for one document."""

    def __init__(
        self,
        chunks: Sequence[Chunk],
        vectors: Sequence[Sequence[float]],
        embedder: str = EMBEDDER_MODEL,
    ):
        """
        Build the index.

        Args:
            chunks: Document chunks in order
            vectors: One vector per chunk
            embedder: Which embedder produced the vectors; queries must use the same one

        Raises:
            ValueError: If the number of vectors does not match the number of chunks
        """
        if len(chunks) != len(vectors):
            raise ValueError("Number of chunks must match number of vectors")

        self.embedder = embedder
        self._chunks = tuple(chunks)
        self._vectors: Dict[int, tuple] = {
            chunk.chunk_index: tuple(float(value) for value in vector)
            for chunk, vector in zip(chunks, vectors)
        }

    def __len__(self) -> int:
        return len(self._chunks)

    def vector_for(self, chunk_index: int) -> tuple:
        return self._vectors[chunk_index]

    def search(
        self,
        query_vector: Sequence[float],
        top_k: int = 5,
        min_similarity: float = DEFAULT_MIN_SIMILARITY,
    ) -> List[RetrievedChunk]:
        """
        Rank chunks by cosine similarity to the query vector.

        Args:
            query_vector: Query embedding
            top_k: Maximum number of results
            min_similarity: Results must score strictly above this

        Returns:
            Chunks with similarity, highest first; ties keep chunk order
        """
        if top_k <= 0:
            return []

        scored = [
            RetrievedChunk(
                chunk=chunk,
                similarity=cosine_similarity(query_vector, self._vectors[chunk.chunk_index]),
                method="vector",
            )
            for chunk in self._chunks
        ]
        # sorted() is stable, so equal scores stay in chunk order
        ranked = sorted(
            (item for item in scored if item.similarity > min_similarity),
            key=lambda item: item.similarity,
            reverse=True,
        )
        return ranked[:top_k]
