"""Term-frequency relevance ranking for when no vectors are available."""
import string
from typing import List, Sequence

from citeqa.models.document import Chunk, RetrievedChunk


def query_terms(query: str, min_length: int = 3) -> List[str]:
    """Lower-cased whitespace tokens, edge punctuation removed, of at least min_length characters."""
    terms = (token.strip(string.punctuation) for token in query.lower().split())
    return [term for term in terms if len(term) >= min_length]


def score_chunks(chunks: Sequence[Chunk], query: str, limit: int = 5) -> List[RetrievedChunk]:
    """
    Rank chunks by raw occurrence counts of the query terms.

    A term that appears three times in a chunk contributes three. Chunks with
    no occurrences are dropped.

    Args:
        chunks: Chunks to score
        query: Question text
        limit: Maximum number of results

    Returns:
        Chunks with their counts (as ``similarity``), highest first; ties keep chunk order
    """
    terms = query_terms(query)
    if not terms or limit <= 0:
        return []

    scored = []
    for chunk in chunks:
        lowered = chunk.text.lower()
        count = sum(lowered.count(term) for term in terms)
        if count > 0:
            scored.append(RetrievedChunk(chunk=chunk, similarity=float(count), method="keyword"))

    scored.sort(key=lambda item: item.similarity, reverse=True)
    return scored[:limit]
