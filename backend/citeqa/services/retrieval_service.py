"""Retrieval service orchestrating the cited-answer pipeline."""
import time
from typing import Any, Dict, List, Optional

from citeqa.config import RetrievalStrategy
from citeqa.models.document import Citation, Document, RetrievedChunk, citations_to_dicts
from citeqa.services.citation_reconciler import (
    ReconcileParams,
    estimate_page,
    extract_cited_excerpts,
    keyword_section_citations,
    reconcile,
)
from citeqa.services.document_store import DocumentStore
from citeqa.services.embedding_service import EmbeddingService
from citeqa.services.keyword_scorer import score_chunks
from citeqa.services.llm_service import LLMService
from citeqa.services.prompts import AnswerPrompt
from citeqa.utils.logger import logger
from citeqa.utils.metrics import CITATIONS_RESOLVED, GENERATION_FAILURES, QUESTIONS_ANSWERED

NOT_FOUND_ANSWER = (
    "**Confidence Level: Low**\n\n"
    "**Answer:**\n"
    "I couldn't find relevant information in the document to answer your question. "
    "The document may not contain the specific information you're looking for.\n\n"
    "**Source Reference:**\n"
    "No relevant sections found in the document.\n\n"
    "**Suggestion:**\n"
    "Try rephrasing your question or asking about topics that are more clearly covered in the document."
)

EMPTY_ANSWER = "No answer could be generated."
SYNTHESIZED_EXCERPT_LENGTH = 300


class RetrievalService:
    """Answers questions about one document with citations into its text."""

    def __init__(
        self,
        store: DocumentStore,
        embedding_service: EmbeddingService,
        llm_service: Optional[LLMService] = None,
        strategy: RetrievalStrategy = RetrievalStrategy.HYBRID,
        top_k: int = 5,
        min_similarity: float = 0.1,
        keyword_top_k: int = 3,
        keyword_fallback_top_k: int = 5,
        reconcile_params: ReconcileParams = ReconcileParams(),
        max_citations: int = 10,
    ):
        """
        Initialize retrieval service.

        Args:
            store: Document store to read documents from
            embedding_service: Embedder for questions
            llm_service: Generation client; None answers from retrieved text only
            strategy: Which retrieval components to use
            top_k: Number of chunks to retrieve by vector search
            min_similarity: Vector results must score above this
            keyword_top_k: Result cap in keyword-only mode
            keyword_fallback_top_k: Result cap when keywords stand in for vectors
            reconcile_params: Fuzzy citation matching parameters
            max_citations: Maximum citations per answer
        """
        self.store = store
        self.embedding_service = embedding_service
        self.llm_service = llm_service
        self.strategy = RetrievalStrategy(strategy)
        self.top_k = top_k
        self.min_similarity = min_similarity
        self.keyword_top_k = keyword_top_k
        self.keyword_fallback_top_k = keyword_fallback_top_k
        self.reconcile_params = reconcile_params
        self.max_citations = max_citations

    async def _vector_search(self, document: Document, question: str, top_k: int) -> List[RetrievedChunk]:
        if document.index is None:
            return []
        query_vector = await self.embedding_service.embed_query(question, document.index.embedder)
        if query_vector is None:
            return []
        return document.index.search(query_vector, top_k=top_k, min_similarity=self.min_similarity)

    async def search(
        self, document_id: str, question: str, top_k: Optional[int] = None
    ) -> List[RetrievedChunk]:
        """
        Vector search over one document.

        Args:
            document_id: Document to search
            question: Query text
            top_k: Maximum number of results (default: configured top_k)

        Returns:
            Chunks with cosine similarity, highest first; empty if the
            document or its index is missing
        """
        document = self.store.get(document_id)
        if document is None:
            return []
        return await self._vector_search(document, question, self.top_k if top_k is None else top_k)

    async def retrieve(self, document: Document, question: str) -> List[RetrievedChunk]:
        """Rank the document's chunks for a question using the configured strategy."""
        if self.strategy is RetrievalStrategy.KEYWORD_ONLY:
            return score_chunks(document.chunks, question, limit=self.keyword_top_k)

        if document.index is None:
            return score_chunks(document.chunks, question, limit=self.keyword_fallback_top_k)

        results = await self._vector_search(document, question, self.top_k)
        if not results and self.strategy is RetrievalStrategy.HYBRID:
            logger.info(
                "No vector matches above threshold, falling back to keyword scoring",
                extra={"document_id": document.document_id},
            )
            return score_chunks(document.chunks, question, limit=self.keyword_fallback_top_k)
        return results

    def _retrieval_citations(self, document: Document, relevant: List[RetrievedChunk]) -> List[Citation]:
        """Cite the retrieved chunks themselves, scored relative to the best match."""
        top = relevant[0].similarity
        citations = []
        for item in relevant:
            if item.method == "keyword":
                confidence = item.similarity / top if top > 0 else 0.0
            else:
                confidence = max(0.0, min(1.0, item.similarity))
            citations.append(
                Citation(
                    text=item.chunk.text,
                    start=item.chunk.start,
                    end=item.chunk.end,
                    score=confidence,
                    similarity=confidence,
                    page=estimate_page(item.chunk.start, len(document.text), document.page_count),
                    match_type="retrieval",
                )
            )
        return citations

    @staticmethod
    def _synthesize_answer(document: Document, relevant: List[RetrievedChunk]) -> str:
        """Build an answer straight from the retrieved text when generation is unavailable."""
        sections = "\n\n".join(
            f"**Section {i}:**\n{item.chunk.text[:SYNTHESIZED_EXCERPT_LENGTH]}..."
            for i, item in enumerate(relevant, 1)
        )
        scores = "\n".join(
            f"- Section {i}: {int(item.similarity)} keyword match(es)"
            if item.method == "keyword"
            else f"- Section {i}: {item.similarity * 100:.1f}% relevance"
            for i, item in enumerate(relevant, 1)
        )
        return (
            "**Confidence Level: Medium**\n\n"
            "**Answer:**\n"
            "Based on the document content analysis, I found the following relevant information:\n\n"
            f"{sections}\n\n"
            "**Source Reference:**\n"
            f'Information extracted from {len(relevant)} section(s) of "{document.filename}"\n\n'
            "**Similarity Scores:**\n"
            f"{scores}"
        )

    def _not_found(self, document: Optional[Document], start_time: float) -> Dict[str, Any]:
        QUESTIONS_ANSWERED.labels(retrieval_method="none", generation="skipped").inc()
        return {
            "answer": NOT_FOUND_ANSWER,
            "citations": [],
            "metadata": {
                "document_found": document is not None,
                "strategy": self.strategy.value,
                "retrieval_method": None,
                "chunks_found": 0,
                "total_chunks": document.total_chunks if document else 0,
                "max_relevance": 0.0,
                "citations_extracted": False,
                "generation": "skipped",
                "response_time_ms": (time.time() - start_time) * 1000,
            },
        }

    async def answer_question(self, document_id: str, question: str) -> Dict[str, Any]:
        """
        Answer a question about a document.

        Pipeline:
        1. Retrieve relevant chunks (vector search or keyword scoring)
        2. Return a fixed "not found" answer if nothing qualifies
        3. Generate an answer that quotes its sources in a CITATIONS block
        4. Reconcile the quotes with the document text, or fall back to
           keyword-section citations when the answer has no quotes

        Generation failures degrade to an answer synthesized from the
        retrieved chunks; this method does not raise for them.

        Args:
            document_id: Document to ask about
            question: User's question

        Returns:
            Dictionary with answer, citations and metadata (plain data only)
        """
        start_time = time.time()

        document = self.store.get(document_id)
        if document is None:
            logger.warning("Question for unknown document", extra={"document_id": document_id})
            return self._not_found(None, start_time)

        relevant = await self.retrieve(document, question)
        if not relevant:
            logger.info("No relevant chunks found", extra={"document_id": document_id})
            return self._not_found(document, start_time)

        retrieval_method = relevant[0].method
        logger.info(
            f"Retrieved {len(relevant)} chunks",
            extra={
                "document_id": document_id,
                "retrieval_method": retrieval_method,
                "similarity_scores": [item.similarity for item in relevant],
            },
        )

        citations_extracted = False
        if self.llm_service is None:
            generation = "unavailable"
            answer = self._synthesize_answer(document, relevant)
            citations = self._retrieval_citations(document, relevant)
        else:
            prompt = AnswerPrompt.build(question, relevant, document.filename)
            try:
                response = await self.llm_service.generate(prompt)
            except Exception as e:
                logger.error(
                    f"Generation failed, answering from retrieved sections: {str(e)}",
                    exc_info=True,
                    extra={"document_id": document_id},
                )
                GENERATION_FAILURES.inc()
                generation = "fallback"
                answer = self._synthesize_answer(document, relevant)
                citations = self._retrieval_citations(document, relevant)
            else:
                generation = "model"
                parsed = extract_cited_excerpts(response)
                answer = parsed.answer or EMPTY_ANSWER
                if parsed.excerpts:
                    citations_extracted = True
                    citations = reconcile(
                        document.text, parsed.excerpts, document.page_count, self.reconcile_params
                    )
                else:
                    logger.info(
                        "No citation markers in answer, falling back to keyword sections",
                        extra={"document_id": document_id},
                    )
                    citations = keyword_section_citations(document.text, question, document.page_count)

        citations = citations[: self.max_citations]
        for citation in citations:
            CITATIONS_RESOLVED.labels(match_type=citation.match_type).inc()
        QUESTIONS_ANSWERED.labels(retrieval_method=retrieval_method, generation=generation).inc()

        total_time_ms = (time.time() - start_time) * 1000
        logger.info(
            "Question answered",
            extra={
                "document_id": document_id,
                "strategy": self.strategy.value,
                "generation": generation,
                "citation_count": len(citations),
                "response_time_ms": total_time_ms,
                "answer_length": len(answer),
            },
        )

        return {
            "answer": answer,
            "citations": citations_to_dicts(citations),
            "metadata": {
                "document_found": True,
                "strategy": self.strategy.value,
                "retrieval_method": retrieval_method,
                "chunks_found": len(relevant),
                "total_chunks": document.total_chunks,
                "max_relevance": relevant[0].similarity,
                "citations_extracted": citations_extracted,
                "generation": generation,
                "response_time_ms": total_time_ms,
                "relevant_sections": [
                    {
                        "chunk_index": item.chunk.chunk_index,
                        "start": item.chunk.start,
                        "end": item.chunk.end,
                        "similarity": item.similarity,
                        "method": item.method,
                    }
                    for item in relevant
                ],
            },
        }
