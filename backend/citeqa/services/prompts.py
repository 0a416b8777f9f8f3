"""Prompt templates for cited answers."""
from typing import List

from citeqa.models.document import RetrievedChunk

NOT_IN_DOCUMENT = "This information is not mentioned in the document."


class AnswerPrompt:
    """Prompt template for answering from retrieved sections with verbatim citations."""

    SYSTEM_MESSAGE = (
        "You are a document analysis assistant. Answer ONLY from the provided document "
        "sections and never add outside knowledge. Quote your sources verbatim in the "
        "CITATIONS block exactly as instructed."
    )

    @staticmethod
    def build_context(chunks: List[RetrievedChunk]) -> str:
        """Tag each retrieved chunk as [Section N]."""
        return "\n".join(
            f"[Section {i}] {item.chunk.text}\n" for i, item in enumerate(chunks, 1)
        )

    @staticmethod
    def build(question: str, chunks: List[RetrievedChunk], filename: str = "") -> str:
        """
        Build answer generation prompt.

        Args:
            question: User's question
            chunks: Retrieved chunks, most relevant first
            filename: Source document name

        Returns:
            Formatted prompt string
        """
        context = AnswerPrompt.build_context(chunks)

        return f"""You are an intelligent document analysis assistant. Answer the question using ONLY the document sections below.

DOCUMENT: "{filename}"

DOCUMENT SECTIONS:
{context}

QUESTION: {question}

INSTRUCTIONS:
1. Answer based ONLY on the document sections above
2. Format the answer in markdown (bold for emphasis, bullet or numbered lists where useful)
3. At the END of your answer add a CITATIONS section listing the EXACT text snippets you relied on, in this format:

---
CITATIONS:
[CITE]exact text from the document[/CITE]
[CITE]another exact text from the document[/CITE]

4. Citations must be verbatim, word-for-word copies of the document text, 20-50 characters or longer
5. Only cite passages you actually used
6. If the information is not in the document, state: "{NOT_IN_DOCUMENT}"

ANSWER:"""
