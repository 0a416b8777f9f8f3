"""Map excerpts quoted by a generated answer back onto the source text.

Each excerpt is located by exact substring search first, then by a sliding
window that scores how many of the excerpt's words appear in it. Excerpts
that cannot be located are dropped; partial coverage is normal because
models paraphrase, truncate and re-space what they quote.

When an answer carries no citation block at all, keyword_section_citations
produces lower-confidence citations from the question's keywords instead.
"""
import math
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from citeqa.models.document import Citation
from citeqa.services.keyword_scorer import query_terms
from citeqa.utils.logger import logger
from citeqa.utils.text_cleaner import strip_span

CITATION_BLOCK = re.compile(r"---\s*CITATIONS:\s*([\s\S]*)", re.IGNORECASE)
CITE_TAG = re.compile(r"\[CITE\]([\s\S]*?)\[/CITE\]", re.IGNORECASE)

NUMBERED_SECTION_BREAK = re.compile(r"\n(?=\d+\.\s+[A-Z])")
BLANK_LINE_BREAK = re.compile(r"\n\n+")

SECTION_MIN_LENGTH = 30
SECTION_SNIPPET_LENGTH = 300
SECTION_KEYWORD_WEIGHT = 0.3
SECTION_MIN_SCORE = 0.5


@dataclass(frozen=True)
class ReconcileParams:
    """Tuning knobs for fuzzy matching."""

    fuzzy_step: int = 50
    fuzzy_threshold: float = 0.6
    min_word_length: int = 4
    window_factor: float = 2.0
    excerpt_factor: float = 1.5


@dataclass
class ParsedAnswer:
    """A generated response split into answer text and quoted excerpts."""

    answer: str
    excerpts: List[str] = field(default_factory=list)
    has_citation_block: bool = False


def extract_cited_excerpts(response: str) -> ParsedAnswer:
    """
    Split a generated response at its ``---\\nCITATIONS:`` block.

    Args:
        response: Raw generated text

    Returns:
        ParsedAnswer with the answer body and the stripped [CITE] excerpts
    """
    match = CITATION_BLOCK.search(response)
    if not match:
        return ParsedAnswer(answer=response.strip())

    excerpts = [excerpt.strip() for excerpt in CITE_TAG.findall(match.group(1))]
    return ParsedAnswer(
        answer=response[: match.start()].strip(),
        excerpts=[excerpt for excerpt in excerpts if excerpt],
        has_citation_block=True,
    )


def estimate_page(start: int, total_chars: int, page_count: Optional[int]) -> int:
    """
    Estimate the page of a character offset, assuming evenly filled pages.

    Returns:
        Page in [1, page_count]; 1 when the page count or text length is unknown
    """
    if not page_count or page_count < 1 or total_chars <= 0:
        return 1
    page = math.ceil(start / total_chars * page_count)
    return max(1, min(page_count, page))


def find_exact(text: str, excerpt: str) -> Optional[Citation]:
    start = text.find(excerpt)
    if start == -1:
        return None
    return Citation(
        text=excerpt,
        start=start,
        end=start + len(excerpt),
        score=1.0,
        similarity=1.0,
        match_type="exact",
    )


def find_fuzzy(text: str, excerpt: str, params: ReconcileParams = ReconcileParams()) -> Optional[Citation]:
    """
    Find the window of text sharing the most words with the excerpt.

    Windows are ``window_factor * len(excerpt)`` characters wide and advance
    by ``fuzzy_step``. A window's ratio is the share of the excerpt's words
    (of at least min_word_length characters) it contains, case-insensitively.
    The best window is accepted only if its ratio exceeds fuzzy_threshold.

    Returns:
        Citation over the first ``excerpt_factor * len(excerpt)`` characters
        of the best window, scored with its ratio; None if nothing qualifies
    """
    words = [word for word in excerpt.lower().split() if len(word) >= params.min_word_length]
    if not words:
        return None

    lowered = text.lower()
    length = len(excerpt)
    window_size = int(length * params.window_factor)
    best_ratio = 0.0
    best_start = None

    for start in range(0, len(text) - length, params.fuzzy_step):
        window = lowered[start : start + window_size]
        ratio = sum(1 for word in words if word in window) / len(words)
        if ratio > best_ratio:
            best_ratio = ratio
            best_start = start

    if best_start is None or best_ratio <= params.fuzzy_threshold:
        return None

    end = best_start + min(window_size, int(length * params.excerpt_factor), len(text) - best_start)
    return Citation(
        text=text[best_start:end],
        start=best_start,
        end=end,
        score=best_ratio,
        similarity=best_ratio,
        match_type="fuzzy",
    )


def reconcile(
    text: str,
    excerpts: List[str],
    page_count: Optional[int] = None,
    params: ReconcileParams = ReconcileParams(),
) -> List[Citation]:
    """
    Locate claimed excerpts in the document text.

    Args:
        text: Full document text
        excerpts: Excerpts the answer claims to quote verbatim
        page_count: Number of pages, for page estimates
        params: Fuzzy matching parameters

    Returns:
        Citations in excerpt order; unlocated excerpts are left out
    """
    citations = []
    for excerpt in excerpts:
        excerpt = excerpt.strip()
        if not excerpt:
            continue

        citation = find_exact(text, excerpt) or find_fuzzy(text, excerpt, params)
        if citation is None:
            logger.debug(f"Could not locate citation: {excerpt[:50]}")
            continue

        citation.page = estimate_page(citation.start, len(text), page_count)
        citations.append(citation)

    logger.info(
        f"Reconciled {len(citations)} of {len(excerpts)} citations",
        extra={"citation_count": len(citations)},
    )
    return citations


def _split_spans(text: str, pattern: re.Pattern) -> List[Tuple[int, int]]:
    spans = []
    position = 0
    for match in pattern.finditer(text):
        spans.append((position, match.start()))
        position = match.end()
    spans.append((position, len(text)))
    return spans


def section_spans(text: str) -> List[Tuple[int, int]]:
    """Split text at numbered headings ("1. Title"), else at blank lines."""
    spans = _split_spans(text, NUMBERED_SECTION_BREAK)
    if len(spans) == 1:
        spans = _split_spans(text, BLANK_LINE_BREAK)

    stripped = (strip_span(text, start, end) for start, end in spans)
    return [span for span in stripped if span]


def keyword_section_citations(
    text: str, question: str, page_count: Optional[int] = None
) -> List[Citation]:
    """
    Cite the document sections that mention the most question keywords.

    Each distinct keyword (longer than three characters) found in a section
    adds 0.3; sections scoring above 0.5 are cited by their first 300
    characters.

    Args:
        text: Full document text
        question: The user's question
        page_count: Number of pages, for page estimates

    Returns:
        Citations sorted by descending score
    """
    keywords = list(dict.fromkeys(query_terms(question, min_length=4)))
    if not keywords:
        return []

    scored = []
    for start, end in section_spans(text):
        if end - start < SECTION_MIN_LENGTH:
            continue

        section = text[start:end].lower()
        relevance = SECTION_KEYWORD_WEIGHT * sum(1 for keyword in keywords if keyword in section)
        if relevance <= SECTION_MIN_SCORE:
            continue

        snippet_end = min(end, start + SECTION_SNIPPET_LENGTH)
        confidence = min(relevance, 1.0)
        scored.append(
            (
                relevance,
                Citation(
                    text=text[start:snippet_end],
                    start=start,
                    end=snippet_end,
                    score=confidence,
                    similarity=confidence,
                    page=estimate_page(start, len(text), page_count),
                    match_type="keyword",
                ),
            )
        )

    scored.sort(key=lambda item: item[0], reverse=True)
    return [citation for _, citation in scored]
