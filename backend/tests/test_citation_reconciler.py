"""Tests for citation parsing and reconciliation."""
import pytest

from citeqa.services.citation_reconciler import (
    ReconcileParams,
    estimate_page,
    extract_cited_excerpts,
    find_fuzzy,
    keyword_section_citations,
    reconcile,
    section_spans,
)

REVENUE_TEXT = (
    "The quarterly revenue increased significantly during summer months across all regions.\n\n"
    "Staff training sessions were held twice in the autumn, and new hires completed onboarding."
)
PARAPHRASED = "quarterly revenue increased dramatically during summer"


class TestExtractCitedExcerpts:
    """Tests for splitting a response into answer and excerpts."""

    def test_splits_answer_and_excerpts(self):
        response = "Answer body\n\n---\nCITATIONS:\n[CITE] one [/CITE]\n[cite]two[/cite]\n"
        parsed = extract_cited_excerpts(response)

        assert parsed.answer == "Answer body"
        assert parsed.excerpts == ["one", "two"]
        assert parsed.has_citation_block is True

    def test_no_citation_block(self):
        parsed = extract_cited_excerpts("  Just an answer [CITE]loose[/CITE]  ")
        assert parsed.answer == "Just an answer [CITE]loose[/CITE]"
        assert parsed.excerpts == []
        assert parsed.has_citation_block is False

    def test_block_without_tags(self):
        parsed = extract_cited_excerpts("Answer\n---\nCITATIONS:\nnone")
        assert parsed.has_citation_block is True
        assert parsed.excerpts == []


class TestEstimatePage:
    def test_bounds(self):
        assert estimate_page(0, 1000, 10) == 1
        assert estimate_page(999, 1000, 10) == 10
        assert estimate_page(500, 1000, 4) == 2

    def test_unknown_page_count(self):
        assert estimate_page(500, 1000, None) == 1
        assert estimate_page(500, 0, 5) == 1


class TestReconcile:
    """Tests for exact and fuzzy excerpt matching."""

    def test_exact_substring_round_trip(self):
        start = REVENUE_TEXT.index("Staff training")
        excerpt = REVENUE_TEXT[start:start + 40]

        citations = reconcile(REVENUE_TEXT, [excerpt], page_count=2)

        assert len(citations) == 1
        citation = citations[0]
        assert (citation.start, citation.end) == (start, start + 40)
        assert citation.match_type == "exact"
        assert citation.score == 1.0
        assert citation.page == estimate_page(start, len(REVENUE_TEXT), 2)

    def test_paraphrased_excerpt_matches_fuzzily(self):
        citations = reconcile(REVENUE_TEXT, [PARAPHRASED])

        assert len(citations) == 1
        citation = citations[0]
        assert citation.match_type == "fuzzy"
        assert citation.start == 0
        assert citation.end == int(len(PARAPHRASED) * 1.5)
        assert citation.text == REVENUE_TEXT[citation.start:citation.end]
        assert citation.score == pytest.approx(5 / 6)

    def test_threshold_is_configurable(self):
        strict = ReconcileParams(fuzzy_threshold=0.9)
        assert find_fuzzy(REVENUE_TEXT, PARAPHRASED, strict) is None

    def test_unlocatable_excerpts_are_dropped(self):
        citations = reconcile(
            REVENUE_TEXT,
            ["completely unrelated sentence about astronomy telescopes", "   ", "Staff training sessions"],
        )
        assert [c.text for c in citations] == ["Staff training sessions"]

    def test_excerpt_without_long_words(self):
        assert find_fuzzy(REVENUE_TEXT, "a an to of it") is None


class TestKeywordSectionCitations:
    """Tests for the keyword-section fallback."""

    def test_numbered_sections(self, sample_text):
        spans = section_spans(sample_text)
        assert [sample_text[s:e].split("\n")[0] for s, e in spans] == [
            "1. Introduction",
            "2. Refund Policy",
            "3. Shipping",
        ]

    def test_blank_line_sections_and_short_sections_skipped(self):
        text = (
            "Paragraph about refunds and returns policy details here.\n\n"
            "Short.\n\n"
            "Another paragraph about shipping and delivery windows."
        )
        citations = keyword_section_citations(text, "refunds returns policy")

        assert len(citations) == 1
        assert citations[0].start == 0
        assert citations[0].match_type == "keyword"
        assert citations[0].score == pytest.approx(0.9)

    def test_sorted_by_score_and_clamped(self):
        text = (
            "This section covers shipping and refunds only briefly.\n\n"
            "This section covers shipping, refunds, returns and policy in depth."
        )
        citations = keyword_section_citations(text, "shipping refunds returns policy")

        assert len(citations) == 2
        assert citations[0].start == text.index("This section covers shipping, refunds")
        assert citations[0].score == 1.0
        assert citations[1].score == pytest.approx(0.6)

    def test_snippet_is_capped(self):
        text = "refund policy " * 50
        citations = keyword_section_citations(text, "refund policy terms")
        assert len(citations) == 1
        assert len(citations[0].text) == 300
