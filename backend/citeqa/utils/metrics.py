"""Prometheus counters, exposed at /metrics."""
from prometheus_client import Counter

EMBEDDING_FALLBACKS = Counter(
    "citeqa_embedding_fallbacks_total",
    "Texts embedded with the deterministic hash embedder after a model failure",
    ["reason"],
)

GENERATION_FAILURES = Counter(
    "citeqa_generation_failures_total",
    "Generation calls that failed and were replaced by a synthesized answer",
)

QUESTIONS_ANSWERED = Counter(
    "citeqa_questions_answered_total",
    "Questions answered, by retrieval method and generation outcome",
    ["retrieval_method", "generation"],
)

CITATIONS_RESOLVED = Counter(
    "citeqa_citations_resolved_total",
    "Citations returned to callers, by how they were located",
    ["match_type"],
)
