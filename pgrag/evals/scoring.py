"""Retrieval quality scoring helpers.

Provides:
- precision_at_k: share of the top-k results that are relevant
- recall_at_k: share of the relevant ids found in the top-k results
- context_faithfulness: word-overlap heuristic between an answer and retrieved context
- avg_relevance_score: mean score of retrieved chunks
- score_rag_results: all of the above in one RagScoringResult

Scores on RetrievedChunk are cosine distances, so a LOWER avg_relevance_score
means closer matches.
"""
from dataclasses import dataclass
from typing import Iterable, List, Set

from pgrag.schemas import RetrievedChunk


@dataclass
class RagScoringResult:
    """Aggregate retrieval metrics for one query."""
    precision_at_k: float
    recall_at_k: float
    context_faithfulness: float
    avg_relevance_score: float


def _matches(chunk: RetrievedChunk, relevant_ids: Set[str]) -> Set[str]:
    return {x for x in (chunk.id, chunk.doc_id) if x is not None and x in relevant_ids}


def precision_at_k(retrieved: List[RetrievedChunk], relevant_ids: Set[str], k: int) -> float:
    """Relevant items in the top k divided by k (0 when k <= 0).

    A chunk is relevant when its id or its doc_id is in relevant_ids.
    """
    if k <= 0:
        return 0.0
    return sum(1 for c in retrieved[:k] if _matches(c, relevant_ids)) / k


def recall_at_k(retrieved: List[RetrievedChunk], relevant_ids: Set[str], k: int) -> float:
    """Distinct relevant ids hit in the top k divided by all relevant ids (0 when none)."""
    if not relevant_ids:
        return 0.0
    hit: Set[str] = set()
    for c in retrieved[:max(k, 0)]:
        hit |= _matches(c, relevant_ids)
    return len(hit) / len(relevant_ids)


def context_faithfulness(answer: str, retrieved: List[RetrievedChunk]) -> float:
    """Share of answer words (longer than 3 chars) that appear in the retrieved context.

    Returns 0 when nothing was retrieved and 1 when the answer has no qualifying
    words (an empty answer is vacuously faithful).
    """
    if not retrieved:
        return 0.0
    context = " ".join(c.content.lower() for c in retrieved)
    words = [w for w in answer.lower().split() if len(w) > 3]
    if not words:
        return 1.0
    return sum(1 for w in words if w in context) / len(words)


def avg_relevance_score(retrieved: Iterable[RetrievedChunk]) -> float:
    """Mean score of the retrieved chunks (0 for no chunks)."""
    scores = [c.score for c in retrieved]
    if not scores:
        return 0.0
    return sum(scores) / len(scores)


def score_rag_results(
    retrieved: List[RetrievedChunk],
    relevant_ids: Set[str],
    answer: str,
    k: int,
) -> RagScoringResult:
    """Compute every retrieval metric for one query."""
    return RagScoringResult(
        precision_at_k=precision_at_k(retrieved, relevant_ids, k),
        recall_at_k=recall_at_k(retrieved, relevant_ids, k),
        context_faithfulness=context_faithfulness(answer, retrieved),
        avg_relevance_score=avg_relevance_score(retrieved),
    )
