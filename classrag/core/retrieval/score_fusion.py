"""
Score normalization and weighted fusion for hybrid search.

Vector similarity and lexical rank live on different scales, so each
result set is divided by its own maximum before the weighted sum.

Dependencies: None
System role: Pure fusion logic used by HybridRetriever
"""

from classrag.boundary.db.schemas import ScoredChunk

from .models import FusedChunk


def max_normalize(results: list[ScoredChunk]) -> dict[str, float]:
    """
    Divide every score by the set's maximum score.

    A set whose maximum is zero or negative (or an empty set) uses a
    divisor of 1, leaving scores unchanged.

    Args:
        results: One search's results

    Returns:
        dict[str, float]: chunk_id -> normalized score
    """
    if not results:
        return {}
    max_score = max(result.score for result in results)
    divisor = max_score if max_score > 0 else 1.0
    return {result.chunk_id: result.score / divisor for result in results}


def fuse_results(
    vector_results: list[ScoredChunk],
    lexical_results: list[ScoredChunk],
    vector_weight: float = 0.7,
    bm25_weight: float = 0.3,
    top_k: int = 10,
) -> list[FusedChunk]:
    """
    Merge vector and lexical results by chunk id.

    A chunk missing from one search gets 0 for that search's term.
    Ties keep first-seen order (vector results first).

    Args:
        vector_results: Results of the vector search
        lexical_results: Results of the lexical search
        vector_weight: Weight of the normalized vector score
        bm25_weight: Weight of the normalized lexical score
        top_k: Number of fused results to keep

    Returns:
        list[FusedChunk]: Highest combined score first, at most top_k
    """
    vector_scores = max_normalize(vector_results)
    lexical_scores = max_normalize(lexical_results)

    chunks: dict[str, ScoredChunk] = {}
    for result in [*vector_results, *lexical_results]:
        chunks.setdefault(result.chunk_id, result)

    fused = []
    for chunk_id, chunk in chunks.items():
        vector_score = vector_scores.get(chunk_id, 0.0)
        bm25_score = lexical_scores.get(chunk_id, 0.0)
        fused.append(
            FusedChunk(
                chunk=chunk,
                vector_score=vector_score,
                bm25_score=bm25_score,
                score=vector_score * vector_weight + bm25_score * bm25_weight,
            )
        )

    fused.sort(key=lambda item: item.score, reverse=True)
    return fused[:top_k]
