"""
LLM reranker.

Scores fused candidates 0-10 for relevance to the query with a Gemini
chat model using structured output, and returns them best first.

Dependencies: langchain_google_genai, langchain_core, pydantic
System role: Optional second-pass relevance scoring for RAG search
"""

import logging

from langchain_core.messages import HumanMessage
from langchain_google_genai import ChatGoogleGenerativeAI
from pydantic import BaseModel, Field

from classrag.core.exceptions import SearchError

from .models import HierarchicalSearchResult, RerankedCandidate

logger = logging.getLogger(__name__)

MAX_RERANK_SCORE = 10.0
CANDIDATE_PREVIEW_CHARS = 1500

RERANK_PROMPT = """You are ranking passages from class materials by how well they help answer a student's question.

Question: {query}

Passages:
{passages}

Score every passage from 0 (irrelevant) to 10 (directly answers the question).
Return one entry per passage using its index."""


class RerankScore(BaseModel):
    """Relevance score for one candidate."""

    index: int = Field(description="Index of the passage as listed")
    score: float = Field(description="Relevance from 0 to 10")


class RerankResponse(BaseModel):
    """Structured reranker output."""

    rankings: list[RerankScore] = Field(default_factory=list)


def _format_candidate(index: int, candidate: HierarchicalSearchResult) -> str:
    location = [f"document: {candidate.document_name}"]
    if candidate.page_number is not None:
        location.append(f"page: {candidate.page_number}")
    if candidate.section:
        location.append(f"section: {candidate.section}")
    text = candidate.content[:CANDIDATE_PREVIEW_CHARS]
    if candidate.image_desc:
        text += f"\n[Image description: {candidate.image_desc[:500]}]"
    return f"[{index}] ({', '.join(location)})\n{text}"


def order_rankings(
    rankings: list[RerankScore],
    candidate_count: int,
    final_k: int,
) -> list[RerankedCandidate]:
    """
    Normalize raw reranker output into a complete ordering.

    Out-of-range and repeated indices are ignored, scores are clamped to
    0-10, and candidates the model skipped are appended with score 0.

    Returns:
        list[RerankedCandidate]: Highest score first, at most final_k
    """
    scored: dict[int, float] = {}
    for ranking in rankings:
        if 0 <= ranking.index < candidate_count and ranking.index not in scored:
            scored[ranking.index] = min(max(ranking.score, 0.0), MAX_RERANK_SCORE)

    ordered = sorted(scored.items(), key=lambda item: item[1], reverse=True)
    ordered.extend((index, 0.0) for index in range(candidate_count) if index not in scored)
    return [RerankedCandidate(index=index, score=score) for index, score in ordered[:final_k]]


class LLMReranker:
    """Rerank search candidates with a chat model."""

    def __init__(
        self,
        model_id: str = "gemini-2.5-flash",
        model: ChatGoogleGenerativeAI | None = None,
    ) -> None:
        """
        Args:
            model_id: Gemini model ID
            model: Preconfigured chat model (created from model_id when omitted)
        """
        chat_model = model or ChatGoogleGenerativeAI(model=model_id, temperature=0)
        self._structured_model = chat_model.with_structured_output(RerankResponse)

    async def rerank(
        self,
        query: str,
        candidates: list[HierarchicalSearchResult],
        final_k: int = 5,
    ) -> list[RerankedCandidate]:
        """
        Score and order candidates.

        Args:
            query: User query
            candidates: Fused search results
            final_k: Number of candidates to keep

        Returns:
            list[RerankedCandidate]: (index into candidates, 0-10 score), best first

        Raises:
            SearchError: When the model call fails
        """
        if not candidates:
            return []

        passages = "\n\n".join(
            _format_candidate(index, candidate) for index, candidate in enumerate(candidates)
        )
        message = HumanMessage(content=RERANK_PROMPT.format(query=query, passages=passages))
        try:
            response = await self._structured_model.ainvoke([message])
        except Exception as e:
            logger.error(f"{__name__}:rerank - {type(e).__name__}: {e}")
            raise SearchError(f"Reranking failed: {e}") from e

        rankings = response.rankings if isinstance(response, RerankResponse) else []
        ordered = order_rankings(rankings, len(candidates), final_k)
        logger.info(
            f"{__name__}:rerank - Reranked candidates",
            extra={"candidate_count": len(candidates), "returned_count": len(ordered)},
        )
        return ordered
