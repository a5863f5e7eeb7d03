"""
Retrieval engine: hybrid search, score fusion, and reranking.

Exports: HybridRetriever, LLMReranker, HierarchicalSearchResult, RerankedCandidate
"""

from .hybrid_retriever import HybridRetriever
from .models import FusedChunk, HierarchicalSearchResult, RerankedCandidate
from .reranker import LLMReranker
from .score_fusion import fuse_results, max_normalize

__all__ = [
    "HybridRetriever",
    "LLMReranker",
    "FusedChunk",
    "HierarchicalSearchResult",
    "RerankedCandidate",
    "fuse_results",
    "max_normalize",
]
