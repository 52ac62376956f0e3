# src/needle/plugins/joins/documents.py
"""Join the document lists of several retrievers."""

from __future__ import annotations

from collections import defaultdict

from needle.contracts import Document, JoinMode, NodeError, NodeResult, Payload
from needle.plugins.joins.base import JoinNode

# Rank offset for reciprocal rank fusion (ranks start at 0)
RRF_K = 61


def _score_key(document: Document) -> float:
    return document.score if document.score is not None else float("-inf")


class JoinDocuments(JoinNode):
    """Combine documents from several inputs into one list.

    Join modes:
    - concatenate: every document once; for repeated ids the highest score wins
    - merge: weighted sum of each document's scores across inputs
    - reciprocal_rank_fusion: sum of 1 / (61 + rank) across inputs; scores ignored
    """

    def __init__(
        self,
        join_mode: JoinMode | str = JoinMode.CONCATENATE,
        weights: list[float] | None = None,
        top_k_join: int | None = None,
        sort_by_score: bool = True,
    ) -> None:
        self.join_mode = JoinMode(join_mode)
        if weights is not None and self.join_mode == JoinMode.CONCATENATE:
            raise ValueError("weights are only used with join_mode 'merge' or 'reciprocal_rank_fusion'")
        self.weights = weights
        self.top_k_join = top_k_join
        self.sort_by_score = sort_by_score

    def join(self, results: list[list[Document]], top_k_join: int | None = None) -> list[Document]:
        """Join lists of documents according to ``join_mode``."""
        if self.join_mode == JoinMode.CONCATENATE:
            joined = self._concatenate(results)
        elif self.join_mode == JoinMode.MERGE:
            joined = self._merge(results, self._weights(self.weights, len(results)))
        else:
            joined = self._reciprocal_rank_fusion(results, self._weights(self.weights, len(results)))

        if self.sort_by_score:
            joined = sorted(joined, key=_score_key, reverse=True)
        limit = top_k_join if top_k_join is not None else self.top_k_join
        return joined[:limit] if limit is not None else joined

    @staticmethod
    def _concatenate(results: list[list[Document]]) -> list[Document]:
        by_id: dict[str, Document] = {}
        for documents in results:
            for document in documents:
                existing = by_id.get(document.id)
                if existing is None or _score_key(document) > _score_key(existing):
                    by_id[document.id] = document
        return list(by_id.values())

    @staticmethod
    def _merge(results: list[list[Document]], weights: list[float]) -> list[Document]:
        scores: dict[str, float] = defaultdict(float)
        first_seen: dict[str, Document] = {}
        for documents, weight in zip(results, weights, strict=True):
            for document in documents:
                scores[document.id] += (document.score or 0.0) * weight
                first_seen.setdefault(document.id, document)
        return [doc.model_copy(update={"score": scores[doc_id]}) for doc_id, doc in first_seen.items()]

    @staticmethod
    def _reciprocal_rank_fusion(results: list[list[Document]], weights: list[float]) -> list[Document]:
        scores: dict[str, float] = defaultdict(float)
        first_seen: dict[str, Document] = {}
        for documents, weight in zip(results, weights, strict=True):
            for rank, document in enumerate(documents):
                scores[document.id] += weight * len(results) / (RRF_K + rank)
                first_seen.setdefault(document.id, document)
        return [doc.model_copy(update={"score": scores[doc_id]}) for doc_id, doc in first_seen.items()]

    def run_accumulated(self, inputs: list[Payload], top_k_join: int | None = None) -> NodeResult:
        results = self._collect(inputs, "documents")
        return {"documents": self.join(results, top_k_join=top_k_join)}, "output_1"

    def run_batch_accumulated(self, inputs: list[Payload], top_k_join: int | None = None) -> NodeResult:
        per_input = self._collect(inputs, "documents")
        lengths = {len(batch) for batch in per_input}
        if len(lengths) != 1:
            raise NodeError(f"Join inputs disagree on batch size: {sorted(lengths)}")
        joined = [self.join(list(per_query), top_k_join=top_k_join) for per_query in zip(*per_input, strict=True)]
        return {"documents": joined}, "output_1"
