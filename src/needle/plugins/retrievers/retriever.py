# src/needle/plugins/retrievers/retriever.py
"""Retrieve documents for a query from a document store."""

from __future__ import annotations

from typing import Any

from needle.contracts import Document, NodeError, NodeResult
from needle.plugins.base import BaseComponent
from needle.plugins.protocols import DocumentStoreProtocol


class Retriever(BaseComponent):
    """Query a document store and return the best ``top_k`` documents.

    Scoring is the store's business; the retriever only forwards the query,
    filters and limits.
    """

    outgoing_edges = 1

    def __init__(
        self,
        document_store: DocumentStoreProtocol | None = None,
        top_k: int = 10,
        index: str | None = None,
    ) -> None:
        if top_k < 1:
            raise ValueError(f"top_k must be positive, got {top_k}")
        self.document_store = document_store
        self.top_k = top_k
        self.index = index

    def _store(self) -> DocumentStoreProtocol:
        if self.document_store is None:
            raise NodeError("Retriever has no document_store; pass one when creating the retriever")
        return self.document_store

    def retrieve(
        self,
        query: str,
        filters: dict[str, Any] | None = None,
        top_k: int | None = None,
        index: str | None = None,
    ) -> list[Document]:
        limit = top_k if top_k is not None else self.top_k
        if limit < 1:
            raise NodeError(f"top_k must be positive, got {limit}")
        return self._store().query(query, filters=filters, top_k=limit, index=index or self.index)

    def run(
        self,
        query: str,
        filters: dict[str, Any] | None = None,
        top_k: int | None = None,
        index: str | None = None,
    ) -> NodeResult:
        documents = self.retrieve(query, filters=filters, top_k=top_k, index=index)
        return {"documents": documents}, "output_1"

    def run_batch(
        self,
        queries: list[str],
        filters: dict[str, Any] | list[dict[str, Any] | None] | None = None,
        top_k: int | None = None,
        index: str | None = None,
    ) -> NodeResult:
        if isinstance(filters, list):
            if len(filters) != len(queries):
                raise NodeError(f"Got {len(filters)} filters for {len(queries)} queries; pass one filter per query or a single filter.")
            per_query = list(filters)
        else:
            per_query = [filters] * len(queries)
        documents = [self.retrieve(q, filters=f, top_k=top_k, index=index) for q, f in zip(queries, per_query, strict=True)]
        return {"documents": documents}, "output_1"
