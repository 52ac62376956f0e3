# src/needle/plugins/retrievers/writer.py
"""Write incoming documents to a document store (indexing pipelines)."""

from __future__ import annotations

from needle.contracts import Document, NodeError, NodeResult
from needle.core.logging import get_logger
from needle.plugins.base import BaseComponent
from needle.plugins.protocols import DocumentStoreProtocol

logger = get_logger(__name__)


class DocumentWriter(BaseComponent):
    """Persist documents and pass them on unchanged."""

    outgoing_edges = 1

    def __init__(self, document_store: DocumentStoreProtocol | None = None, index: str | None = None) -> None:
        self.document_store = document_store
        self.index = index

    def run(self, documents: list[Document], index: str | None = None) -> NodeResult:
        if self.document_store is None:
            raise NodeError("DocumentWriter has no document_store; pass one when creating the writer")
        self.document_store.write_documents(documents, index=index or self.index)
        logger.info("Wrote documents", count=len(documents), index=index or self.index)
        return {}, "output_1"

    def run_batch(self, documents: list[Document] | list[list[Document]], index: str | None = None) -> NodeResult:
        flat: list[Document] = []
        for item in documents:
            if isinstance(item, list):
                flat.extend(item)
            else:
                flat.append(item)
        return self.run(documents=flat, index=index)
