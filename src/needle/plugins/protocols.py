# src/needle/plugins/protocols.py
"""Protocols for collaborators that pipeline nodes consult.

No document store backend ships with needle. Retriever and DocumentWriter
accept any object satisfying DocumentStoreProtocol; stores that should be
exportable through Pipeline.get_config() also subclass
``needle.plugins.base.Configurable`` and register their class through the
``needle_get_components`` hook.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from needle.contracts import Document


@runtime_checkable
class DocumentStoreProtocol(Protocol):
    """Persistent store of indexed documents.

    Implementations own scoring: ``query`` returns documents with ``score``
    set, best first.
    """

    def write_documents(self, documents: list[Document], index: str | None = None) -> None:
        """Persist documents, replacing any with the same id."""
        ...

    def get_all_documents(self, index: str | None = None, filters: dict[str, Any] | None = None) -> list[Document]:
        """Return every stored document matching ``filters``."""
        ...

    def query(
        self,
        query: str,
        filters: dict[str, Any] | None = None,
        top_k: int = 10,
        index: str | None = None,
    ) -> list[Document]:
        """Return at most ``top_k`` documents relevant to ``query``, best first."""
        ...
