"""Nodes backed by a document store."""

from needle.plugins.retrievers.retriever import Retriever
from needle.plugins.retrievers.writer import DocumentWriter

__all__ = ["DocumentWriter", "Retriever"]
