# src/needle/plugins/answers/docs2answers.py
"""Turn retrieved documents into answers (FAQ-style pipelines)."""

from __future__ import annotations

from needle.contracts import Answer, AnswerType, ContentType, Document, NodeResult
from needle.plugins.base import BaseComponent


class Docs2Answers(BaseComponent):
    """Convert each document into an Answer.

    FAQ documents store the question as content and the answer in
    ``meta["answer"]``; documents without one answer with their content.
    Table documents are skipped.
    """

    outgoing_edges = 1

    def __init__(self, answer_meta_key: str = "answer") -> None:
        self.answer_meta_key = answer_meta_key

    def convert(self, documents: list[Document]) -> list[Answer]:
        answers: list[Answer] = []
        for document in documents:
            if document.content_type != ContentType.TEXT:
                continue
            meta = {k: v for k, v in document.meta.items() if k != self.answer_meta_key}
            answers.append(
                Answer(
                    answer=str(document.meta.get(self.answer_meta_key, document.content)),
                    type=AnswerType.OTHER,
                    score=document.score,
                    context=str(document.content),
                    document_ids=(document.id,),
                    meta=meta,
                )
            )
        return answers

    def run(self, query: str, documents: list[Document]) -> NodeResult:
        return {"query": query, "answers": self.convert(documents)}, "output_1"

    def run_batch(self, queries: list[str], documents: list[list[Document]]) -> NodeResult:
        return {"queries": queries, "answers": [self.convert(docs) for docs in documents]}, "output_1"
