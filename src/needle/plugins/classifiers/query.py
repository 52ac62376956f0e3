# src/needle/plugins/classifiers/query.py
"""Rule-based question vs keyword query classifier."""

from __future__ import annotations

from needle.contracts import NodeResult
from needle.plugins.base import BaseComponent

QUESTION_WORDS = frozenset(
    {
        "who", "whom", "whose", "what", "when", "where", "why", "which", "how",
        "is", "are", "was", "were", "do", "does", "did", "can", "could",
        "should", "would", "will", "has", "have", "had",
    }
)  # fmt: skip


class QueryClassifier(BaseComponent):
    """Send questions to output_1 and keyword queries to output_2.

    A query is a question when it ends with ``?`` or starts with a
    question or auxiliary word.

    ``run_batch`` splits the batch: the payload holds one sub-payload per
    branch (``output_1`` / ``output_2``) and the branch tag is ``split``.
    """

    outgoing_edges = 2

    def __init__(self, question_words: list[str] | None = None) -> None:
        self.question_words = frozenset(w.lower() for w in question_words) if question_words is not None else QUESTION_WORDS

    def is_question(self, query: str) -> bool:
        text = query.strip()
        if text.endswith("?"):
            return True
        words = text.split(maxsplit=1)
        return bool(words) and words[0].lower().strip(",.;:") in self.question_words

    def run(self, query: str) -> NodeResult:
        return {}, "output_1" if self.is_question(query) else "output_2"

    def run_batch(self, queries: list[str]) -> NodeResult:
        questions = [q for q in queries if self.is_question(q)]
        keywords = [q for q in queries if not self.is_question(q)]
        split: dict[str, dict[str, list[str]]] = {}
        if questions:
            split["output_1"] = {"queries": questions}
        if keywords:
            split["output_2"] = {"queries": keywords}
        return split, "split"
