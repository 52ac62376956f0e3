# src/needle/plugins/joins/answers.py
"""Join the answer lists of several readers."""

from __future__ import annotations

from needle.contracts import Answer, JoinMode, NodeError, NodeResult, Payload
from needle.plugins.joins.base import JoinNode


def _score_key(answer: Answer) -> float:
    return answer.score if answer.score is not None else float("-inf")


class JoinAnswers(JoinNode):
    """Combine answers from several inputs.

    ``concatenate`` keeps every answer as is; ``merge`` scales each input's
    scores by its weight first.
    """

    def __init__(
        self,
        join_mode: JoinMode | str = JoinMode.CONCATENATE,
        weights: list[float] | None = None,
        top_k_join: int | None = None,
        sort_by_score: bool = True,
    ) -> None:
        mode = JoinMode(join_mode)
        if mode == JoinMode.RECIPROCAL_RANK_FUSION:
            raise ValueError("JoinAnswers supports join_mode 'concatenate' or 'merge'")
        if weights is not None and mode == JoinMode.CONCATENATE:
            raise ValueError("weights are only used with join_mode 'merge'")
        self.join_mode = mode
        self.weights = weights
        self.top_k_join = top_k_join
        self.sort_by_score = sort_by_score

    def join(self, results: list[list[Answer]], top_k_join: int | None = None) -> list[Answer]:
        if self.join_mode == JoinMode.MERGE:
            weights = self._weights(self.weights, len(results))
            joined = [
                answer.model_copy(update={"score": answer.score * weight if answer.score is not None else None})
                for answers, weight in zip(results, weights, strict=True)
                for answer in answers
            ]
        else:
            joined = [answer for answers in results for answer in answers]

        if self.sort_by_score:
            joined = sorted(joined, key=_score_key, reverse=True)
        limit = top_k_join if top_k_join is not None else self.top_k_join
        return joined[:limit] if limit is not None else joined

    def run_accumulated(self, inputs: list[Payload], top_k_join: int | None = None) -> NodeResult:
        return {"answers": self.join(self._collect(inputs, "answers"), top_k_join=top_k_join)}, "output_1"

    def run_batch_accumulated(self, inputs: list[Payload], top_k_join: int | None = None) -> NodeResult:
        per_input = self._collect(inputs, "answers")
        lengths = {len(batch) for batch in per_input}
        if len(lengths) != 1:
            raise NodeError(f"Join inputs disagree on batch size: {sorted(lengths)}")
        joined = [self.join(list(per_query), top_k_join=top_k_join) for per_query in zip(*per_input, strict=True)]
        return {"answers": joined}, "output_1"
