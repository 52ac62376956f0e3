"""Status codes, modes and kinds used across subsystem boundaries."""

from enum import StrEnum


class RootType(StrEnum):
    """Kind of synthetic root a pipeline starts from.

    A pipeline has exactly one root and never mixes the two.
    """

    QUERY = "Query"
    FILE = "File"


class ContentType(StrEnum):
    """Content carried by a Document."""

    TEXT = "text"
    TABLE = "table"


class AnswerType(StrEnum):
    """How an Answer was produced."""

    EXTRACTIVE = "extractive"
    GENERATIVE = "generative"
    OTHER = "other"


class JoinMode(StrEnum):
    """How JoinDocuments combines the document lists of its inputs.

    Values:
        CONCATENATE: Union of all inputs; a duplicated id keeps its highest-scored copy
        MERGE: Weighted sum of scores for documents seen in several inputs
        RECIPROCAL_RANK_FUSION: Scores derived from ranks only (k=61)
    """

    CONCATENATE = "concatenate"
    MERGE = "merge"
    RECIPROCAL_RANK_FUSION = "reciprocal_rank_fusion"


class SplitBy(StrEnum):
    """Unit PreProcessor uses when splitting documents."""

    WORD = "word"
    SENTENCE = "sentence"
    PASSAGE = "passage"
