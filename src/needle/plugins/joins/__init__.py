"""Join nodes: merge the outputs of several predecessors."""

from needle.plugins.joins.answers import JoinAnswers
from needle.plugins.joins.base import JoinNode
from needle.plugins.joins.documents import JoinDocuments

__all__ = ["JoinAnswers", "JoinDocuments", "JoinNode"]
