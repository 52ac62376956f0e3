"""Routing nodes with more than one outgoing edge."""

from needle.plugins.classifiers.file_type import FileTypeClassifier
from needle.plugins.classifiers.query import QueryClassifier

__all__ = ["FileTypeClassifier", "QueryClassifier"]
