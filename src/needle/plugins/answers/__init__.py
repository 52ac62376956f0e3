"""Nodes that produce answers."""

from needle.plugins.answers.docs2answers import Docs2Answers

__all__ = ["Docs2Answers"]
