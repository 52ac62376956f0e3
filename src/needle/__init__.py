"""
Needle: node-based question-answering and search pipelines.

Pipelines are directed acyclic graphs of named nodes (converters,
retrievers, classifiers, joins) walked from a single Query or File root.
"""

__version__ = "0.1.0"
