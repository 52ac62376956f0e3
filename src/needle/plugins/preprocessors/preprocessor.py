# src/needle/plugins/preprocessors/preprocessor.py
"""Document cleaning and splitting.

Splitting works on three units:
- word: whitespace-separated tokens, joined back with single spaces
- sentence: text split after ``.``, ``!`` or ``?`` followed by whitespace
- passage: blocks separated by blank lines

With ``split_respect_sentence_boundary`` (word splitting only) whole
sentences are packed into each split until ``split_length`` words would be
exceeded; overlap then repeats trailing sentences of up to
``split_overlap`` words.
"""

from __future__ import annotations

import re
from typing import Any, cast

from needle.contracts import ContentType, Document, NodeError, NodeResult, SplitBy
from needle.plugins.base import BaseComponent

_SENTENCE_END = re.compile(r"(?<=[.!?])\s+")
_PASSAGE_BREAK = re.compile(r"\n\s*\n")


def _split_units(text: str, split_by: SplitBy) -> list[str]:
    if split_by == SplitBy.WORD:
        return text.split()
    if split_by == SplitBy.SENTENCE:
        return [s.strip() for s in _SENTENCE_END.split(text) if s.strip()]
    return [p.strip() for p in _PASSAGE_BREAK.split(text) if p.strip()]


def _window(units: list[str], length: int, overlap: int) -> list[list[str]]:
    """Fixed-size windows; the last window may be shorter."""
    step = length - overlap
    windows: list[list[str]] = []
    start = 0
    while start < len(units):
        windows.append(units[start : start + length])
        if start + length >= len(units):
            break
        start += step
    return windows


def _sentence_windows(text: str, length: int, overlap: int) -> list[str]:
    """Pack whole sentences into splits of at most ``length`` words."""
    sentences = _split_units(text, SplitBy.SENTENCE)
    splits: list[str] = []
    current: list[str] = []
    current_words = 0
    for sentence in sentences:
        words = len(sentence.split())
        if current and current_words + words > length:
            splits.append(" ".join(current))
            carried: list[str] = []
            carried_words = 0
            for previous in reversed(current):
                previous_words = len(previous.split())
                if carried_words + previous_words > overlap:
                    break
                carried.insert(0, previous)
                carried_words += previous_words
            current, current_words = carried, carried_words
        current.append(sentence)
        current_words += words
    if current:
        splits.append(" ".join(current))
    return splits


class PreProcessor(BaseComponent):
    """Clean and split text Documents.

    Table documents pass through untouched. Each split's meta is a copy of
    the source meta plus ``_split_id``.
    """

    outgoing_edges = 1

    def __init__(
        self,
        clean_whitespace: bool = True,
        clean_empty_lines: bool = True,
        split_by: SplitBy | str | None = SplitBy.WORD,
        split_length: int = 200,
        split_overlap: int = 0,
        split_respect_sentence_boundary: bool = False,
    ) -> None:
        self.clean_whitespace = clean_whitespace
        self.clean_empty_lines = clean_empty_lines
        self.split_by = SplitBy(split_by) if split_by is not None else None
        self.split_length = split_length
        self.split_overlap = split_overlap
        self.split_respect_sentence_boundary = split_respect_sentence_boundary
        self._check_split(self.split_by, split_length, split_overlap, split_respect_sentence_boundary)

    @staticmethod
    def _check_split(split_by: SplitBy | None, length: int, overlap: int, respect_sentences: bool) -> None:
        if split_by is None:
            return
        if length < 1:
            raise ValueError(f"split_length must be positive, got {length}")
        if not 0 <= overlap < length:
            raise ValueError(f"split_overlap must be in [0, split_length), got {overlap} with split_length {length}")
        if respect_sentences and split_by != SplitBy.WORD:
            raise ValueError("split_respect_sentence_boundary is only supported with split_by='word'")

    def clean(self, document: Document, clean_whitespace: bool, clean_empty_lines: bool) -> Document:
        """Normalize whitespace in a text document."""
        if document.content_type != ContentType.TEXT:
            return document
        text = str(document.content)
        if clean_whitespace:
            pages = ["\n".join(line.strip() for line in page.splitlines()) for page in text.split("\f")]
            text = "\f".join(pages).strip()
        if clean_empty_lines:
            text = re.sub(r"\n\n+", "\n\n", text)
        if text == document.content:
            return document
        return Document(content=text, meta=dict(document.meta), id_hash_keys=document.id_hash_keys)

    def split(
        self,
        document: Document,
        split_by: SplitBy | None,
        split_length: int,
        split_overlap: int,
        split_respect_sentence_boundary: bool,
    ) -> list[Document]:
        """Split one document into several."""
        if split_by is None or document.content_type != ContentType.TEXT:
            return [document]
        self._check_split(split_by, split_length, split_overlap, split_respect_sentence_boundary)

        text = str(document.content)
        if split_respect_sentence_boundary:
            chunks = _sentence_windows(text, split_length, split_overlap)
        else:
            joiner = "\n\n" if split_by == SplitBy.PASSAGE else " "
            chunks = [joiner.join(w) for w in _window(_split_units(text, split_by), split_length, split_overlap)]

        return [
            Document(content=chunk, meta={**document.meta, "_split_id": i}, id_hash_keys=document.id_hash_keys)
            for i, chunk in enumerate(chunks)
            if chunk.strip()
        ]

    def process(self, documents: list[Document], **overrides: Any) -> list[Document]:
        """Clean then split ``documents``; overrides replace constructor settings."""
        options = {
            "clean_whitespace": self.clean_whitespace,
            "clean_empty_lines": self.clean_empty_lines,
            "split_by": self.split_by,
            "split_length": self.split_length,
            "split_overlap": self.split_overlap,
            "split_respect_sentence_boundary": self.split_respect_sentence_boundary,
        }
        options.update({k: v for k, v in overrides.items() if v is not None})
        split_by = SplitBy(options["split_by"]) if options["split_by"] is not None else None

        processed: list[Document] = []
        for document in documents:
            cleaned = self.clean(document, options["clean_whitespace"], options["clean_empty_lines"])
            processed.extend(
                self.split(
                    cleaned,
                    split_by,
                    options["split_length"],
                    options["split_overlap"],
                    options["split_respect_sentence_boundary"],
                )
            )
        return processed

    def run(
        self,
        documents: list[Document],
        clean_whitespace: bool | None = None,
        clean_empty_lines: bool | None = None,
        split_by: SplitBy | str | None = None,
        split_length: int | None = None,
        split_overlap: int | None = None,
        split_respect_sentence_boundary: bool | None = None,
    ) -> NodeResult:
        processed = self.process(
            documents,
            clean_whitespace=clean_whitespace,
            clean_empty_lines=clean_empty_lines,
            split_by=split_by,
            split_length=split_length,
            split_overlap=split_overlap,
            split_respect_sentence_boundary=split_respect_sentence_boundary,
        )
        return {"documents": processed}, "output_1"

    def run_batch(
        self,
        documents: list[Document] | list[list[Document]],
        clean_whitespace: bool | None = None,
        clean_empty_lines: bool | None = None,
        split_by: SplitBy | str | None = None,
        split_length: int | None = None,
        split_overlap: int | None = None,
        split_respect_sentence_boundary: bool | None = None,
    ) -> NodeResult:
        overrides = {
            "clean_whitespace": clean_whitespace,
            "clean_empty_lines": clean_empty_lines,
            "split_by": split_by,
            "split_length": split_length,
            "split_overlap": split_overlap,
            "split_respect_sentence_boundary": split_respect_sentence_boundary,
        }
        nested = [isinstance(item, list) for item in documents]
        if any(nested) and not all(nested):
            raise NodeError("PreProcessor batch mixes documents and lists of documents; pass one or the other")
        if documents and nested[0]:
            batches = cast("list[list[Document]]", documents)
            return {"documents": [self.process(docs, **overrides) for docs in batches]}, "output_1"
        return {"documents": self.process(cast("list[Document]", documents), **overrides)}, "output_1"
