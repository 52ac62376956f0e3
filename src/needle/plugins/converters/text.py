# src/needle/plugins/converters/text.py
"""Plain text file converter."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from needle.contracts import Document, NodeError, NodeResult
from needle.core.logging import get_logger
from needle.plugins.base import BaseComponent

logger = get_logger(__name__)

# A line is treated as a numeric table row when more than this share of its
# words contain digits and it does not end like a sentence
_NUMERIC_LINE_RATIO = 0.4


def _is_numeric_row(line: str) -> bool:
    words = line.split()
    if not words:
        return False
    digit_words = [w for w in words if any(c.isdigit() for c in w)]
    return len(digit_words) / len(words) > _NUMERIC_LINE_RATIO and not line.strip().endswith(".")


class TextConverter(BaseComponent):
    """Convert .txt files into text Documents.

    Pages are separated by form feeds and kept that way in the document
    content. Each document's meta carries the file ``name`` plus any meta
    passed for that file.
    """

    outgoing_edges = 1

    def __init__(
        self,
        remove_numeric_tables: bool = False,
        encoding: str = "utf-8",
        id_hash_keys: list[str] | None = None,
    ) -> None:
        self.remove_numeric_tables = remove_numeric_tables
        self.encoding = encoding
        self.id_hash_keys = id_hash_keys

    def convert(
        self,
        file_path: Path,
        meta: dict[str, Any] | None = None,
        remove_numeric_tables: bool | None = None,
        encoding: str | None = None,
        id_hash_keys: list[str] | None = None,
    ) -> Document:
        """Read one file into a Document.

        Raises:
            NodeError: If the file does not exist
        """
        if not file_path.is_file():
            raise NodeError(f"File not found: {file_path}")
        strip_tables = self.remove_numeric_tables if remove_numeric_tables is None else remove_numeric_tables
        text = file_path.read_text(encoding=encoding or self.encoding)

        pages = []
        for page in text.split("\f"):
            lines = page.splitlines()
            if strip_tables:
                lines = [line for line in lines if not _is_numeric_row(line)]
            pages.append("\n".join(lines))

        fields: dict[str, Any] = {
            "content": "\f".join(pages),
            "meta": {"name": file_path.name, **(meta or {})},
        }
        keys = id_hash_keys or self.id_hash_keys
        if keys:
            fields["id_hash_keys"] = tuple(keys)
        return Document(**fields)

    def run(
        self,
        file_paths: list[str | Path] | str | Path,
        meta: dict[str, Any] | list[dict[str, Any]] | None = None,
        remove_numeric_tables: bool | None = None,
        encoding: str | None = None,
        id_hash_keys: list[str] | None = None,
    ) -> NodeResult:
        paths = [Path(p) for p in ([file_paths] if isinstance(file_paths, str | Path) else file_paths)]
        if isinstance(meta, list):
            if len(meta) != len(paths):
                raise NodeError(f"Got {len(meta)} meta entries for {len(paths)} files; pass one meta dict per file.")
            metas: list[dict[str, Any] | None] = list(meta)
        else:
            metas = [meta] * len(paths)

        documents = [
            self.convert(path, meta=file_meta, remove_numeric_tables=remove_numeric_tables, encoding=encoding, id_hash_keys=id_hash_keys)
            for path, file_meta in zip(paths, metas, strict=True)
        ]
        logger.debug("Converted text files", files=len(paths))
        return {"documents": documents}, "output_1"

    def run_batch(
        self,
        file_paths: list[str | Path] | str | Path,
        meta: dict[str, Any] | list[dict[str, Any]] | None = None,
        remove_numeric_tables: bool | None = None,
        encoding: str | None = None,
        id_hash_keys: list[str] | None = None,
    ) -> NodeResult:
        return self.run(
            file_paths=file_paths,
            meta=meta,
            remove_numeric_tables=remove_numeric_tables,
            encoding=encoding,
            id_hash_keys=id_hash_keys,
        )
