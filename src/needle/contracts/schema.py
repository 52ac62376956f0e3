"""Primitives that flow between nodes: Document, Answer, Label.

Documents are immutable value objects. Nodes that change a score or split
content build new documents with ``model_copy(update=...)`` or the
constructor, never by mutating inputs.
"""

from __future__ import annotations

from typing import Any, Literal

import numpy as np
import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, model_validator

from needle.contracts.enums import AnswerType, ContentType
from needle.core.canonical import stable_hash

# Fields a Document id may be derived from
_HASHABLE_FIELDS = frozenset({"content", "content_type", "meta", "embedding"})


def _table_from_rows(rows: list[list[Any]]) -> pd.DataFrame:
    """Rebuild a table from [header, *rows] form."""
    if not rows:
        return pd.DataFrame()
    return pd.DataFrame(data=rows[1:], columns=rows[0])


def _rows_from_table(table: pd.DataFrame) -> list[list[Any]]:
    return [[str(c) for c in table.columns], *[list(r) for r in table.itertuples(index=False, name=None)]]


class Document(BaseModel):
    """A unit of content: a text passage or a table.

    When ``id`` is not supplied it is derived from the canonical JSON of the
    fields named in ``id_hash_keys``. Identical content therefore always
    yields the same id, which JoinDocuments relies on for de-duplication.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    content: str | pd.DataFrame
    content_type: ContentType = ContentType.TEXT
    id: str
    meta: dict[str, Any] = Field(default_factory=dict)
    score: float | None = None
    embedding: np.ndarray | None = None
    id_hash_keys: tuple[str, ...] = ("content",)

    @model_validator(mode="before")
    @classmethod
    def _derive_id(cls, data: Any) -> Any:
        if not isinstance(data, dict) or data.get("id"):
            return data
        keys = tuple(data.get("id_hash_keys") or ("content",))
        unknown = set(keys) - _HASHABLE_FIELDS
        if unknown:
            raise ValueError(f"id_hash_keys may only name {sorted(_HASHABLE_FIELDS)}, got {sorted(unknown)}")
        defaults = {"content_type": ContentType.TEXT.value, "meta": {}, "embedding": None}
        material = {key: data.get(key, defaults.get(key)) for key in keys}
        return {**data, "id": stable_hash(material)}

    @model_validator(mode="after")
    def _check_content(self) -> Document:
        if self.content_type == ContentType.TABLE and not isinstance(self.content, pd.DataFrame):
            raise ValueError("Table documents must carry a pandas DataFrame as content")
        if self.content_type == ContentType.TEXT and not isinstance(self.content, str):
            raise ValueError("Text documents must carry a string as content")
        return self

    def __eq__(self, other: object) -> bool:
        # Same id and content; meta and score may differ
        if not isinstance(other, Document):
            return NotImplemented
        if self.id != other.id or self.content_type != other.content_type:
            return False
        if isinstance(self.content, pd.DataFrame):
            return isinstance(other.content, pd.DataFrame) and self.content.equals(other.content)
        return self.content == other.content

    def __hash__(self) -> int:
        return hash(self.id)

    def to_dict(self, *, json_safe: bool = False) -> dict[str, Any]:
        """Convert to a plain dict.

        Args:
            json_safe: Render tables as ``[header, *rows]`` and embeddings as lists
        """
        content: Any = self.content
        embedding: Any = self.embedding
        if json_safe:
            if isinstance(content, pd.DataFrame):
                content = _rows_from_table(content)
            if embedding is not None:
                embedding = embedding.tolist()
        return {
            "id": self.id,
            "content": content,
            "content_type": self.content_type.value,
            "meta": dict(self.meta),
            "score": self.score,
            "embedding": embedding,
            "id_hash_keys": list(self.id_hash_keys),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Document:
        """Inverse of ``to_dict``; accepts both plain and json-safe forms."""
        fields = dict(data)
        if fields.get("content_type") == ContentType.TABLE and isinstance(fields.get("content"), list):
            fields["content"] = _table_from_rows(fields["content"])
        if isinstance(fields.get("embedding"), list):
            fields["embedding"] = np.asarray(fields["embedding"], dtype=np.float32)
        return cls(**fields)


class Answer(BaseModel):
    """An answer to a query, extracted or generated from documents."""

    model_config = ConfigDict(frozen=True)

    answer: str
    type: AnswerType = AnswerType.EXTRACTIVE
    score: float | None = None
    context: str | None = None
    document_ids: tuple[str, ...] | None = None
    meta: dict[str, Any] = Field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Answer:
        return cls.model_validate(data)


class Label(BaseModel):
    """Annotated ground truth for a query (gold label or user feedback)."""

    model_config = ConfigDict(frozen=True)

    query: str
    document: Document
    is_correct_answer: bool
    is_correct_document: bool
    origin: Literal["user-feedback", "gold-label"]
    answer: Answer | None = None
    id: str = ""
    meta: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _derive_id(self) -> Label:
        if not self.id:
            material = {
                "query": self.query,
                "document_id": self.document.id,
                "answer": self.answer.answer if self.answer is not None else None,
            }
            # Frozen model: bypass __setattr__ once during construction
            object.__setattr__(self, "id", stable_hash(material))
        return self

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "query": self.query,
            "document": self.document.to_dict(json_safe=True),
            "is_correct_answer": self.is_correct_answer,
            "is_correct_document": self.is_correct_document,
            "origin": self.origin,
            "answer": self.answer.to_dict() if self.answer is not None else None,
            "meta": dict(self.meta),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Label:
        fields = dict(data)
        fields["document"] = Document.from_dict(fields["document"])
        if fields.get("answer") is not None:
            fields["answer"] = Answer.from_dict(fields["answer"])
        return cls(**fields)
