# src/needle/plugins/classifiers/file_type.py
"""Route file paths by extension."""

from __future__ import annotations

from pathlib import Path

from needle.contracts import NodeError, NodeResult
from needle.core.logging import get_logger
from needle.plugins.base import BaseComponent

logger = get_logger(__name__)

DEFAULT_TYPES = ["txt", "pdf", "md", "docx", "html"]


class FileTypeClassifier(BaseComponent):
    """Route files to a branch per extension.

    Files with extension ``supported_types[i]`` leave on ``output_{i+1}``.
    All files of one call must share an extension. With
    ``raise_on_error=False`` an extra last branch receives unsupported types
    instead of failing.
    """

    def __init__(self, supported_types: list[str] | None = None, raise_on_error: bool = True) -> None:
        types = list(supported_types) if supported_types is not None else list(DEFAULT_TYPES)
        if not types:
            raise ValueError("supported_types must not be empty")
        for file_type in types:
            if "." in file_type:
                raise ValueError(f"Extensions are given without the leading dot, got '{file_type}'")
        if len(set(types)) != len(types):
            raise ValueError(f"supported_types contains duplicates: {types}")

        self.supported_types = [t.lower() for t in types]
        self.raise_on_error = raise_on_error
        self.outgoing_edges = len(self.supported_types) + (0 if raise_on_error else 1)

    @staticmethod
    def _extension(path: str | Path) -> str:
        return Path(path).suffix.lstrip(".").lower()

    def _route(self, paths: list[str | Path]) -> str:
        extensions = {self._extension(p) for p in paths}
        if len(extensions) > 1:
            raise NodeError(f"Multiple file types are not allowed at once: {sorted(extensions)}")
        extension = extensions.pop()
        if extension in self.supported_types:
            return f"output_{self.supported_types.index(extension) + 1}"
        if self.raise_on_error:
            raise NodeError(f"Unsupported file type '{extension}'. Supported types: {', '.join(self.supported_types)}")
        logger.warning("Unsupported file type routed to fallback branch", extension=extension)
        return f"output_{self.outgoing_edges}"

    def run(self, file_paths: str | Path | list[str | Path]) -> NodeResult:
        paths = [file_paths] if isinstance(file_paths, str | Path) else list(file_paths)
        if not paths:
            raise NodeError("FileTypeClassifier received no file paths")
        return {"file_paths": paths}, self._route(paths)

    def run_batch(self, file_paths: str | Path | list[str | Path]) -> NodeResult:
        return self.run(file_paths=file_paths)
