# tests/plugins/test_preprocessor.py
"""Tests for PreProcessor cleaning and splitting."""

import pandas as pd
import pytest


def _contents(output: dict) -> list[str]:
    return [d.content for d in output["documents"]]


class TestCleaning:
    """Whitespace and empty-line normalization."""

    def test_clean_whitespace(self) -> None:
        from needle.contracts import Document
        from needle.plugins.preprocessors import PreProcessor

        output, _ = PreProcessor(split_by=None).run(documents=[Document(content="  line one  \n  line two ")])
        assert _contents(output) == ["line one\nline two"]

    def test_clean_empty_lines(self) -> None:
        from needle.contracts import Document
        from needle.plugins.preprocessors import PreProcessor

        output, _ = PreProcessor(split_by=None).run(documents=[Document(content="a\n\n\n\nb")])
        assert _contents(output) == ["a\n\nb"]

    def test_pages_cleaned_separately(self) -> None:
        from needle.contracts import Document
        from needle.plugins.preprocessors import PreProcessor

        output, _ = PreProcessor(split_by=None).run(documents=[Document(content=" one \f two ")])
        assert _contents(output) == ["one\ftwo"]

    def test_unchanged_document_returned_as_is(self) -> None:
        from needle.contracts import Document
        from needle.plugins.preprocessors import PreProcessor

        document = Document(content="clean", meta={"k": "v"})
        output, _ = PreProcessor(split_by=None).run(documents=[document])
        assert output["documents"][0] is document

    def test_tables_untouched(self) -> None:
        from needle.contracts import Document
        from needle.plugins.preprocessors import PreProcessor

        table = Document(content=pd.DataFrame({"a": [1]}), content_type="table")
        output, _ = PreProcessor(split_length=1).run(documents=[table])
        assert output["documents"] == [table]


class TestSplitting:
    """Word, sentence and passage splits."""

    def test_word_split_with_overlap(self) -> None:
        from needle.contracts import Document
        from needle.plugins.preprocessors import PreProcessor

        output, _ = PreProcessor(split_length=3, split_overlap=1).run(documents=[Document(content="a b c d e", meta={"name": "x"})])

        assert _contents(output) == ["a b c", "c d e"]
        assert [d.meta for d in output["documents"]] == [{"name": "x", "_split_id": 0}, {"name": "x", "_split_id": 1}]

    def test_word_split_short_tail(self) -> None:
        from needle.contracts import Document
        from needle.plugins.preprocessors import PreProcessor

        output, _ = PreProcessor(split_length=2).run(documents=[Document(content="a b c d e")])
        assert _contents(output) == ["a b", "c d", "e"]

    def test_sentence_split(self) -> None:
        from needle.contracts import Document
        from needle.plugins.preprocessors import PreProcessor

        output, _ = PreProcessor(split_by="sentence", split_length=2).run(documents=[Document(content="One. Two! Three?")])
        assert _contents(output) == ["One. Two!", "Three?"]

    def test_passage_split(self) -> None:
        from needle.contracts import Document
        from needle.plugins.preprocessors import PreProcessor

        output, _ = PreProcessor(split_by="passage", split_length=2).run(documents=[Document(content="p1\n\np2\n\np3")])
        assert _contents(output) == ["p1\n\np2", "p3"]

    @pytest.mark.parametrize(
        ("overlap", "expected"),
        [
            (0, ["A b c. D e.", "F g h i."]),
            (2, ["A b c. D e.", "D e. F g h i."]),
        ],
    )
    def test_respect_sentence_boundary(self, overlap: int, expected: list[str]) -> None:
        from needle.contracts import Document
        from needle.plugins.preprocessors import PreProcessor

        preprocessor = PreProcessor(split_length=5, split_overlap=overlap, split_respect_sentence_boundary=True)
        output, _ = preprocessor.run(documents=[Document(content="A b c. D e. F g h i.")])
        assert _contents(output) == expected

    def test_split_ids_derived_from_content(self) -> None:
        from needle.contracts import Document
        from needle.plugins.preprocessors import PreProcessor

        output, _ = PreProcessor(split_length=1).run(documents=[Document(content="x y")])
        first, second = output["documents"]
        assert first.id == Document(content="x").id
        assert first.id != second.id

    def test_run_overrides(self) -> None:
        from needle.contracts import Document
        from needle.plugins.preprocessors import PreProcessor

        preprocessor = PreProcessor(split_length=100)
        output, _ = preprocessor.run(documents=[Document(content="a b c d")], split_length=2)

        assert _contents(output) == ["a b", "c d"]
        assert preprocessor.split_length == 100

    def test_invalid_run_override(self) -> None:
        from needle.contracts import Document
        from needle.plugins.preprocessors import PreProcessor

        with pytest.raises(ValueError, match="split_overlap"):
            PreProcessor(split_length=3).run(documents=[Document(content="a b c")], split_overlap=3)

    def test_batch_nested(self) -> None:
        from needle.contracts import Document
        from needle.plugins.preprocessors import PreProcessor

        output, _ = PreProcessor(split_length=1).run_batch(documents=[[Document(content="a b")], [Document(content="c")]])
        assert [[d.content for d in docs] for docs in output["documents"]] == [["a", "b"], ["c"]]

    def test_batch_flat(self) -> None:
        from needle.contracts import Document
        from needle.plugins.preprocessors import PreProcessor

        output, _ = PreProcessor(split_length=1).run_batch(documents=[Document(content="a b")])
        assert _contents(output) == ["a", "b"]

    @pytest.mark.parametrize("nested_first", [True, False])
    def test_batch_mixed_rejected(self, nested_first: bool) -> None:
        from needle.contracts import Document, NodeError
        from needle.plugins.preprocessors import PreProcessor

        single, group = Document(content="c"), [Document(content="a b")]
        documents = [group, single] if nested_first else [single, group]
        with pytest.raises(NodeError, match="mixes documents and lists"):
            PreProcessor().run_batch(documents=documents)  # type: ignore[arg-type]


class TestConfiguration:
    """Constructor validation."""

    @pytest.mark.parametrize(
        ("kwargs", "message"),
        [
            ({"split_length": 0}, "split_length must be positive"),
            ({"split_length": 3, "split_overlap": 3}, "split_overlap"),
            ({"split_overlap": -1}, "split_overlap"),
            ({"split_by": "sentence", "split_respect_sentence_boundary": True}, "only supported with split_by='word'"),
        ],
    )
    def test_invalid(self, kwargs: dict, message: str) -> None:
        from needle.plugins.preprocessors import PreProcessor

        with pytest.raises(ValueError, match=message):
            PreProcessor(**kwargs)

    def test_unknown_split_unit(self) -> None:
        from needle.plugins.preprocessors import PreProcessor

        with pytest.raises(ValueError):
            PreProcessor(split_by="paragraph")

    def test_no_split_ignores_length(self) -> None:
        from needle.plugins.preprocessors import PreProcessor

        assert PreProcessor(split_by=None, split_length=0).split_by is None
