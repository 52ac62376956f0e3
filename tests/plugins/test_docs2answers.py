# tests/plugins/test_docs2answers.py
"""Tests for Docs2Answers."""

import pandas as pd


class TestDocs2Answers:
    """Converting retrieved documents into answers."""

    def test_faq_answer_from_meta(self) -> None:
        from needle.contracts import AnswerType, Document
        from needle.plugins.answers import Docs2Answers

        document = Document(content="What is the capital of France?", meta={"answer": "Paris", "source": "faq"}, score=0.7)
        output, branch = Docs2Answers().run(query="capital", documents=[document])

        assert branch == "output_1"
        assert output["query"] == "capital"
        [answer] = output["answers"]
        assert answer.answer == "Paris"
        assert answer.type == AnswerType.OTHER
        assert answer.score == 0.7
        assert answer.context == "What is the capital of France?"
        assert answer.document_ids == (document.id,)
        assert answer.meta == {"source": "faq"}

    def test_content_used_without_meta_answer(self) -> None:
        from needle.contracts import Document
        from needle.plugins.answers import Docs2Answers

        output, _ = Docs2Answers().run(query="q", documents=[Document(content="plain text")])
        assert output["answers"][0].answer == "plain text"

    def test_custom_meta_key(self) -> None:
        from needle.contracts import Document
        from needle.plugins.answers import Docs2Answers

        document = Document(content="q", meta={"reply": "r", "answer": "ignored"})
        output, _ = Docs2Answers(answer_meta_key="reply").run(query="q", documents=[document])

        assert output["answers"][0].answer == "r"
        assert output["answers"][0].meta == {"answer": "ignored"}

    def test_tables_skipped(self) -> None:
        from needle.contracts import Document
        from needle.plugins.answers import Docs2Answers

        table = Document(content=pd.DataFrame({"a": [1]}), content_type="table")
        output, _ = Docs2Answers().run(query="q", documents=[table, Document(content="text")])
        assert [a.answer for a in output["answers"]] == ["text"]

    def test_run_batch(self) -> None:
        from needle.contracts import Document
        from needle.plugins.answers import Docs2Answers

        output, _ = Docs2Answers().run_batch(
            queries=["q1", "q2"],
            documents=[[Document(content="a")], [Document(content="b"), Document(content="c")]],
        )

        assert output["queries"] == ["q1", "q2"]
        assert [[a.answer for a in answers] for answers in output["answers"]] == [["a"], ["b", "c"]]
