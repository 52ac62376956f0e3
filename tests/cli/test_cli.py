"""Tests for the needle CLI."""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

# Stderr output is combined with stdout in result.output
runner = CliRunner()

INDEXING_YAML = """\
version: "1"
components:
  - name: Converter
    type: TextConverter
  - name: Splitter
    type: PreProcessor
    params:
      split_length: 2
pipelines:
  - name: indexing
    nodes:
      - name: Converter
        inputs: [File]
      - name: Splitter
        inputs: [Converter]
"""


@pytest.fixture
def indexing_settings(tmp_path: Path) -> Path:
    path = tmp_path / "indexing.yaml"
    path.write_text(INDEXING_YAML)
    return path


@pytest.fixture
def input_file(tmp_path: Path) -> Path:
    path = tmp_path / "notes.txt"
    path.write_text("one two three")
    return path


class TestCLIBasics:
    """Test basic CLI functionality."""

    def test_version_flag(self) -> None:
        """--version shows version info."""
        from needle import __version__
        from needle.cli import app

        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"needle version {__version__}" in result.stdout

    def test_help_flag(self) -> None:
        """--help shows available commands."""
        from needle.cli import app

        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("run", "validate", "nodes"):
            assert command in result.stdout

    def test_missing_env_file(self, tmp_path: Path) -> None:
        from needle.cli import app

        result = runner.invoke(app, ["--env-file", str(tmp_path / "missing.env"), "nodes"])
        assert result.exit_code == 1
        assert ".env file not found" in result.output


class TestNodesCommand:
    """needle nodes."""

    def test_lists_builtin_nodes(self) -> None:
        from needle.cli import app

        result = runner.invoke(app, ["nodes"])

        assert result.exit_code == 0
        assert "NODES:" in result.stdout
        for name in ("Retriever", "TextConverter", "JoinDocuments", "QueryClassifier"):
            assert name in result.stdout
        assert "Combine documents from several inputs into one list." in result.stdout
        assert "JoinNode" not in result.stdout


class TestValidateCommand:
    """needle validate."""

    def test_valid(self, indexing_settings: Path) -> None:
        from needle.cli import app

        result = runner.invoke(app, ["validate", "-s", str(indexing_settings)])

        assert result.exit_code == 0
        assert "Pipeline configuration valid." in result.stdout
        assert "Root: File" in result.stdout
        assert "Nodes: Converter, Splitter" in result.stdout
        assert "Graph: 3 nodes, 2 edges" in result.stdout

    def test_missing_file(self, tmp_path: Path) -> None:
        from needle.cli import app

        result = runner.invoke(app, ["validate", "-s", str(tmp_path / "missing.yaml")])
        assert result.exit_code == 1
        assert "File Not Found" in result.output

    def test_schema_error(self, tmp_path: Path) -> None:
        from needle.cli import app

        path = tmp_path / "bad.yaml"
        path.write_text('version: "1"\npipelines: []\n')
        result = runner.invoke(app, ["validate", "-s", str(path)])

        assert result.exit_code == 1
        assert "Configuration Validation Failed" in result.output
        assert "pipelines" in result.output

    def test_unknown_component_type(self, tmp_path: Path) -> None:
        from needle.cli import app

        path = tmp_path / "typo.yaml"
        path.write_text(INDEXING_YAML.replace("type: TextConverter", "type: TextConvertor"))
        result = runner.invoke(app, ["validate", "-s", str(path)])

        assert result.exit_code == 1
        assert "Pipeline Error" in result.output
        assert "Unknown component type" in result.output

    def test_unset_env_var_kept_verbatim(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """A ${VAR} with no value and no default is passed through, not rejected."""
        from needle.cli import app
        from needle.engine.builder import build_pipeline, load_settings_file

        monkeypatch.delenv("CLI_UNSET_VAR_FOR_TEST", raising=False)
        path = tmp_path / "retrieval.yaml"
        path.write_text(
            """\
version: "1"
components:
  - name: Retriever
    type: Retriever
    params:
      index: ${CLI_UNSET_VAR_FOR_TEST}
pipelines:
  - name: query
    nodes:
      - name: Retriever
        inputs: [Query]
"""
        )
        result = runner.invoke(app, ["validate", "-s", str(path)])

        assert result.exit_code == 0, result.output
        assert "Nodes: Retriever" in result.stdout
        pipeline = build_pipeline(load_settings_file(path))
        assert pipeline.get_node("Retriever").index == "${CLI_UNSET_VAR_FOR_TEST}"

    def test_pipeline_selection(self, tmp_path: Path) -> None:
        from needle.cli import app

        path = tmp_path / "two.yaml"
        path.write_text(
            INDEXING_YAML
            + """\
  - name: splitting
    nodes:
      - name: Splitter
        inputs: [File]
"""
        )

        ambiguous = runner.invoke(app, ["validate", "-s", str(path)])
        assert ambiguous.exit_code == 1
        assert "several pipelines" in ambiguous.output

        selected = runner.invoke(app, ["validate", "-s", str(path), "-p", "splitting"])
        assert selected.exit_code == 0
        assert "Nodes: Splitter" in selected.stdout


class TestRunCommand:
    """needle run."""

    def test_json_output(self, indexing_settings: Path, input_file: Path) -> None:
        from needle.cli import app

        result = runner.invoke(app, ["run", "-s", str(indexing_settings), "-f", str(input_file), "--format", "json"])

        assert result.exit_code == 0, result.output
        output = json.loads(result.stdout.strip().splitlines()[-1])
        assert [d["content"] for d in output["documents"]] == ["one two", "three"]
        assert output["documents"][0]["meta"] == {"name": "notes.txt", "_split_id": 0}
        assert "params" not in output

    def test_console_output(self, indexing_settings: Path, input_file: Path) -> None:
        from needle.cli import app

        result = runner.invoke(app, ["run", "-s", str(indexing_settings), "-f", str(input_file)])

        assert result.exit_code == 0, result.output
        assert "Documents (2):" in result.stdout
        assert "one two" in result.stdout

    def test_params(self, indexing_settings: Path, input_file: Path) -> None:
        from needle.cli import app

        result = runner.invoke(
            app,
            ["run", "-s", str(indexing_settings), "-f", str(input_file), "--params", '{"Splitter": {"split_length": 1}}', "--format", "json"],
        )

        assert result.exit_code == 0, result.output
        output = json.loads(result.stdout.strip().splitlines()[-1])
        assert [d["content"] for d in output["documents"]] == ["one", "two", "three"]

    def test_debug_trace(self, indexing_settings: Path, input_file: Path) -> None:
        from needle.cli import app

        result = runner.invoke(app, ["run", "-s", str(indexing_settings), "-f", str(input_file), "--debug", "--format", "json"])

        assert result.exit_code == 0, result.output
        output = json.loads(result.stdout.strip().splitlines()[-1])
        assert list(output["_debug"]) == ["File", "Converter", "Splitter"]
        assert output["_debug"]["Converter"]["input"]["file_paths"] == [str(input_file)]

    @pytest.mark.parametrize(
        ("params", "message"),
        [("{not json", "not valid JSON"), ("[1, 2]", "must be a JSON object")],
    )
    def test_invalid_params(self, indexing_settings: Path, input_file: Path, params: str, message: str) -> None:
        from needle.cli import app

        result = runner.invoke(app, ["run", "-s", str(indexing_settings), "-f", str(input_file), "--params", params])

        assert result.exit_code == 1
        assert "Invalid Params" in result.output
        assert message in result.output

    def test_unknown_param_node(self, indexing_settings: Path, input_file: Path) -> None:
        from needle.cli import app

        result = runner.invoke(app, ["run", "-s", str(indexing_settings), "-f", str(input_file), "--params", '{"Reader": {"top_k": 1}}'])

        assert result.exit_code == 1
        assert "Error during pipeline execution" in result.output
        assert "Reader" in result.output

    def test_node_failure_json(self, tmp_path: Path) -> None:
        from needle.cli import app

        path = tmp_path / "query.yaml"
        path.write_text(
            """\
version: "1"
components:
  - name: Retriever
    type: Retriever
pipelines:
  - name: query
    nodes:
      - name: Retriever
        inputs: [Query]
"""
        )
        result = runner.invoke(app, ["run", "-s", str(path), "-q", "anything", "--format", "json"])

        assert result.exit_code == 1
        error = json.loads(result.output.strip().splitlines()[-1])
        assert error["event"] == "error"
        assert error["error_type"] == "NodeExecutionError"
        assert "no document_store" in error["error"]

    def test_missing_input(self, indexing_settings: Path) -> None:
        from needle.cli import app

        result = runner.invoke(app, ["run", "-s", str(indexing_settings)])

        assert result.exit_code == 1
        assert "Error during pipeline execution" in result.output
