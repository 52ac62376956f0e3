# src/needle/cli.py
"""The ``needle`` command: validate, run and inspect pipeline descriptions."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Literal

import pandas as pd
import typer
from dynaconf.vendor.ruamel.yaml.parser import ParserError as YamlParserError
from dynaconf.vendor.ruamel.yaml.scanner import ScannerError as YamlScannerError

from needle import __version__
from needle.contracts import Answer, Document, Label, NeedleError, PipelineConfigError
from needle.engine.builder import get_plugin_manager, load_settings_file

__all__ = ["app"]

app = typer.Typer(
    name="needle",
    help="Needle: composable document retrieval and question answering pipelines.",
    no_args_is_help=True,
)


def _show_version(value: bool) -> None:
    if value:
        typer.echo(f"needle version {__version__}")
        raise typer.Exit()


def _read_env(no_dotenv: bool, env_file: Path | None) -> None:
    """Populate os.environ from a .env file before settings are expanded.

    Without ``env_file`` python-dotenv walks up from the working directory.
    Variables already set in the environment always win.
    """
    from dotenv import load_dotenv

    if no_dotenv:
        if env_file is not None:
            typer.secho(f"Warning: --no-dotenv given, not reading {env_file}.", fg=typer.colors.YELLOW, err=True)
        return
    if env_file is None:
        load_dotenv(override=False)
        return
    if not env_file.is_file():
        typer.secho(f"Error: .env file not found: {env_file}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    load_dotenv(env_file, override=False)


@app.callback()
def main(
    version: bool | None = typer.Option(
        None, "--version", "-V", callback=_show_version, is_eager=True, help="Print the needle version."
    ),
    no_dotenv: bool = typer.Option(False, "--no-dotenv", help="Do not read a .env file."),
    env_file: Path | None = typer.Option(None, "--env-file", help="Read this .env file instead of searching for one."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every node the executor runs."),
    json_logs: bool = typer.Option(False, "--json-logs", help="Write logs to stderr as JSON lines."),
) -> None:
    """Needle: composable document retrieval and question answering pipelines."""
    from needle.core.logging import configure_logging

    # stdout carries pipeline results
    configure_logging(json_output=json_logs, level="DEBUG" if verbose else "INFO", stream=sys.stderr)
    _read_env(no_dotenv, env_file)


def _fail(title: str, message: str, *, hint: str | None = None, details: list[str] | None = None) -> typer.Exit:
    """Print an error panel to stderr and return the Exit to raise."""
    from rich.console import Console
    from rich.panel import Panel
    from rich.text import Text

    body = Text(message)
    if details:
        body.append("\n")
        for detail in details:
            body.append(f"\n  - {detail}", style="dim")
    if hint:
        body.append("\n\n")
        body.append(hint, style="yellow")
    Console(stderr=True).print(Panel(body, title=f"[red bold]{title}[/]", border_style="red", padding=(0, 1)))
    return typer.Exit(1)


def _load_pipeline(settings: str, pipeline_name: str | None) -> Any:
    """Read ``settings`` and build the selected pipeline, or exit with a panel."""
    from pydantic import ValidationError

    from needle.engine.builder import build_pipeline

    path = Path(settings).expanduser()
    try:
        config = load_settings_file(path)
    except (YamlParserError, YamlScannerError) as e:
        problem = getattr(e, "problem", None)
        raise _fail(
            "YAML Syntax Error",
            f"{path.name} is not valid YAML",
            details=[str(problem)] if problem else None,
        ) from None
    except FileNotFoundError:
        raise _fail("File Not Found", f"No settings file at {settings}") from None
    except PipelineConfigError as e:
        details = None
        if isinstance(e.__cause__, ValidationError):
            details = [f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.__cause__.errors()]
        raise _fail(
            "Configuration Validation Failed",
            f"{path.name} does not describe a valid set of pipelines",
            details=details,
        ) from None

    try:
        return build_pipeline(config, pipeline_name=pipeline_name, plugin_manager=get_plugin_manager())
    except PipelineConfigError as e:
        raise _fail("Pipeline Error", str(e), hint="'needle nodes' lists the registered component types.") from None


def _to_jsonable(value: Any) -> Any:
    """Render a pipeline result for JSON output."""
    if isinstance(value, Document):
        return value.to_dict(json_safe=True)
    if isinstance(value, Answer | Label):
        return value.to_dict()
    if isinstance(value, dict):
        return {str(k): _to_jsonable(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [_to_jsonable(v) for v in value]
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, pd.DataFrame):
        return [list(value.columns), *value.values.tolist()]
    return value


@app.command()
def validate(
    settings: str = typer.Option(
        ...,
        "--settings",
        "-s",
        help="Path to pipeline YAML file.",
    ),
    pipeline_name: str | None = typer.Option(
        None,
        "--pipeline",
        "-p",
        help="Pipeline to validate (required if the file declares several).",
    ),
) -> None:
    """Validate a pipeline description without running it."""
    pipeline = _load_pipeline(settings, pipeline_name)
    typer.echo("Pipeline configuration valid.")
    typer.echo(f"  Root: {pipeline.root_node}")
    typer.echo(f"  Nodes: {', '.join(pipeline.components)}")
    typer.echo(f"  Graph: {pipeline.graph.node_count} nodes, {pipeline.graph.edge_count} edges")


@app.command()
def run(
    settings: str = typer.Option(
        ...,
        "--settings",
        "-s",
        help="Path to pipeline YAML file.",
    ),
    pipeline_name: str | None = typer.Option(
        None,
        "--pipeline",
        "-p",
        help="Pipeline to run (required if the file declares several).",
    ),
    query: str | None = typer.Option(
        None,
        "--query",
        "-q",
        help="Query text for Query-rooted pipelines.",
    ),
    files: list[Path] | None = typer.Option(
        None,
        "--file",
        "-f",
        help="Input file for File-rooted pipelines (repeatable).",
    ),
    params: str | None = typer.Option(
        None,
        "--params",
        help='Run params as JSON, e.g. \'{"Retriever": {"top_k": 3}}\'.',
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Include the per-node debug trace in the output.",
    ),
    output_format: Literal["console", "json"] = typer.Option(
        "console",
        "--format",
        help="'console' for a readable summary, 'json' for one JSON object.",
    ),
) -> None:
    """Run a pipeline once and print its result."""
    run_params: dict[str, Any] | None = None
    if params is not None:
        try:
            run_params = json.loads(params)
        except json.JSONDecodeError as e:
            raise _fail("Invalid Params", f"--params is not valid JSON: {e}") from None
        if not isinstance(run_params, dict):
            raise _fail("Invalid Params", "--params must be a JSON object keyed by node name.")

    pipeline = _load_pipeline(settings, pipeline_name)

    try:
        result = pipeline.run(
            query=query,
            file_paths=list(files) if files else None,
            params=run_params,
            debug=debug or None,
        )
    except NeedleError as e:
        if output_format == "json":
            typer.echo(
                json.dumps({"event": "error", "error": str(e), "error_type": type(e).__name__}),
                err=True,
            )
        else:
            typer.echo(f"Error during pipeline execution: {e}", err=True)
        raise typer.Exit(1) from None

    output = _to_jsonable({k: v for k, v in result.items() if k != "params"})
    if output_format == "json":
        typer.echo(json.dumps(output, default=str))
        return

    if "answers" in output:
        typer.echo(f"Answers ({len(output['answers'])}):")
        for answer in output["answers"]:
            typer.echo(f"  - {answer['answer']} (score={answer['score']})")
    if "documents" in output:
        typer.echo(f"Documents ({len(output['documents'])}):")
        for document in output["documents"]:
            content = document["content"]
            preview = content[:80] if isinstance(content, str) else f"<table {len(content) - 1} rows>"
            typer.echo(f"  - [{document['id'][:12]}] {preview}")
    if "_debug" in output:
        typer.echo("Debug trace:")
        typer.echo(json.dumps(output["_debug"], indent=2, default=str))


@app.command()
def nodes() -> None:
    """List available component types."""
    specs = get_plugin_manager().get_specs()
    typer.echo("\nNODES:")
    for spec in specs:
        if spec.is_node:
            typer.echo(f"  {spec.name:20} - {spec.description}")
    others = [spec for spec in specs if not spec.is_node]
    if others:
        typer.echo("\nOTHER COMPONENTS:")
        for spec in others:
            typer.echo(f"  {spec.name:20} - {spec.description}")
    typer.echo()


if __name__ == "__main__":
    app()
