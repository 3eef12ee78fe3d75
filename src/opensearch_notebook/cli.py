#!/usr/bin/env python3
"""CLI for running query blocks embedded in Markdown/RST documents."""
import asyncio
import json
import pathlib
from typing import List, Optional

import typer
from typing_extensions import Annotated

from opensearch_notebook.common.logger import configure_logging
from opensearch_notebook.common.settings import settings
from opensearch_notebook.configs.connection import ConnectionConfig
from opensearch_notebook.configs.manager import ConfigManager
from opensearch_notebook.execution.connection import ConnectionManager
from opensearch_notebook.execution.engine import QueryExecutionEngine
from opensearch_notebook.execution.schemas import QueryResult
from opensearch_notebook.parsing.document import parse_document_with_overrides
from opensearch_notebook.parsing.schemas import QueryBlock
from opensearch_notebook.reporting import ConsolePresenter

RST_SUFFIXES = {".rst", ".rest"}

app = typer.Typer(
    name="opensearch-notebook",
    help="Run SQL, PPL and REST query blocks embedded in Markdown or reStructuredText documents.",
    no_args_is_help=True,
    add_completion=False,
)

FileArgument = Annotated[pathlib.Path, typer.Argument(help="Markdown or reStructuredText document")]


def detect_language(path: pathlib.Path) -> str:
    return "restructuredtext" if path.suffix.lower() in RST_SUFFIXES else "markdown"


def load_blocks(path: pathlib.Path) -> List[QueryBlock]:
    text = path.read_text(encoding="utf-8")
    return parse_document_with_overrides(text, detect_language(path))


async def run_blocks(
    engine: QueryExecutionEngine, blocks: List[QueryBlock], explain: bool = False
) -> List[QueryResult]:
    results = []
    for block in blocks:
        if explain:
            results.append(await engine.execute_explain_query_from_block(block))
        else:
            results.append(await engine.execute_query_from_block(block))
    return results


def _prepare(ctx: typer.Context, file: pathlib.Path, presenter: ConsolePresenter) -> ConnectionConfig:
    """Checks the document exists and loads the base connection config."""
    if not file.exists():
        presenter.print_error(f"File not found: {file}")
        raise typer.Exit(code=2)

    try:
        return ConfigManager(settings).load_connection_config(ctx.obj.get("config"))
    except (FileNotFoundError, ValueError) as e:
        presenter.print_error(str(e))
        raise typer.Exit(code=2)


@app.callback()
def global_callback(
    ctx: typer.Context,
    config: Annotated[Optional[pathlib.Path], typer.Option("--config", help="Path to a connection config YAML")] = None,
    env: Annotated[Optional[str], typer.Option("--env", "-e", help="Load .env.<ENV> on top of .env")] = None,
    json_logs: Annotated[bool, typer.Option("--json-logs", help="Enable structured JSON logging")] = False,
    log_level: Annotated[Optional[str], typer.Option("--log-level", help="Set the logging level")] = None,
):
    """
    OpenSearch Notebook CLI Entry Point.
    """
    if env:
        settings.configure_env(env)

    configure_logging(level=(log_level or settings.log_level).upper(), json_format=json_logs or settings.log_json)
    ctx.obj = {"config": config}


@app.command()
def blocks(ctx: typer.Context, file: FileArgument):
    """
    List the query blocks of a document with their effective endpoint.
    """
    presenter = ConsolePresenter()
    base_config = _prepare(ctx, file, presenter)
    presenter.print_blocks(load_blocks(file), base_config)


@app.command()
def run(
    ctx: typer.Context,
    file: FileArgument,
    index: Annotated[Optional[int], typer.Option("--index", "-i", help="Only run the block at this position")] = None,
    explain: Annotated[bool, typer.Option("--explain", help="Run the explain endpoint instead (sql/ppl)")] = False,
    as_json: Annotated[bool, typer.Option("--json", help="Print results as JSON")] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show raw HTTP request/response diagnostics")] = False,
):
    """
    Execute the query blocks of a document.
    """
    presenter = ConsolePresenter()
    base_config = _prepare(ctx, file, presenter)

    document_blocks = load_blocks(file)
    indexed = list(enumerate(document_blocks))
    if index is not None:
        if not 0 <= index < len(document_blocks):
            presenter.print_error(f"Block index {index} out of range (document has {len(document_blocks)} blocks)")
            raise typer.Exit(code=2)
        indexed = [indexed[index]]

    engine = QueryExecutionEngine(ConnectionManager(base_config))
    results = asyncio.run(run_blocks(engine, [block for _, block in indexed], explain=explain))

    if as_json:
        payload = [result.model_dump(mode="json") for result in results]
        presenter.console.print_json(json.dumps(payload, default=str))
    else:
        for (position, block), result in zip(indexed, results):
            presenter.print_result(position, block, result)
            if verbose:
                presenter.print_diagnostics(result)
        presenter.print_summary(results)

    if not all(result.success for result in results):
        raise typer.Exit(code=1)


def main():
    app()


if __name__ == "__main__":
    main()
