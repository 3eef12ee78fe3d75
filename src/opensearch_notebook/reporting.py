import json
from typing import Any, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from opensearch_notebook.configs.connection import ConnectionConfig
from opensearch_notebook.execution.diagnostics import format_as_yaml, format_raw_request, format_raw_response
from opensearch_notebook.execution.schemas import QueryResult
from opensearch_notebook.parsing.document import get_query_preview
from opensearch_notebook.parsing.schemas import QueryBlock

MAX_DISPLAY_COLUMNS = 10
MAX_DISPLAY_ROWS = 100


class ConsolePresenter:
    """
    Handles all terminal presentation for the opensearch-notebook CLI.
    """
    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    # -------------------------------------------------------------------------
    # Generic Helpers
    # -------------------------------------------------------------------------
    def print_error(self, message: str) -> None:
        self.console.print(f"[bold red]Error:[/bold red] {message}")

    def print_warning(self, message: str) -> None:
        self.console.print(f"[yellow]Warning: {message}[/yellow]")

    def print_header(self, message: str) -> None:
        self.console.print(f"\n[bold magenta]--- {message} ---[/bold magenta]")

    def print_panel(self, content: Any, title: str, style: str = "green") -> None:
        if isinstance(content, (dict, list)):
            content = json.dumps(content, indent=2, default=str)
        self.console.print(Panel(escape(content), title=title, border_style=style))

    # -------------------------------------------------------------------------
    # Block listing
    # -------------------------------------------------------------------------
    def print_blocks(self, blocks: List[QueryBlock], base_config: ConnectionConfig) -> None:
        if not blocks:
            self.print_warning("No query blocks found.")
            return

        table = Table(title="Query Blocks", show_header=True, header_style="bold magenta")
        table.add_column("#", justify="right", style="dim")
        table.add_column("Type")
        table.add_column("Line", justify="right")
        table.add_column("Endpoint")
        table.add_column("Query")

        for index, block in enumerate(blocks):
            effective = base_config.with_overrides(block.connection_overrides)
            preview = block.description or get_query_preview(block.content)
            if block.metadata.method:
                preview = f"{block.metadata.method} {block.metadata.endpoint or ''} {preview}".strip()
            table.add_row(
                str(index),
                block.query_type.value,
                str(block.range.start.line + 1),
                effective.endpoint,
                escape(preview),
            )
        self.console.print(table)

    # -------------------------------------------------------------------------
    # Execution results
    # -------------------------------------------------------------------------
    def print_result(self, index: int, block: QueryBlock, result: QueryResult) -> None:
        title = f"Block {index} ({block.query_type.value})"
        if not result.success:
            self.console.print(
                Panel(
                    f"{escape(result.error or '')}\n\n[dim]Execution time: {result.execution_time}ms[/dim]",
                    title=f"[bold red]{title} failed[/bold red]",
                    border_style="red",
                    expand=False,
                )
            )
            return

        self.console.print(
            f"[bold green]{title} succeeded[/bold green] "
            f"[dim]({result.execution_time}ms, rows: {result.row_count if result.row_count is not None else '-'})[/dim]"
        )
        if isinstance(result.data, list) and result.data and all(isinstance(r, dict) for r in result.data):
            self.print_rows(result.data, result.columns)
        elif result.data is not None:
            self.print_panel(result.data, title="Response", style="cyan")

    def print_rows(self, rows: List[dict], columns: Optional[List[str]] = None) -> None:
        display_columns = (columns or list(rows[0].keys()))[:MAX_DISPLAY_COLUMNS]
        table = Table(show_header=True, header_style="bold cyan")
        for column in display_columns:
            table.add_column(column)

        for row in rows[:MAX_DISPLAY_ROWS]:
            table.add_row(*[self._cell(_nested_value(row, column)) for column in display_columns])
        self.console.print(table)

        if len(rows) > MAX_DISPLAY_ROWS:
            self.console.print(f"[dim]Showing first {MAX_DISPLAY_ROWS} of {len(rows)} rows[/dim]")

    def print_diagnostics(self, result: QueryResult) -> None:
        if result.connection_info:
            self.console.print(
                f"[bold blue]Connection:[/bold blue] {result.connection_info.endpoint} "
                f"(auth: {result.connection_info.auth_type})"
            )
        self.console.print(Panel(escape(format_raw_request(result.request_info)), title="Raw HTTP Request", border_style="blue"))
        self.console.print(Panel(escape(format_raw_response(result)), title="Raw HTTP Response", border_style="blue"))
        if result.request_info:
            self.console.print(
                Panel(escape(format_as_yaml(result.request_info.model_dump())), title="Request Details", border_style="dim")
            )

    def print_summary(self, results: List[QueryResult]) -> None:
        succeeded = sum(1 for r in results if r.success)
        style = "green" if succeeded == len(results) else "red"
        self.console.print(f"\n[bold {style}]{succeeded}/{len(results)} blocks succeeded[/bold {style}]")

    @staticmethod
    def _cell(value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, (dict, list)):
            return escape(json.dumps(value, default=str))
        return escape(str(value))


def _nested_value(row: dict, path: str) -> Any:
    if path in row:
        return row[path]
    current: Any = row.get("_source", row)
    for key in path.split("."):
        if not isinstance(current, dict) or key not in current:
            return None
        current = current[key]
    return current
