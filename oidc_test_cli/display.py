"""Table rendering of request parameters and JSON results."""
from __future__ import annotations

import json
from typing import Any, Iterable, Mapping, Optional, Tuple

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

MAX_COLUMN_WIDTH = 80


def truncate_line(line: str) -> str:
    if len(line) > MAX_COLUMN_WIDTH:
        return f"{line[:MAX_COLUMN_WIDTH]}..."
    return line


def format_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return json.dumps(value)
    if isinstance(value, list):
        return "[" + ", ".join(format_value(item) for item in value) + "]"
    if isinstance(value, dict):
        return "{...}"
    return str(value)


def _new_table(title: Optional[str], headers: Tuple[str, str] | None) -> Table:
    table = Table(title=title, box=box.ASCII, show_header=headers is not None)
    for header in headers or ("", ""):
        table.add_column(header, overflow="fold")
    return table


def parameters_table(
    params: Iterable[Tuple[str, str]], title: Optional[str] = None
) -> Table:
    table = _new_table(title, ("Parameter", "Value"))
    for key, value in params:
        table.add_row(Text(key), Text(value))
    return table


def json_table(data: Mapping[str, Any], title: Optional[str] = None) -> Table:
    """One row per key; multi-line values continue on rows with an empty key."""
    table = _new_table(title, None)
    for key, value in data.items():
        lines = format_value(value).splitlines() or [""]
        for index, line in enumerate(lines):
            table.add_row(Text(key if index == 0 else ""), Text(truncate_line(line)))
    return table


def print_parameters(
    params: Iterable[Tuple[str, str]],
    title: Optional[str] = None,
    console: Optional[Console] = None,
) -> None:
    (console or Console()).print(parameters_table(params, title))


def print_json_result(
    data: Any, title: Optional[str] = None, console: Optional[Console] = None
) -> None:
    console = console or Console()
    if not isinstance(data, Mapping):
        console.print("Data is not a JSON object.")
        return
    console.print(json_table(data, title))
