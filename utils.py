# utils.py
"""
Utility helpers: az JSON parsing, tolerant field reads, logging setup, and console output.

- Uses Rich for the colorful summary table and for inline log records.
"""

import json
import logging
from json import JSONDecodeError
from typing import Any, Dict, Iterable, List, Optional, Sequence

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.text import Text

from models import RepositoryRecord


def parse_cli_json(output: str) -> Any:
    """
    Parse the JSON printed by an az command.
    """
    if not output or not output.strip():
        raise ValueError("Empty output from az command")
    try:
        return json.loads(output)
    except JSONDecodeError as e:
        raise ValueError(f"Invalid JSON from az command: {e.msg} (line {e.lineno} column {e.colno})") from e


def is_truthy(value: Any) -> bool:
    """
    az returns policy flags either as JSON booleans or as strings; accept both encodings.
    """
    if value is True:
        return True
    return isinstance(value, str) and value.lower() == "true"


def get_str(obj: Any, key: str) -> str:
    if not isinstance(obj, dict):
        return ""
    value = obj.get(key)
    return value if isinstance(value, str) else ""


def split_csv(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


def filter_projects(projects: Sequence[str], wanted: Iterable[str]) -> List[str]:
    """
    Keep projects whose name is in `wanted` (case-insensitive), in source order.
    An empty `wanted` keeps everything.
    """
    wanted_lower = {w.lower() for w in wanted}
    if not wanted_lower:
        return list(projects)
    return [p for p in projects if p.lower() in wanted_lower]


def setup_logging(level: str, console: Optional[Console] = None) -> None:
    """
    Route log records through Rich so warnings print above the live tree instead of tearing it.
    """
    log_level = getattr(logging, level.upper(), logging.WARNING)
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, markup=False)],
        force=True,
    )


# --- Console printing ------------------------------------------------------

def failing_findings_rows(results: Dict[str, List[RepositoryRecord]]) -> List[List[str]]:
    rows: List[List[str]] = []
    for project, repos in results.items():
        for repo in repos:
            for finding in repo.findings:
                if not finding.passed:
                    rows.append([project, repo.name, finding.message])
    return rows


def _rich_status_text(compliant: int, total: int) -> Text:
    if total and compliant == total:
        return Text(f"{compliant}/{total}", style="bold green")
    if compliant:
        return Text(f"{compliant}/{total}", style="bold yellow")
    return Text(f"{compliant}/{total}", style="bold red")


def print_scan_summary(console: Console, results: Dict[str, List[RepositoryRecord]],
                       show_top: int = 10, print_full_table: bool = False) -> None:
    """
    Print compliance totals and a table of failing branch policy findings.
    """
    repos = [r for records in results.values() for r in records]
    compliant = sum(1 for r in repos if r.compliant)
    console.print()
    summary = Text("Compliant repositories: ")
    summary.append_text(_rich_status_text(compliant, len(repos)))
    console.print(summary)

    rows = failing_findings_rows(results)
    if not rows:
        return
    table = Table(show_header=True, header_style="bold cyan", title="Failing branch policy checks")
    table.add_column("Project", style="yellow", overflow="fold")
    table.add_column("Repository", style="green", overflow="fold")
    table.add_column("Finding", style="red", overflow="fold")
    for r in (rows if print_full_table else rows[:show_top]):
        table.add_row(*r)
    console.print(table)
    if not print_full_table and len(rows) > show_top:
        console.print(f"[dim]... and {len(rows) - show_top} more (use --print-table to show all)[/]")
