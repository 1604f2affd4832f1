# main.py
"""
CLI entrypoint for the Azure DevOps governance scanner.

- list-projects: projects with their administrators, optionally repositories graded against
  the branch protection baseline and service connections, rendered as a live tree.
- list-extensions: installed extensions grouped by publisher, high-privilege scopes flagged.
- All data comes from the az CLI; authentication is whatever session az already has.
"""

import argparse
import logging
import signal
import sys
from collections import defaultdict
from contextlib import contextmanager
from typing import List, Optional

from rich.console import Console
from rich.markup import escape

from azdo_scanner.azdo_cli import AzdoCliService
from azdo_scanner.display import ScanDisplay, render_tree
from azdo_scanner.errors import PrerequisiteError, ProjectListError
from azdo_scanner.orchestrator import CancellationToken, ScanOrchestrator
from azdo_scanner.organization import resolve_organization
from azdo_scanner.prerequisites import ensure_prerequisites
from azdo_scanner.process_runner import ProcessRunner
from config import BRANCH, HIGH_PRIVILEGE_SCOPES, LOG_LEVEL, PROCESS_TIMEOUT, SPINNER_INTERVAL
from models import TreeNode
from utils import filter_projects, print_scan_summary, setup_logging, split_csv

logger = logging.getLogger("azdo_scanner")


def print_banner(console: Console) -> None:
    console.rule("[bold white]ZURE[/] [grey62]AzDo Assessor[/]")


@contextmanager
def cancel_on_interrupt(token: CancellationToken):
    """
    Turn Ctrl+C into a cancellation request for the duration of the block.
    The running az call finishes; no further stage starts.
    """
    def handler(signum, frame):
        token.cancel()

    previous = signal.signal(signal.SIGINT, handler)
    try:
        yield token
    finally:
        signal.signal(signal.SIGINT, previous)


def run_list_projects(args, runner, console: Console) -> int:
    org = resolve_organization(args.org, runner)
    if not org:
        console.print("[red]No organization specified or found in az config.[/]")
        return 1
    console.print(f"[blue]Using organization:[/] {escape(org)}")

    service = AzdoCliService(runner, branch=args.branch)
    try:
        projects = service.fetch_projects(org)
    except ProjectListError as e:
        console.print(f"[red]{escape(str(e))}[/]")
        return 1
    if not projects:
        console.print(f"[red]No projects found for org {escape(org)}[/]")
        return 1

    wanted = split_csv(args.projects)
    projects = filter_projects(projects, wanted)
    if wanted and not projects:
        console.print("[yellow]None of the requested projects exist in this organization.[/]")

    logger.info("Scanning %d project(s) in %s", len(projects), org)
    display = ScanDisplay("Azure DevOps Projects", console=console, status_interval=args.spinner_interval)
    orchestrator = ScanOrchestrator(service, display)
    with cancel_on_interrupt(CancellationToken()) as token, display:
        summary = orchestrator.run_scan(
            projects,
            org,
            include_repos=args.include_repos,
            include_service_connections=args.include_serviceconnections,
            cancel=token,
        )

    if summary.cancelled:
        console.print(f"[yellow]Scan cancelled after {len(summary.projects_scanned)} project(s).[/]")
    if args.include_repos:
        print_scan_summary(console, summary.repositories, print_full_table=args.print_table)
    return 0


def extensions_tree(extensions) -> TreeNode:
    # publishers are case-insensitive; the first spelling seen is the label
    by_publisher = defaultdict(list)
    labels = {}
    for ext in extensions:
        key = ext.publisher.lower()
        labels.setdefault(key, ext.publisher)
        by_publisher[key].append(ext)

    root = TreeNode(label="Azure DevOps Extensions by Publisher", style="yellow")
    for key in sorted(by_publisher):
        publisher_node = root.add(labels[key], style="grey62")
        for ext in by_publisher[key]:
            ext_node = publisher_node.add(ext.name, style="yellow", detail=ext.version)
            for scope in ext.scopes:
                if scope in HIGH_PRIVILEGE_SCOPES:
                    ext_node.add(f"{scope} (high privilege)", style="red")
                else:
                    ext_node.add(scope, style="white")
    return root


def run_list_extensions(args, runner, console: Console) -> int:
    org = resolve_organization(args.org, runner)
    if not org:
        console.print("[red]No organization specified or found in az config.[/]")
        return 1

    service = AzdoCliService(runner)
    try:
        with console.status("Fetching extensions...", spinner="dots"):
            extensions = service.fetch_extensions(org)
    except ValueError as e:
        console.print(f"[red]Failed to list extensions: {escape(str(e))}[/]")
        return 1
    if not extensions:
        console.print("[yellow]No extensions found.[/]")
        return 0
    console.print(render_tree(extensions_tree(extensions)))
    return 0


def parse_args(argv: Optional[List[str]] = None):
    p = argparse.ArgumentParser(
        prog="azdo-scanner",
        description="Azure DevOps governance scanner (admins, branch policies, service connections).",
    )
    p.add_argument(
        "--log-level",
        default=LOG_LEVEL,
        help=f"Logging level (default: {LOG_LEVEL})",
    )
    p.add_argument(
        "--skip-prereqs",
        action="store_true",
        help="Do not check for the az CLI and its azure-devops extension",
    )
    p.add_argument(
        "--timeout",
        type=float,
        default=PROCESS_TIMEOUT,
        help=f"Timeout in seconds for each az call (default: {PROCESS_TIMEOUT})",
    )
    sub = p.add_subparsers(dest="command", required=True)

    projects = sub.add_parser("list-projects", help="Lists all Azure DevOps projects in the organization")
    projects.add_argument(
        "--org",
        help="The Azure DevOps organization URL or name. If not provided, uses the az devops default.",
    )
    projects.add_argument(
        "--projects",
        help="Comma-separated list of project names to include (default: all projects)",
    )
    projects.add_argument(
        "--include-repos",
        action="store_true",
        help="Include repositories and their branch policy checks for each project",
    )
    projects.add_argument(
        "--include-serviceconnections",
        action="store_true",
        help="Include service connections for each project",
    )
    projects.add_argument(
        "--branch",
        default=BRANCH,
        help=f"Branch whose policies are checked (default: {BRANCH})",
    )
    projects.add_argument(
        "--print-table",
        action="store_true",
        help="Print every failing branch policy check in the summary table",
    )
    projects.add_argument(
        "--spinner-interval",
        type=float,
        default=SPINNER_INTERVAL,
        help=argparse.SUPPRESS,
    )

    extensions = sub.add_parser("list-extensions", help="Lists all installed Azure DevOps extensions in the organization")
    extensions.add_argument(
        "--org",
        help="The Azure DevOps organization URL or name. If not provided, uses the az devops default.",
    )
    return p.parse_args(argv)


def main(argv: Optional[List[str]] = None, runner=None, console: Optional[Console] = None) -> int:
    args = parse_args(argv)
    console = console or Console()
    setup_logging(args.log_level, console)
    runner = runner or ProcessRunner(default_timeout=args.timeout)

    print_banner(console)
    if not args.skip_prereqs:
        try:
            ensure_prerequisites(runner, console)
        except PrerequisiteError as e:
            console.print(f"[red]{escape(str(e))}[/]")
            console.print("[red]Exiting due to missing prerequisites.[/]")
            return 1

    if args.command == "list-extensions":
        return run_list_extensions(args, runner, console)
    return run_list_projects(args, runner, console)


if __name__ == "__main__":
    sys.exit(main())
