# azdo_scanner/orchestrator.py
"""
Scan orchestration.

- Projects are scanned one after another; per project the stages run in fixed order:
  admins, then repos (optional), then service connections (optional).
- Each stage's az query runs on a single worker thread while the display animates a
  status line, so at most one az process runs at any time.
- Cancellation is cooperative: the token is checked before each project and each stage,
  never while an az call is in flight.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Sequence

from config import PLACEHOLDER_TEXT
from models import RepositoryRecord, ServiceConnectionRecord, TreeNode

logger = logging.getLogger(__name__)

ADMINS = "Admins"
REPOS = "Repos"
SERVICE_CONNECTIONS = "Service Connections"


class CancellationToken:
    """Set once by an interrupt handler, polled by the scan loop."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass
class ScanSummary:
    projects_scanned: List[str] = field(default_factory=list)
    repositories: Dict[str, List[RepositoryRecord]] = field(default_factory=dict)
    cancelled: bool = False


# --- Category node builders ------------------------------------------------

def _placeholder(node: TreeNode) -> TreeNode:
    node.add(PLACEHOLDER_TEXT, style="grey50")
    return node


def admins_node(emails: Sequence[str]) -> TreeNode:
    node = TreeNode(label=ADMINS, style="blue", icon="👤")
    if not emails:
        return _placeholder(node)
    for email in emails:
        node.add(email, style="blue")
    return node


def repos_node(repos: Sequence[RepositoryRecord]) -> TreeNode:
    node = TreeNode(label=REPOS, style="green", icon="📦")
    if not repos:
        return _placeholder(node)
    for repo in repos:
        repo_node = node.add(repo.name, style="green")
        for finding in repo.findings:
            if finding.passed:
                repo_node.add(finding.message, style="green", icon="✔")
            else:
                repo_node.add(finding.message, style="red", icon="✗")
    return node


def service_connections_node(connections: Sequence[ServiceConnectionRecord]) -> TreeNode:
    node = TreeNode(label=SERVICE_CONNECTIONS, style="magenta", icon="🔗")
    if not connections:
        return _placeholder(node)
    for conn in connections:
        node.add(conn.name, style="magenta", detail=conn.type)
    return node


class ScanOrchestrator:
    """
    Drives the per-project stages and pushes results into a ScanDisplay.

    `service` provides list_admin_emails / list_repositories / list_service_connections,
    each taking (project, org) and never raising.
    """

    def __init__(self, service, display):
        self.service = service
        self.display = display

    def _run_stage(self, executor: ThreadPoolExecutor, parent: TreeNode, message: str,
                   build: Callable, query: Callable, *args):
        """Run one query off this thread and attach its category node before the status line stops."""
        with self.display.status(message):
            result = executor.submit(query, *args).result()
            self.display.attach(parent, build(result))
        return result

    def run_scan(self, projects: Sequence[str], org: str, include_repos: bool = False,
                 include_service_connections: bool = False, cancel: CancellationToken = None) -> ScanSummary:
        cancel = cancel or CancellationToken()
        summary = ScanSummary()
        with ThreadPoolExecutor(max_workers=1, thread_name_prefix="az-query") as executor:
            for project in projects:
                if cancel.cancelled:
                    break
                project_node = self.display.add_project(project)
                summary.projects_scanned.append(project)

                self._run_stage(executor, project_node, f"Loading admins for project '{project}'...",
                                admins_node, self.service.list_admin_emails, project, org)

                if include_repos:
                    if cancel.cancelled:
                        break
                    summary.repositories[project] = self._run_stage(
                        executor, project_node, f"Loading repos for project '{project}'...",
                        repos_node, self.service.list_repositories, project, org)

                if include_service_connections:
                    if cancel.cancelled:
                        break
                    self._run_stage(executor, project_node,
                                    f"Loading service connections for project '{project}'...",
                                    service_connections_node, self.service.list_service_connections,
                                    project, org)

        summary.cancelled = cancel.cancelled
        if summary.cancelled:
            logger.warning("Scan cancelled after %d project(s)", len(summary.projects_scanned))
        return summary
