# azdo_scanner/azdo_cli.py
"""
Azure DevOps queries through the az CLI.

- Each list_* query runs one or more az commands, parses their JSON and returns typed records.
- Queries never raise: a failed command yields an empty result, malformed output is logged
  as a warning and yields whatever could be read. One bad project never stops the scan.
- fetch_projects is the strict variant used where a failure must end the run.
"""

import logging
from typing import Any, List, Optional

from config import ADMIN_GROUP_NAME, BRANCH
from models import ExtensionRecord, RepositoryRecord, ServiceConnectionRecord
from utils import get_str, parse_cli_json

from azdo_scanner.errors import ProjectListError
from azdo_scanner.policy import evaluate_policies, no_policy_findings

logger = logging.getLogger(__name__)


def _project_names(data: Any) -> List[str]:
    if not isinstance(data, dict) or not isinstance(data.get("value"), list):
        raise ValueError("expected an object with a 'value' list")
    return [name for name in (get_str(p, "name") for p in data["value"]) if name]


def _scope_values(raw_scopes: Any) -> List[str]:
    """Scopes come as plain strings or as objects carrying scopeValue."""
    scopes: List[str] = []
    if not isinstance(raw_scopes, list):
        return scopes
    for scope in raw_scopes:
        value = scope if isinstance(scope, str) else get_str(scope, "scopeValue")
        if value:
            scopes.append(value)
    return scopes


class AzdoCliService:
    def __init__(self, runner, branch: str = BRANCH, timeout: Optional[float] = None):
        self.runner = runner
        self.branch = branch
        self.timeout = timeout

    def _az(self, *args: str):
        return self.runner.run("az", [*args, "--output", "json"], timeout=self.timeout)

    # --- Projects ----------------------------------------------------------

    def fetch_projects(self, org: str) -> List[str]:
        """
        List project names in API order. Raises ProjectListError if az fails or its output is unreadable.
        """
        result = self._az("devops", "project", "list", "--org", org)
        if result.exit_code != 0:
            raise ProjectListError(f"Failed to list projects for org {org}: {result.stderr.strip()}")
        try:
            return _project_names(parse_cli_json(result.stdout))
        except ValueError as e:
            raise ProjectListError(f"Failed to parse project list for org {org}: {e}") from e

    def list_projects(self, org: str) -> List[str]:
        try:
            return self.fetch_projects(org)
        except ProjectListError as e:
            logger.warning("%s", e)
            return []

    # --- Admins ------------------------------------------------------------

    def find_admin_group_descriptor(self, project: str, org: str) -> Optional[str]:
        result = self._az("devops", "security", "group", "list", "--project", project, "--org", org)
        if result.exit_code != 0:
            logger.debug("Group list failed for project '%s': %s", project, result.stderr.strip())
            return None
        try:
            data = parse_cli_json(result.stdout)
            groups = data.get("graphGroups") if isinstance(data, dict) else None
            if not isinstance(groups, list):
                raise ValueError("expected an object with a 'graphGroups' list")
        except ValueError as e:
            logger.warning("Could not read security groups of project '%s': %s", project, e)
            return None
        for group in groups:
            if get_str(group, "displayName") == ADMIN_GROUP_NAME:
                return get_str(group, "descriptor") or None
        return None

    def list_admin_emails(self, project: str, org: str) -> List[str]:
        """
        Return the mail addresses of the project's "Project Administrators" members.
        """
        descriptor = self.find_admin_group_descriptor(project, org)
        if not descriptor:
            return []
        result = self._az("devops", "security", "group", "membership", "list", "--id", descriptor, "--org", org)
        if result.exit_code != 0:
            logger.debug("Membership list failed for project '%s': %s", project, result.stderr.strip())
            return []
        try:
            members = parse_cli_json(result.stdout)
        except ValueError as e:
            logger.warning("Could not read administrators of project '%s': %s", project, e)
            return []
        if not isinstance(members, dict):
            logger.warning("Unexpected membership format for project '%s'", project)
            return []
        # keyed by member descriptor
        return [email for email in (get_str(m, "mailAddress") for m in members.values()) if email]

    # --- Repositories --------------------------------------------------------

    def list_branch_policies(self, project: str, org: str, repo_id: str) -> Optional[list]:
        """
        Return the policies applying to the scanned branch, or None if they could not be read.
        """
        result = self._az("repos", "policy", "list", "--project", project, "--org", org,
                          "--repository-id", repo_id, "--branch", self.branch)
        if result.exit_code != 0:
            logger.debug("Policy list failed for repository %s: %s", repo_id, result.stderr.strip())
            return None
        try:
            policies = parse_cli_json(result.stdout)
        except ValueError as e:
            logger.warning("Could not read branch policies of repository %s in '%s': %s", repo_id, project, e)
            return None
        if not isinstance(policies, list):
            logger.warning("Unexpected policy format for repository %s in '%s'", repo_id, project)
            return None
        return policies

    def list_repositories(self, project: str, org: str) -> List[RepositoryRecord]:
        result = self._az("repos", "list", "--project", project, "--org", org)
        if result.exit_code != 0:
            logger.debug("Repository list failed for project '%s': %s", project, result.stderr.strip())
            return []
        try:
            data = parse_cli_json(result.stdout)
            if not isinstance(data, list):
                raise ValueError("expected a list of repositories")
        except ValueError as e:
            logger.warning("Could not read repositories of project '%s': %s", project, e)
            return []

        repos: List[RepositoryRecord] = []
        for repo in data:
            name = get_str(repo, "name")
            repo_id = get_str(repo, "id")
            policies = self.list_branch_policies(project, org, repo_id) if repo_id else None
            if policies:
                findings = evaluate_policies(policies).findings
            else:
                findings = no_policy_findings()
            repos.append(RepositoryRecord(name=name, id=repo_id, findings=findings))
        return repos

    # --- Service connections -------------------------------------------------

    def list_service_connections(self, project: str, org: str) -> List[ServiceConnectionRecord]:
        result = self._az("devops", "service-endpoint", "list", "--project", project, "--org", org)
        if result.exit_code != 0:
            logger.debug("Service endpoint list failed for project '%s': %s", project, result.stderr.strip())
            return []
        try:
            data = parse_cli_json(result.stdout)
            if not isinstance(data, list):
                raise ValueError("expected a list of service endpoints")
        except ValueError as e:
            logger.warning("Could not read service connections of project '%s': %s", project, e)
            return []
        return [
            ServiceConnectionRecord(name=get_str(s, "name"), type=get_str(s, "type"), id=get_str(s, "id"))
            for s in data
        ]

    # --- Extensions ------------------------------------------------------------

    def fetch_extensions(self, org: str) -> List[ExtensionRecord]:
        """
        List installed extensions. Raises ValueError when az fails or prints something unreadable.
        """
        result = self._az("devops", "extension", "list", "--org", org)
        if result.exit_code != 0:
            raise ValueError(f"Failed to list extensions for org {org}: {result.stderr.strip()}")
        data = parse_cli_json(result.stdout)
        if not isinstance(data, list):
            logger.warning("Extension list for org %s is not a JSON array; treating it as empty", org)
            return []
        return [
            ExtensionRecord(
                publisher=get_str(ext, "publisherName") or "Unknown",
                name=get_str(ext, "extensionName"),
                version=get_str(ext, "version"),
                scopes=tuple(_scope_values(ext.get("scopes") if isinstance(ext, dict) else None)),
            )
            for ext in data
        ]
