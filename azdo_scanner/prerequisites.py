# azdo_scanner/prerequisites.py
"""
Environment checks run before any command: the az CLI and its azure-devops extension.
"""

import logging
from typing import List

from azdo_scanner.errors import PrerequisiteError

logger = logging.getLogger(__name__)

PREREQ_TIMEOUT = 3.0


def check_az_cli(runner) -> bool:
    return runner.run("az", ["--version"], timeout=PREREQ_TIMEOUT).exit_code == 0


def check_az_devops(runner, console=None) -> bool:
    """
    `az devops configure -l` only succeeds with the azure-devops extension installed.
    A missing [defaults] section is worth a notice but is not an error.
    """
    result = runner.run("az", ["devops", "configure", "-l"], timeout=PREREQ_TIMEOUT)
    if result.exit_code != 0:
        logger.debug("az devops configure -l failed: %s", result.stderr.strip())
        if console is not None:
            console.print("[red]Failed to get Azure DevOps CLI configuration.[/]")
        return False
    if "[defaults]" not in (result.stdout or "") and console is not None:
        console.print("[yellow]No Azure DevOps defaults are configured.[/]")
    return True


def ensure_prerequisites(runner, console=None) -> None:
    """Raise PrerequisiteError listing everything that is missing."""
    problems: List[str] = []
    if not check_az_cli(runner):
        problems.append("Azure CLI (az) is not installed or not available in PATH.")
    if not check_az_devops(runner, console):
        problems.append("Azure DevOps CLI extension (az devops) is not installed or not available.")
    if problems:
        raise PrerequisiteError(" ".join(problems))
