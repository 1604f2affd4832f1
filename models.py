# models.py
"""
Data models used by the scanner.

- Records returned by az queries are frozen dataclasses; they are built once per scan.
- TreeNode is the only mutable model: the scan result tree grows append-only.
"""

from dataclasses import dataclass, field
from typing import List, Tuple


@dataclass(frozen=True)
class ProcessResult:
    """Outcome of one external command. exit_code != 0 means the call failed."""
    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0


@dataclass(frozen=True)
class PolicyFinding:
    """
    A single pass/fail result of one branch protection rule.

    Fields:
    - passed: whether the rule is satisfied
    - message: human-readable description, specific to the rule and outcome
    """
    passed: bool
    message: str


@dataclass(frozen=True)
class PolicyEvaluation:
    findings: Tuple[PolicyFinding, ...]
    overall_found: bool


@dataclass(frozen=True)
class RepositoryRecord:
    name: str
    id: str
    findings: Tuple[PolicyFinding, ...] = ()

    @property
    def compliant(self) -> bool:
        return bool(self.findings) and all(f.passed for f in self.findings)


@dataclass(frozen=True)
class ServiceConnectionRecord:
    name: str
    type: str
    id: str


@dataclass(frozen=True)
class ExtensionRecord:
    publisher: str
    name: str
    version: str
    scopes: Tuple[str, ...] = ()


@dataclass
class TreeNode:
    """
    A node of the scan result tree.

    Fields:
    - label: plain text shown for the node (never interpreted as markup)
    - style: rich style applied to the icon and label
    - icon: optional symbol printed before the label
    - detail: optional dimmed text printed after the label, in parentheses
    - children: child nodes; only ever appended to
    """
    label: str
    style: str = ""
    icon: str = ""
    detail: str = ""
    children: List["TreeNode"] = field(default_factory=list)

    def add(self, label: str, style: str = "", icon: str = "", detail: str = "") -> "TreeNode":
        child = TreeNode(label=label, style=style, icon=icon, detail=detail)
        self.children.append(child)
        return child

    def find(self, label: str):
        for child in self.children:
            if child.label == label:
                return child
        return None
