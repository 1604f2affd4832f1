# tests/conftest.py
"""
Shared fixtures: a fake az runner with canned responses and a Rich console writing to memory.
"""

import io
import json

import pytest
from rich.console import Console

from models import ProcessResult


def ok(payload) -> ProcessResult:
    """A successful az call printing `payload` as JSON (strings are passed through)."""
    stdout = payload if isinstance(payload, str) else json.dumps(payload)
    return ProcessResult(stdout=stdout, stderr="", exit_code=0)


def failed(stderr: str = "ERROR: something went wrong") -> ProcessResult:
    return ProcessResult(stdout="", stderr=stderr, exit_code=1)


class FakeProcessRunner:
    """
    Answers az calls from a table of command prefixes.

    Keys are matched against the space-joined arguments (without the program name);
    the longest matching prefix wins. Values are ProcessResults or callables taking the
    argument list. Unknown commands fail.
    """

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []

    def run(self, program, arguments, timeout=None):
        args = list(arguments)
        self.calls.append((program, args))
        joined = " ".join(args)
        matches = [k for k in self.responses if joined.startswith(k)]
        if not matches:
            return failed(f"unexpected command: {program} {joined}")
        response = self.responses[max(matches, key=len)]
        return response(args) if callable(response) else response

    def commands(self):
        return [" ".join(args) for _, args in self.calls]


@pytest.fixture
def runner():
    return FakeProcessRunner()


@pytest.fixture
def console():
    return Console(file=io.StringIO(), width=160, color_system=None)


def console_text(console: Console) -> str:
    return console.file.getvalue()
