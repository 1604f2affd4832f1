# azdo_scanner/errors.py
"""
Errors that end a run. Everything else is logged and rendered as a placeholder.
"""


class ScannerError(Exception):
    """Base class for fatal scanner errors."""


class ProjectListError(ScannerError):
    """Projects could not be listed or the az output could not be parsed."""


class PrerequisiteError(ScannerError):
    """The az CLI or its azure-devops extension is not usable."""
