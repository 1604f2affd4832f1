# azdo_scanner/process_runner.py
"""
Runs external programs (the az CLI) and captures their output.

- run() never raises: a program that cannot start, or that times out, yields exit_code -1
  with an explanatory stderr.
"""

import logging
import subprocess
from typing import Optional, Sequence, Union

from config import PROCESS_TIMEOUT
from models import ProcessResult

logger = logging.getLogger(__name__)


def _as_text(data: Optional[Union[bytes, str]]) -> str:
    # TimeoutExpired carries bytes even when text=True was requested
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


class ProcessRunner:
    """Command executor backed by subprocess.run."""

    def __init__(self, default_timeout: float = PROCESS_TIMEOUT):
        self.default_timeout = default_timeout

    def run(self, program: str, arguments: Sequence[str], timeout: Optional[float] = None) -> ProcessResult:
        timeout = self.default_timeout if timeout is None else timeout
        cmd = [program, *arguments]
        logger.debug("Running: %s", " ".join(cmd))
        try:
            proc = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                stdin=subprocess.DEVNULL,
                check=False,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as e:
            logger.debug("Timed out after %ss: %s", timeout, " ".join(cmd))
            stderr = _as_text(e.stderr)
            return ProcessResult(
                stdout=_as_text(e.stdout),
                stderr=(stderr + "\n" if stderr else "") + f"Timed out after {timeout}s.",
                exit_code=-1,
            )
        except OSError as e:
            return ProcessResult(stdout="", stderr=f"Failed to start process '{program}': {e}", exit_code=-1)
        return ProcessResult(stdout=proc.stdout or "", stderr=proc.stderr or "", exit_code=proc.returncode)
