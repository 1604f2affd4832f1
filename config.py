"""
Central configuration and tunable constants.

- Azure DevOps literals (host, admin group, reviewer policy type) live here.
- Operational knobs can be overridden by environment variables (or a local .env file)
  and, where a flag exists, by CLI args.
"""

import logging
import os

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

load_dotenv()

# Organization URL normalization
AZDO_URL_SCHEME = "https://"
AZDO_HOST = "dev.azure.com"

# Governance rules
ADMIN_GROUP_NAME = "Project Administrators"
REVIEWER_POLICY_TYPE = "Minimum number of reviewers"
HIGH_PRIVILEGE_SCOPES = ("vso.build_execute", "vso.serviceendpoint_manage")

# Console output
PLACEHOLDER_TEXT = "None"
DEFAULT_LOG_LEVEL = "WARNING"

DEFAULT_BRANCH = "main"
DEFAULT_PROCESS_TIMEOUT = 10.0      # seconds per az call
DEFAULT_SPINNER_INTERVAL = 0.1      # seconds between status line repaints


def _float_from_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Invalid %s: '%s'. Defaulting to %s.", name, raw, default)
        return default
    if value <= 0:
        logger.warning("%s must be positive. Defaulting to %s.", name, default)
        return default
    return value


BRANCH = os.environ.get("AZDO_SCANNER_BRANCH") or DEFAULT_BRANCH
PROCESS_TIMEOUT = _float_from_env("AZDO_SCANNER_TIMEOUT", DEFAULT_PROCESS_TIMEOUT)
SPINNER_INTERVAL = _float_from_env("AZDO_SCANNER_SPINNER_INTERVAL", DEFAULT_SPINNER_INTERVAL)
LOG_LEVEL = os.environ.get("AZDO_SCANNER_LOG_LEVEL") or DEFAULT_LOG_LEVEL
