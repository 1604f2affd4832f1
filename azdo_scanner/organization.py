# azdo_scanner/organization.py
"""
Organization resolution.

- An explicit --org value wins and is normalized without touching az.
- Otherwise the default configured with `az devops configure` is used.
"""

import logging
from typing import Optional

from config import AZDO_HOST, AZDO_URL_SCHEME
from utils import get_str, parse_cli_json

logger = logging.getLogger(__name__)


def normalize_organization(value: str) -> str:
    """
    Turn an organization name or partial URL into a canonical organization URL.

    - "https://dev.azure.com/org/" is returned unchanged (trailing slash kept)
    - "dev.azure.com/org/" becomes "https://dev.azure.com/org"
    - "org" becomes "https://dev.azure.com/org"
    """
    if value.lower().startswith(AZDO_URL_SCHEME):
        return value
    trimmed = value.strip().strip("/")
    if AZDO_HOST in value.lower():
        return f"{AZDO_URL_SCHEME}{trimmed}"
    return f"{AZDO_URL_SCHEME}{AZDO_HOST}/{trimmed}"


def read_default_organization(runner) -> Optional[str]:
    """
    Return the organization configured as az devops default, or None.
    """
    result = runner.run("az", ["devops", "configure", "--list", "--output", "json"])
    if result.exit_code != 0:
        logger.debug("az devops configure failed: %s", result.stderr.strip())
        return None
    try:
        data = parse_cli_json(result.stdout)
    except ValueError as e:
        logger.debug("Could not parse az devops configuration: %s", e)
        return None
    return get_str(data, "organization") or None


def resolve_organization(explicit: Optional[str], runner) -> Optional[str]:
    org = explicit
    if not org or not org.strip():
        org = read_default_organization(runner)
    if not org or not org.strip():
        return None
    return normalize_organization(org)
