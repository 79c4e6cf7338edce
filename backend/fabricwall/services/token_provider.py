"""
Token Provider - Resolve the bearer token used for every REST call.

Order: ACCESS_TOKEN from the environment, then the Azure CLI for the Fabric
audience, then the Azure CLI for the Power BI audience.
"""
import base64
import json
import shutil
import subprocess
import time
from typing import Optional

from fabricwall.config import access_token, settings
from fabricwall.exceptions import TokenAcquisitionError
from fabricwall.logger import logger


def _az_token(resource: str) -> str:
    """Ask the Azure CLI for a token; empty string on any failure."""
    try:
        completed = subprocess.run(
            ["az", "account", "get-access-token", "--resource", resource,
             "--query", "accessToken", "-o", "tsv"],
            capture_output=True,
            text=True,
            timeout=60,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.warning(f"Azure CLI token request failed: {e}")
        return ""

    if completed.returncode != 0:
        logger.debug(f"az returned {completed.returncode}: {completed.stderr.strip()}")
        return ""
    return completed.stdout.strip()


def acquire_token(use_azure_cli: bool = True) -> str:
    """Return an access token.

    Raises:
        TokenAcquisitionError: if no source yields a token
    """
    token = access_token()
    if token:
        return token

    if not use_azure_cli:
        raise TokenAcquisitionError("ACCESS_TOKEN is not set")

    if shutil.which("az") is None:
        raise TokenAcquisitionError(
            "ACCESS_TOKEN is not set and the Azure CLI (az) is not installed. "
            "Install it from https://aka.ms/azcli or export ACCESS_TOKEN."
        )

    logger.info("Acquiring access token via Azure CLI...")
    token = _az_token(settings.FABRIC_AUDIENCE)
    if not token:
        logger.info("Retrying with Power BI resource audience...")
        token = _az_token(settings.POWERBI_AUDIENCE)
    if not token:
        raise TokenAcquisitionError(
            "Failed to obtain an access token. Run 'az login' and try again, or export ACCESS_TOKEN manually."
        )
    return token


def decode_claims(token: str) -> Optional[dict]:
    """Decode a JWT payload without verifying it. None if the token is not a JWT."""
    parts = token.split(".")
    if len(parts) != 3:
        return None
    payload = parts[1] + "=" * (-len(parts[1]) % 4)
    try:
        claims = json.loads(base64.urlsafe_b64decode(payload.encode()))
    except ValueError:
        return None
    return claims if isinstance(claims, dict) else None


def seconds_until_expiry(claims: dict, now: Optional[float] = None) -> Optional[int]:
    exp = claims.get("exp")
    if not isinstance(exp, (int, float)):
        return None
    return int(exp - (now if now is not None else time.time()))
