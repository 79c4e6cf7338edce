"""
Exception hierarchy.

Only ConfigError is allowed to end a run early. The others are raised by the
service layer and turned into failed checks at the check boundary.
"""
from typing import Optional


class FabricWallError(Exception):
    """Base class for toolkit errors."""


class ConfigError(FabricWallError):
    """Missing mandatory parameter or unreadable/invalid config file."""


class TokenAcquisitionError(FabricWallError):
    """No access token could be obtained."""


class FabricApiError(FabricWallError):
    """Non-2xx response from the Fabric or Power BI REST API."""

    def __init__(self, status_code: int, message: str, error_code: Optional[str] = None, url: str = ""):
        self.status_code = status_code
        self.message = message
        self.error_code = error_code
        self.url = url
        super().__init__(str(self))

    def __str__(self) -> str:
        prefix = f"HTTP {self.status_code}"
        if self.error_code:
            return f"{prefix} {self.error_code}: {self.message}"
        return f"{prefix}: {self.message}"


class AccessDeniedError(FabricApiError):
    """403 from the platform: the token lacks scope or the caller lacks a role."""


class SqlProbeError(FabricWallError):
    """SQL endpoint connection or query failure."""


class ProvisioningError(FabricWallError):
    """A mutating provisioning call failed."""


class MissingCredentialError(FabricWallError):
    """ACCESS_TOKEN absent when a check needs it."""
