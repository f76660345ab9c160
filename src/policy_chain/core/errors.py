"""Policy chain error-code hierarchy.

Every failure the engine can report is a concrete exception class with a
stable error code, a recommended HTTP status and a machine-readable
``details`` mapping.

Hierarchy
---------
::

    PolicyChainError
    +-- ConfigurationError    (PC-E1xx)
    +-- RegistrationError     (PC-E2xx)
    +-- AccessError           (PC-E3xx)
    +-- ExecutionError        (PC-E5xx)

Usage
-----
Raise concrete subclasses directly::

    raise UnknownPolicyError("Policy 'isLoggedIn' is not registered")

Catch by category::

    try:
        ...
    except ConfigurationError:
        # handles InvalidPolicySpecError, UnknownPolicyError, ...
        ...
"""
from __future__ import annotations

from typing import Any

# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------

class PolicyChainError(Exception):
    """Base exception for all policy chain errors.

    Attributes
    ----------
    code : str
        Error code, e.g. ``"PC-E101"``.
    http_status : int
        Recommended HTTP status code for this error.
    message : str
        Human-readable description.
    details : dict[str, Any]
        Machine-readable context specific to the error instance.
    resolution : str
        Suggested action for the caller.
    """

    code: str = "PC-E000"
    http_status: int = 500
    message: str = "Unknown policy chain error"
    resolution: str = ""

    def __init__(
        self,
        message: str | None = None,
        *,
        details: dict[str, Any] | None = None,
        resolution: str | None = None,
    ) -> None:
        self.details: dict[str, Any] = details or {}
        if message is not None:
            self.message = message
        if resolution is not None:
            self.resolution = resolution
        super().__init__(self.message)

    def to_dict(self, *, include_details: bool = True) -> dict[str, Any]:
        """Serialise the error to a JSON-ready error body."""
        payload: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if include_details and self.details:
            payload["detail"] = self.details
        if include_details and self.resolution:
            payload["resolution"] = self.resolution
        return {"error": payload}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


# ===================================================================
# Category base classes
# ===================================================================

class ConfigurationError(PolicyChainError):
    """PC-E1xx -- Malformed or inconsistent ACL configuration."""

    code = "PC-E1XX"
    http_status = 500


class RegistrationError(PolicyChainError):
    """PC-E2xx -- Policy registration errors (startup only)."""

    code = "PC-E2XX"
    http_status = 500


class AccessError(PolicyChainError):
    """PC-E3xx -- Authorization decisions surfaced to the client."""

    code = "PC-E3XX"
    http_status = 403


class ExecutionError(PolicyChainError):
    """PC-E5xx -- Unexpected failures while running a policy chain."""

    code = "PC-E5XX"
    http_status = 500


# ===================================================================
# PC-E1xx  Configuration Errors
# ===================================================================

class InvalidPolicySpecError(ConfigurationError):
    """PC-E100 -- A policy entry has the wrong shape."""

    code = "PC-E100"
    message = "Invalid policy specification"
    resolution = (
        "Use true, false, a policy name, or a non-empty list of those."
    )


class UnknownPolicyError(ConfigurationError):
    """PC-E101 -- The ACL references a policy that was never registered."""

    code = "PC-E101"
    message = "Unknown policy"
    resolution = "Register the policy before building the engine."


class ConfigFileError(ConfigurationError):
    """PC-E102 -- The ACL document could not be read or decoded."""

    code = "PC-E102"
    message = "ACL configuration document could not be loaded"
    resolution = "Check that the file exists and contains a JSON object."


# ===================================================================
# PC-E2xx  Registration Errors
# ===================================================================

class DuplicatePolicyError(RegistrationError):
    """PC-E200 -- A policy name is already bound."""

    code = "PC-E200"
    message = "Policy is already registered"
    resolution = "Policy names must be unique; rename one of the policies."


class ReservedNameError(RegistrationError):
    """PC-E201 -- Attempt to register over a built-in policy."""

    code = "PC-E201"
    message = "Policy name is reserved"
    resolution = "The names 'true' and 'false' are built-in policies."


class RegistryFrozenError(RegistrationError):
    """PC-E202 -- Registration after the registry was frozen."""

    code = "PC-E202"
    message = "Policy registry is frozen"
    resolution = "Register all policies before building the engine."


# ===================================================================
# PC-E3xx  Access Errors
# ===================================================================

class AccessDenied(AccessError):
    """PC-E300 -- A policy denied the request."""

    code = "PC-E300"
    http_status = 403
    message = "Access denied"


# ===================================================================
# PC-E5xx  Execution Errors
# ===================================================================

class PolicyExecutionError(ExecutionError):
    """PC-E500 -- A policy failed instead of deciding.

    The original exception is kept on :attr:`cause` (and as
    ``__cause__`` when raised with ``from``).
    """

    code = "PC-E500"
    http_status = 500
    message = "Policy execution failed"

    def __init__(
        self,
        message: str | None = None,
        *,
        cause: BaseException | None = None,
        details: dict[str, Any] | None = None,
        resolution: str | None = None,
    ) -> None:
        super().__init__(message, details=details, resolution=resolution)
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause


# ===================================================================
# Code -> class lookup
# ===================================================================

_CODE_MAP: dict[str, type[PolicyChainError]] = {
    cls.code: cls
    for cls in [
        # E1xx
        InvalidPolicySpecError,
        UnknownPolicyError,
        ConfigFileError,
        # E2xx
        DuplicatePolicyError,
        ReservedNameError,
        RegistryFrozenError,
        # E3xx
        AccessDenied,
        # E5xx
        PolicyExecutionError,
    ]
}


def error_from_code(code: str, message: str | None = None) -> PolicyChainError:
    """Instantiate the correct exception class for an error code.

    Raises
    ------
    KeyError
        If *code* is not a recognised error code.
    """
    cls = _CODE_MAP[code]
    return cls(message) if message else cls()
