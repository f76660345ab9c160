"""Policy engine configuration.

Defines the validated settings model consumed by the engine and the
reference dispatcher.  Every field carries a default so that
``PolicyEngineConfig()`` is a complete configuration.
"""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from policy_chain.core.errors import AccessDenied, PolicyExecutionError


class PolicyEngineConfig(BaseModel):
    """Settings for a :class:`~policy_chain.engine.PolicyEngine`."""

    model_config = ConfigDict(strict=True, frozen=True)

    implicit_global_default: bool = Field(
        default=True,
        description=(
            "Policy applied when the ACL has no top-level '*' entry: "
            "True allows, False denies."
        ),
    )
    validate_on_startup: bool = Field(
        default=True,
        description=(
            "Resolve every policy named in the ACL when the engine is "
            "built and fail on unknown names."
        ),
    )
    expose_error_details: bool = Field(
        default=False,
        description=(
            "Include the failure cause in error response bodies.  Keep "
            "disabled outside development."
        ),
    )
    denied_status: int = Field(
        default=AccessDenied.http_status,
        ge=400,
        le=499,
        description="HTTP status sent for a denied request.",
    )
    errored_status: int = Field(
        default=PolicyExecutionError.http_status,
        ge=500,
        le=599,
        description="HTTP status sent when a policy fails.",
    )
    redirect_status: int = Field(
        default=302,
        ge=300,
        le=399,
        description="HTTP status used for redirects that do not set one.",
    )
