"""Reusable policies.

* **bearer_token_policy** -- JWT bearer authentication (PyJWT).
* **require_attribute** -- deny unless an earlier policy stored a value
  on ``context.attributes``.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

from policy_chain.core.types import Denied, RequestContext
from policy_chain.policies.bearer import bearer_token_policy

if TYPE_CHECKING:
    from policy_chain.execution.continuation import Continuation


def require_attribute(name: str, *, reason: str | None = None):
    """Build a policy that denies unless ``context.attributes[name]`` is set.

    Only meaningful after the policy that sets the attribute, which is
    why ACL lists are executed in their literal order.
    """

    def required(context: RequestContext, next: Continuation) -> Denied | None:
        if context.attributes.get(name) is None:
            return Denied(reason=reason or f"Missing '{name}'")
        next()
        return None

    required.__name__ = f"require_{name}"
    return required


__all__ = [
    "bearer_token_policy",
    "require_attribute",
]
