"""Policy registry.

Maps policy names to callables.  The two built-in constant policies are
always present:

* ``true``  -- :func:`allow_all`, calls ``next()``;
* ``false`` -- :func:`deny_all`, denies.

Names are matched exactly.  Registering a name twice is an error (there
is no last-write-wins), and the built-in names cannot be re-bound.  Once
:meth:`PolicyRegistry.freeze` has been called the registry is read-only
and may be shared between concurrent requests without locking.
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping
from typing import TYPE_CHECKING, Any

from policy_chain.core.errors import (
    DuplicatePolicyError,
    InvalidPolicySpecError,
    RegistryFrozenError,
    ReservedNameError,
    UnknownPolicyError,
)
from policy_chain.core.types import (
    ALLOW_ALL,
    DENY_ALL,
    RESERVED_NAMES,
    BoundPolicy,
    Denied,
    PolicyName,
    RequestContext,
)

if TYPE_CHECKING:
    from policy_chain.core.interfaces import PolicySource
    from policy_chain.execution.continuation import Continuation

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Built-in policies
# ---------------------------------------------------------------------------

def allow_all(context: RequestContext, next: Continuation) -> None:
    """Built-in ``true`` policy."""
    next()


def deny_all(context: RequestContext, next: Continuation) -> Denied:
    """Built-in ``false`` policy."""
    return Denied(reason="Denied by policy 'false'", policy=DENY_ALL)


_BUILTINS: dict[str, Callable[..., Any]] = {
    ALLOW_ALL: allow_all,
    DENY_ALL: deny_all,
}


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class PolicyRegistry:
    """Name -> policy function lookup.

    Parameters
    ----------
    policies:
        Optional initial ``{name: policy}`` mapping, registered in
        iteration order.
    """

    def __init__(self, policies: Mapping[str, Callable[..., Any]] | None = None) -> None:
        self._policies: dict[str, Callable[..., Any]] = {}
        self._frozen = False
        for name, policy in (policies or {}).items():
            self.register(name, policy)

    # -- registration -------------------------------------------------------

    def register(self, name: str, policy: Callable[..., Any]) -> None:
        """Bind *name* to *policy*.

        Raises
        ------
        RegistryFrozenError
            If :meth:`freeze` has been called.
        ReservedNameError
            If *name* is ``true`` or ``false``.
        DuplicatePolicyError
            If *name* is already registered.
        InvalidPolicySpecError
            If *name* is empty or *policy* is not callable.
        """
        if self._frozen:
            raise RegistryFrozenError(
                f"Cannot register '{name}': registry is frozen",
                details={"policy": name},
            )
        if not isinstance(name, str) or not name:
            raise InvalidPolicySpecError(
                "Policy name must be a non-empty string",
                details={"value": repr(name)},
            )
        if name in RESERVED_NAMES:
            raise ReservedNameError(
                f"'{name}' is a built-in policy and cannot be overridden",
                details={"policy": name},
            )
        if name in self._policies:
            raise DuplicatePolicyError(
                f"Policy already registered: {name}",
                details={"policy": name},
            )
        if not callable(policy):
            raise InvalidPolicySpecError(
                f"Policy '{name}' is not callable",
                details={"policy": name, "type": type(policy).__name__},
            )
        self._policies[name] = policy
        logger.debug("Registered policy %r", name)

    def load(self, source: PolicySource) -> int:
        """Register every policy supplied by *source*; return the count."""
        count = 0
        for name, policy in source.policies():
            self.register(name, policy)
            count += 1
        return count

    def freeze(self) -> PolicyRegistry:
        """Make the registry read-only.  Idempotent; returns ``self``."""
        self._frozen = True
        return self

    # -- lookup -------------------------------------------------------------

    def resolve(self, name: str) -> Callable[..., Any]:
        """Return the policy bound to *name*.

        Raises
        ------
        UnknownPolicyError
            If *name* is neither built-in nor registered.
        """
        builtin = _BUILTINS.get(name)
        if builtin is not None:
            return builtin
        try:
            return self._policies[name]
        except KeyError:
            raise UnknownPolicyError(
                f"Unknown policy: {name}",
                details={"policy": name},
            ) from None

    def bind(self, name: str) -> BoundPolicy:
        """Like :meth:`resolve` but keep the name alongside the function."""
        return BoundPolicy(name=PolicyName(name), function=self.resolve(name))

    # -- introspection ------------------------------------------------------

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def names(self) -> list[str]:
        """User-registered names in registration order (built-ins excluded)."""
        return list(self._policies)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and (name in _BUILTINS or name in self._policies)

    def __iter__(self) -> Iterator[str]:
        return iter(self._policies)

    def __len__(self) -> int:
        return len(self._policies)
