"""Policy chain shared domain types.

This module defines the value types shared by the registry, the ACL
resolver, the chain executor and the dispatcher.

Key design decisions:
* ``PolicyName``, ``ControllerName`` and ``ActionName`` are ``NewType``
  wrappers around ``str`` for static type-safety.
* Policy specifications and outcomes are *closed* unions of frozen
  dataclasses.  Callers dispatch on ``isinstance`` or on the ``kind``
  class attribute rather than on loosely-typed return values.
* Enums use *string* values so they serialise cleanly to JSON and logs.
"""
from __future__ import annotations

import enum
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar, NewType

from policy_chain.core.errors import InvalidPolicySpecError, PolicyChainError

# ---------------------------------------------------------------------------
# Value types (NewType wrappers)
# ---------------------------------------------------------------------------

PolicyName = NewType("PolicyName", str)
"""Name of a registered policy, or one of the built-ins ``true``/``false``."""

ControllerName = NewType("ControllerName", str)
"""Controller identity as it appears in the ACL, e.g. ``ProfileController``."""

ActionName = NewType("ActionName", str)
"""Action identity within a controller, e.g. ``edit``."""

WILDCARD: str = "*"
"""ACL key selecting the global default (top level) or a controller default."""

ALLOW_ALL: PolicyName = PolicyName("true")
DENY_ALL: PolicyName = PolicyName("false")

RESERVED_NAMES: frozenset[str] = frozenset({ALLOW_ALL, DENY_ALL})


# ---------------------------------------------------------------------------
# Policy specifications
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Allow:
    """Built-in ``true``: always proceed."""

    def __str__(self) -> str:
        return "true"


@dataclass(frozen=True, slots=True)
class Deny:
    """Built-in ``false``: always deny."""

    def __str__(self) -> str:
        return "false"


@dataclass(frozen=True, slots=True)
class Named:
    """Reference to a registered policy by name."""

    name: PolicyName

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise InvalidPolicySpecError(
                "Policy name must be a non-empty string",
                details={"value": repr(self.name)},
            )

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True, slots=True)
class PolicySequence:
    """An ordered list of policies, executed left to right.

    Items may only be :class:`Allow`, :class:`Deny` or :class:`Named`;
    sequences do not nest and are never empty.
    """

    items: tuple[Allow | Deny | Named, ...]

    def __post_init__(self) -> None:
        if not self.items:
            raise InvalidPolicySpecError("Policy list must not be empty")
        for item in self.items:
            if isinstance(item, PolicySequence):
                raise InvalidPolicySpecError(
                    "Policy lists cannot be nested",
                    details={"item": str(item)},
                )
            if not isinstance(item, (Allow, Deny, Named)):
                raise InvalidPolicySpecError(
                    f"Unsupported policy list item: {item!r}",
                    details={"item": repr(item)},
                )

    def __str__(self) -> str:
        return "[" + ", ".join(str(i) for i in self.items) + "]"


PolicySpec = Allow | Deny | Named | PolicySequence
"""Any policy specification accepted in an ACL entry."""

ALLOW: Allow = Allow()
DENY: Deny = Deny()


# ---------------------------------------------------------------------------
# Request context
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class RequestContext:
    """Per-request input to a policy chain.

    Attributes
    ----------
    controller:
        The requested controller.
    action:
        The requested action on that controller.
    state:
        Opaque per-request object (framework request, session, ...).
        The engine passes it to every policy unmodified.
    headers:
        Request headers, looked up case-insensitively via :meth:`header`.
    attributes:
        Scratch space where policies leave data for later policies and
        the handler (e.g. decoded token claims).
    """

    controller: ControllerName
    action: ActionName
    state: Any = None
    headers: Mapping[str, str] = field(default_factory=dict)
    attributes: dict[str, Any] = field(default_factory=dict)

    def header(self, name: str, default: str | None = None) -> str | None:
        """Return the header *name* regardless of its case."""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return default


@dataclass(frozen=True, slots=True)
class BoundPolicy:
    """A policy function together with the name it was resolved from."""

    name: PolicyName
    function: Callable[..., Any]


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------

class OutcomeKind(enum.StrEnum):
    """Discriminator for :data:`Outcome` variants."""

    PROCEED = "proceed"
    DENIED = "denied"
    REDIRECTED = "redirected"
    RESPONDED = "responded"
    ERRORED = "errored"


@dataclass(frozen=True, slots=True)
class Proceed:
    """Continue to the next policy, or to the handler after the last one."""

    kind: ClassVar[OutcomeKind] = OutcomeKind.PROCEED

    @property
    def is_terminal(self) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class Denied:
    """A policy refused the request."""

    kind: ClassVar[OutcomeKind] = OutcomeKind.DENIED

    reason: str = ""
    policy: PolicyName | None = None

    @property
    def is_terminal(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class Redirected:
    """A policy sent the client elsewhere (e.g. to a login page)."""

    kind: ClassVar[OutcomeKind] = OutcomeKind.REDIRECTED

    target: str
    status: int | None = None
    policy: PolicyName | None = None

    @property
    def is_terminal(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class Responded:
    """A policy produced its own response."""

    kind: ClassVar[OutcomeKind] = OutcomeKind.RESPONDED

    status: int
    body: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)
    policy: PolicyName | None = None

    @property
    def is_terminal(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class Errored:
    """A policy failed unexpectedly; routed to the generic error path."""

    kind: ClassVar[OutcomeKind] = OutcomeKind.ERRORED

    cause: PolicyChainError
    policy: PolicyName | None = None

    @property
    def is_terminal(self) -> bool:
        return True


Outcome = Proceed | Denied | Redirected | Responded | Errored
"""Result of running a policy chain."""

OUTCOME_TYPES: tuple[type, ...] = (Proceed, Denied, Redirected, Responded, Errored)

PROCEED: Proceed = Proceed()
