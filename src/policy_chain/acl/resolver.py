"""ACL resolution.

Precedence, most specific first, exactly one layer per lookup:

1. the action override for ``(controller, action)``;
2. the controller default (the controller's ``'*'`` entry);
3. the global default (top-level ``'*'``, or the implicit default when
   the document has none).

Layers are never combined.  A controller default of ``False`` is a total
override for that controller's unmapped actions; it is *not* ANDed with
the global default.

The chosen spec is expanded through the registry into a tuple of
:class:`~policy_chain.core.types.BoundPolicy`.  Expansions are memoised
per matched entry, so resolving the same endpoint twice returns the
identical tuple.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from policy_chain.core.errors import InvalidPolicySpecError, UnknownPolicyError
from policy_chain.core.types import (
    ALLOW,
    ALLOW_ALL,
    DENY_ALL,
    ActionName,
    Allow,
    BoundPolicy,
    ControllerName,
    Deny,
    Named,
    PolicySequence,
    PolicySpec,
)

if TYPE_CHECKING:
    from policy_chain.acl.config import ACLConfig
    from policy_chain.registry import PolicyRegistry

logger = logging.getLogger(__name__)


class PolicyLayer(enum.StrEnum):
    """Which ACL layer supplied a resolved spec."""

    ACTION = "action"
    CONTROLLER = "controller"
    GLOBAL = "global"


@dataclass(frozen=True, slots=True)
class PolicyMatch:
    """A resolved ACL entry and where it came from."""

    layer: PolicyLayer
    spec: PolicySpec
    controller: ControllerName | None = None
    action: ActionName | None = None

    @property
    def key(self) -> tuple[PolicyLayer, ControllerName | None, ActionName | None]:
        return (self.layer, self.controller, self.action)


class ACLResolver:
    """Computes the effective policy chain for an endpoint.

    Parameters
    ----------
    acl:
        The parsed ACL.
    registry:
        Registry used to turn policy names into callables.
    implicit_global_default:
        Spec used when *acl* has no global default.  Defaults to
        :data:`~policy_chain.core.types.ALLOW`.
    """

    def __init__(
        self,
        acl: ACLConfig,
        registry: PolicyRegistry,
        *,
        implicit_global_default: PolicySpec = ALLOW,
    ) -> None:
        self._acl = acl
        self._registry = registry
        self._global = (
            acl.global_default if acl.global_default is not None else implicit_global_default
        )
        self._table: dict[
            tuple[PolicyLayer, ControllerName | None, ActionName | None],
            tuple[BoundPolicy, ...],
        ] = {}

    @property
    def acl(self) -> ACLConfig:
        return self._acl

    @property
    def global_default(self) -> PolicySpec:
        """The effective global default (explicit or implicit)."""
        return self._global

    # -- resolution ---------------------------------------------------------

    def resolve_match(self, controller: str, action: str) -> PolicyMatch:
        """Return the single most specific entry for the endpoint."""
        c, a = ControllerName(controller), ActionName(action)
        spec = self._acl.action_overrides.get((c, a))
        if spec is not None:
            return PolicyMatch(PolicyLayer.ACTION, spec, c, a)
        spec = self._acl.controller_defaults.get(c)
        if spec is not None:
            return PolicyMatch(PolicyLayer.CONTROLLER, spec, c)
        return PolicyMatch(PolicyLayer.GLOBAL, self._global)

    def resolve_effective_policy(self, controller: str, action: str) -> PolicySpec:
        """Return the effective :data:`PolicySpec` for the endpoint."""
        return self.resolve_match(controller, action).spec

    def resolve_chain(self, controller: str, action: str) -> tuple[BoundPolicy, ...]:
        """Return the effective, ordered policy chain for the endpoint.

        Raises
        ------
        UnknownPolicyError
            If the matched entry names an unregistered policy.
        """
        match = self.resolve_match(controller, action)
        chain = self._table.get(match.key)
        if chain is None:
            chain = self._table.setdefault(match.key, self.expand(match.spec))
        logger.debug(
            "%s.%s resolved from %s layer to %s",
            controller,
            action,
            match.layer,
            [p.name for p in chain],
        )
        return chain

    def expand(self, spec: PolicySpec) -> tuple[BoundPolicy, ...]:
        """Expand *spec* into bound policies, preserving order.

        Raises
        ------
        UnknownPolicyError
            If a named policy is not registered.
        InvalidPolicySpecError
            If *spec* contains a nested sequence or is not a spec.
        """
        if isinstance(spec, PolicySequence):
            bound: list[BoundPolicy] = []
            for item in spec.items:
                if isinstance(item, PolicySequence):
                    raise InvalidPolicySpecError(
                        "Policy lists cannot be nested",
                        details={"spec": str(spec)},
                    )
                bound.extend(self.expand(item))
            return tuple(bound)
        if isinstance(spec, Allow):
            return (self._registry.bind(ALLOW_ALL),)
        if isinstance(spec, Deny):
            return (self._registry.bind(DENY_ALL),)
        if isinstance(spec, Named):
            return (self._registry.bind(spec.name),)
        raise InvalidPolicySpecError(
            f"Not a policy spec: {spec!r}",
            details={"type": type(spec).__name__},
        )

    # -- startup ------------------------------------------------------------

    def validate(self) -> int:
        """Check every configured entry against the registry.

        Expands all entries up front, so later lookups only read the
        table.  Returns the number of table entries.

        Raises
        ------
        UnknownPolicyError
            Listing every unregistered name the ACL references.
        """
        missing = sorted(n for n in self._acl.policy_names() if n not in self._registry)
        if missing:
            raise UnknownPolicyError(
                f"ACL references unregistered policies: {', '.join(missing)}",
                details={"policies": missing},
            )
        self._table.setdefault(
            (PolicyLayer.GLOBAL, None, None), self.expand(self._global)
        )
        for controller, spec in self._acl.controller_defaults.items():
            self._table.setdefault(
                (PolicyLayer.CONTROLLER, controller, None), self.expand(spec)
            )
        for (controller, action), spec in self._acl.action_overrides.items():
            self._table.setdefault(
                (PolicyLayer.ACTION, controller, action), self.expand(spec)
            )
        logger.debug("ACL validated: %d resolved entries", len(self._table))
        return len(self._table)
