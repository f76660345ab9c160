"""Policy engine -- the main orchestrator.

This module implements :class:`PolicyEngine`, the primary entry point.
It composes the registry, the ACL resolver, the chain executor and the
reference dispatcher, and routes each request through them:

1. **Resolve** -- ``(controller, action)`` -> ordered policy chain.
2. **Execute** -- run the chain, stop at the first terminal outcome.
3. **Dispatch** -- run the handler on ``Proceed``, otherwise build the
   deny / redirect / custom / error response.

Usage
-----
::

    from policy_chain import PolicyEngine, RequestContext

    engine = PolicyEngine.from_mapping(
        {"*": True, "ProfileController": {"*": False, "edit": "isLoggedIn"}},
        {"isLoggedIn": is_logged_in},
    )

    status, headers, body = await engine.handle(
        RequestContext(controller="ProfileController", action="edit", state=request),
        edit_profile,
    )
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from policy_chain.acl.config import ACLConfig
from policy_chain.acl.resolver import ACLResolver
from policy_chain.core.config import PolicyEngineConfig
from policy_chain.core.errors import ConfigurationError
from policy_chain.core.interfaces import PolicySource
from policy_chain.core.types import ALLOW, DENY, Errored, Outcome, RequestContext
from policy_chain.dispatch import OutcomeDispatcher
from policy_chain.execution.chain import PolicyChainExecutor
from policy_chain.registry import PolicyRegistry

if TYPE_CHECKING:
    from policy_chain.core.interfaces import Handler, Response

logger = logging.getLogger(__name__)


class PolicyEngine:
    """Resolves, executes and dispatches policy chains.

    Building an engine freezes *registry*.  With
    ``config.validate_on_startup`` (the default) every policy named in
    *acl* must already be registered, otherwise construction fails with
    :class:`~policy_chain.core.errors.UnknownPolicyError`.

    Parameters
    ----------
    acl:
        Parsed ACL configuration.
    registry:
        Registry holding every policy the ACL names.
    config:
        Engine settings.  Defaults to ``PolicyEngineConfig()``.
    """

    def __init__(
        self,
        acl: ACLConfig,
        registry: PolicyRegistry,
        config: PolicyEngineConfig | None = None,
    ) -> None:
        self._config = config or PolicyEngineConfig()
        self._acl = acl
        self._registry = registry.freeze()
        self._resolver = ACLResolver(
            acl,
            self._registry,
            implicit_global_default=ALLOW if self._config.implicit_global_default else DENY,
        )
        self._executor = PolicyChainExecutor()
        self._dispatcher = OutcomeDispatcher(self._config)

        if self._config.validate_on_startup:
            entries = self._resolver.validate()
            logger.info(
                "Policy engine ready: %d policies, %d controllers, %d ACL entries",
                len(self._registry),
                len(acl.controllers),
                entries,
            )

    @classmethod
    def from_mapping(
        cls,
        acl: Mapping[str, Any],
        policies: Mapping[str, Callable[..., Any]] | PolicySource,
        config: PolicyEngineConfig | None = None,
    ) -> PolicyEngine:
        """Build an engine from a raw ACL document and its policies.

        *policies* is either a ``{name: policy}`` mapping or a
        :class:`~policy_chain.core.interfaces.PolicySource`.
        """
        registry = PolicyRegistry()
        if isinstance(policies, PolicySource):
            registry.load(policies)
        else:
            for name, policy in policies.items():
                registry.register(name, policy)
        return cls(ACLConfig.from_mapping(acl), registry, config)

    # ------------------------------------------------------------------
    # Properties for introspection
    # ------------------------------------------------------------------

    @property
    def config(self) -> PolicyEngineConfig:
        return self._config

    @property
    def acl(self) -> ACLConfig:
        return self._acl

    @property
    def registry(self) -> PolicyRegistry:
        return self._registry

    @property
    def resolver(self) -> ACLResolver:
        return self._resolver

    @property
    def executor(self) -> PolicyChainExecutor:
        return self._executor

    @property
    def dispatcher(self) -> OutcomeDispatcher:
        return self._dispatcher

    # ------------------------------------------------------------------
    # Core pipeline
    # ------------------------------------------------------------------

    async def authorize(self, context: RequestContext) -> Outcome:
        """Resolve and run the chain for *context*.

        Configuration problems that only surface per request (an unknown
        policy when startup validation is disabled) are reported as
        :class:`~policy_chain.core.types.Errored`, never raised.
        """
        try:
            chain = self._resolver.resolve_chain(context.controller, context.action)
        except ConfigurationError as exc:
            logger.error(
                "%s.%s: cannot resolve policy chain: %s",
                context.controller,
                context.action,
                exc.message,
            )
            return Errored(cause=exc)
        return await self._executor.execute(chain, context)

    async def handle(self, context: RequestContext, handler: Handler) -> Response:
        """Authorize *context* and produce the response.

        *handler* runs at most once, and only when every policy in the
        chain called ``next()``.
        """
        outcome = await self.authorize(context)
        return await self._dispatcher.dispatch(outcome, context, handler)
