"""Sequential, short-circuiting policy chain execution.

The :class:`PolicyChainExecutor` walks a resolved policy list strictly in
order.  Each policy gets the request context and a fresh
:class:`~policy_chain.execution.continuation.Continuation`:

1. ``next()`` -- move on to the following policy; after the last one the
   result is :data:`~policy_chain.core.types.PROCEED`.
2. A terminal outcome (returned, or signalled through ``next``) -- stop;
   no later policy runs.
3. An exception, ``next(error)`` or an unsupported return value -- stop
   with :class:`~policy_chain.core.types.Errored`.

Policies are never reordered, parallelised or deduplicated.
"""
from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Iterable
from dataclasses import replace
from typing import Any

from policy_chain.core.errors import PolicyChainError, PolicyExecutionError
from policy_chain.core.types import (
    OUTCOME_TYPES,
    PROCEED,
    BoundPolicy,
    Errored,
    Outcome,
    PolicyName,
    RequestContext,
)
from policy_chain.execution.continuation import Continuation, wrap_failure

logger = logging.getLogger(__name__)


class PolicyChainExecutor:
    """Runs policy chains and reports a single terminal outcome."""

    async def execute(
        self,
        policies: Iterable[BoundPolicy | Callable[..., Any]],
        context: RequestContext,
    ) -> Outcome:
        """Run *policies* in order against *context*.

        Parameters
        ----------
        policies:
            The resolved chain.  Plain callables are accepted and named
            after their ``__name__``.
        context:
            The request context handed to every policy.

        Returns
        -------
        Outcome
            ``PROCEED`` if every policy called ``next()``, otherwise the
            first terminal outcome produced.
        """
        for position, policy in enumerate(policies):
            bound = as_bound(policy)
            logger.debug(
                "%s.%s: running policy #%d %r",
                context.controller,
                context.action,
                position,
                bound.name,
            )
            outcome = await self._invoke(bound, context)
            if outcome.is_terminal:
                logger.info(
                    "%s.%s: policy %r ended the chain with %s",
                    context.controller,
                    context.action,
                    bound.name,
                    outcome.kind,
                )
                return outcome
        return PROCEED

    async def _invoke(self, policy: BoundPolicy, context: RequestContext) -> Outcome:
        handle = Continuation(policy.name)
        try:
            result = policy.function(context, handle)
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            logger.error("Policy %r raised %s", policy.name, type(exc).__name__, exc_info=exc)
            return Errored(cause=wrap_failure(policy.name, exc), policy=policy.name)

        if result is not None:
            if not isinstance(result, OUTCOME_TYPES):
                logger.error(
                    "Policy %r returned unsupported value of type %s",
                    policy.name,
                    type(result).__name__,
                )
                return Errored(
                    cause=PolicyExecutionError(
                        f"Policy '{policy.name}' returned an unsupported value",
                        details={
                            "policy": policy.name,
                            "returned_type": type(result).__name__,
                        },
                    ),
                    policy=policy.name,
                )
            handle.settle(result)

        # The policy may settle its handle later, from a callback.
        return _checked(policy, await handle.wait())


def _checked(policy: BoundPolicy, outcome: Outcome) -> Outcome:
    """Attach the policy name and make sure an ``Errored`` cause is coded."""
    if outcome.is_terminal and outcome.policy is None:
        outcome = replace(outcome, policy=policy.name)
    if isinstance(outcome, Errored) and not isinstance(outcome.cause, PolicyChainError):
        cause: Any = outcome.cause
        if not isinstance(cause, BaseException):
            cause = TypeError(f"Errored cause is not an exception: {cause!r}")
        logger.error("Policy %r failed with %s", policy.name, type(cause).__name__)
        return Errored(cause=wrap_failure(policy.name, cause), policy=outcome.policy)
    return outcome


def as_bound(policy: BoundPolicy | Callable[..., Any]) -> BoundPolicy:
    """Return *policy* as a :class:`BoundPolicy`."""
    if isinstance(policy, BoundPolicy):
        return policy
    if not callable(policy):
        raise TypeError(f"Policy must be callable, got {type(policy).__name__}")
    name = getattr(policy, "__name__", None) or type(policy).__name__
    return BoundPolicy(name=PolicyName(name), function=policy)
