"""The ``next`` handle given to every policy.

A :class:`Continuation` is a one-shot signal.  The first of the following
settles it; anything after that is ignored and logged:

* ``next()`` -- proceed to the following policy;
* ``next(error)`` / ``next.fail(error)`` -- the policy failed;
* ``next.deny()``, ``next.redirect()``, ``next.respond()`` -- end the
  chain with the corresponding outcome.

Settling is allowed from any thread.  Calls from outside the owning event
loop are handed back to it with ``call_soon_threadsafe``.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping

from policy_chain.core.errors import PolicyExecutionError
from policy_chain.core.types import (
    PROCEED,
    Denied,
    Errored,
    Outcome,
    PolicyName,
    Redirected,
    Responded,
)

logger = logging.getLogger(__name__)


class Continuation:
    """One-shot completion handle for a single policy invocation.

    Parameters
    ----------
    policy:
        Name of the policy this handle belongs to; attached to every
        outcome it produces.
    loop:
        The event loop running the chain.  Defaults to the running loop.
    """

    __slots__ = ("_policy", "_loop", "_future")

    def __init__(
        self,
        policy: PolicyName,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._policy = policy
        self._loop = loop or asyncio.get_running_loop()
        self._future: asyncio.Future[Outcome] = self._loop.create_future()

    # -- signalling ---------------------------------------------------------

    def __call__(self, error: BaseException | None = None) -> None:
        """Proceed, or fail when *error* is given."""
        if error is not None:
            self.fail(error)
            return
        self.settle(PROCEED)

    def deny(self, reason: str = "") -> None:
        """End the chain with :class:`Denied`."""
        self.settle(Denied(reason=reason, policy=self._policy))

    def redirect(self, target: str, status: int | None = None) -> None:
        """End the chain with :class:`Redirected`."""
        self.settle(Redirected(target=target, status=status, policy=self._policy))

    def respond(
        self,
        status: int,
        body: str = "",
        headers: Mapping[str, str] | None = None,
    ) -> None:
        """End the chain with a custom response."""
        self.settle(
            Responded(
                status=status,
                body=body,
                headers=dict(headers or {}),
                policy=self._policy,
            )
        )

    def fail(self, error: BaseException) -> None:
        """End the chain with :class:`Errored`."""
        self.settle(Errored(cause=wrap_failure(self._policy, error), policy=self._policy))

    def settle(self, outcome: Outcome) -> None:
        """Settle with *outcome*; thread-safe, first call wins."""
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            self._set(outcome)
        else:
            self._loop.call_soon_threadsafe(self._set, outcome)

    # -- introspection ------------------------------------------------------

    @property
    def policy(self) -> PolicyName:
        return self._policy

    @property
    def settled(self) -> bool:
        """``True`` once a signal has been recorded."""
        return self._future.done()

    def peek(self) -> Outcome | None:
        """Return the recorded outcome without waiting, or ``None``."""
        if not self._future.done() or self._future.cancelled():
            return None
        return self._future.result()

    async def wait(self) -> Outcome:
        """Wait until the policy signals.

        Never returns if the policy neither calls ``next`` nor produces
        a response.
        """
        return await self._future

    # -- internals ----------------------------------------------------------

    def _set(self, outcome: Outcome) -> None:
        if self._future.cancelled():
            logger.debug(
                "Policy %r signalled %s after its request was cancelled",
                self._policy,
                outcome.kind,
            )
            return
        if self._future.done():
            logger.warning(
                "Policy %r signalled %s after it had already signalled %s; ignoring",
                self._policy,
                outcome.kind,
                self._future.result().kind,
            )
            return
        self._future.set_result(outcome)


def wrap_failure(policy: PolicyName, error: BaseException) -> PolicyExecutionError:
    """Wrap an arbitrary exception raised by *policy*."""
    if isinstance(error, PolicyExecutionError):
        return error
    return PolicyExecutionError(
        f"Policy '{policy}' failed: {type(error).__name__}",
        cause=error,
        details={"policy": policy, "exception_type": type(error).__name__},
    )
