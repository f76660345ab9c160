"""Policy chain abstract interfaces and in-memory implementations.

This module defines the *structural* interfaces (``typing.Protocol``) for
the collaborators the engine consumes: policy functions, the policy
source that feeds the registry, and request handlers.

Every Protocol class is decorated with ``@runtime_checkable`` so that
``isinstance`` checks work at run-time in addition to static analysis.
"""
from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Iterator, Mapping
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from policy_chain.core.types import Outcome, RequestContext
    from policy_chain.execution.continuation import Continuation


Response = tuple[int, dict[str, str], str]
"""A ``(status, headers, body)`` triple."""

Handler = Callable[["RequestContext"], "Response | Awaitable[Response]"]
"""The originally requested controller action."""


# ===================================================================
# Protocol (interface) definitions
# ===================================================================

@runtime_checkable
class PolicyFunction(Protocol):
    """A reusable authorization step.

    A policy either calls ``next()`` to let the request through, returns
    (or signals through *next*) a terminal :data:`Outcome`, or raises.
    Sync and ``async`` implementations are both accepted; a policy may
    also return without deciding and settle *next* later from a callback.
    A policy that never settles leaves the request hanging.
    """

    def __call__(
        self, context: RequestContext, next: Continuation
    ) -> Outcome | None | Awaitable[Outcome | None]:
        ...


@runtime_checkable
class PolicySource(Protocol):
    """Supplies ``(name, policy)`` pairs to the registry at startup."""

    def policies(self) -> Iterable[tuple[str, PolicyFunction]]:
        """Yield every policy this source provides."""
        ...


# ===================================================================
# In-memory implementations
# ===================================================================

class InMemoryPolicySource:
    """Policy source backed by a plain mapping of name to callable."""

    def __init__(self, policies: Mapping[str, Callable[..., Any]] | None = None) -> None:
        self._policies: dict[str, Callable[..., Any]] = dict(policies or {})

    def add(self, name: str, policy: Callable[..., Any]) -> None:
        """Add a policy (later additions replace earlier ones)."""
        self._policies[name] = policy

    def policies(self) -> Iterator[tuple[str, Callable[..., Any]]]:
        yield from self._policies.items()

    def __len__(self) -> int:
        return len(self._policies)
