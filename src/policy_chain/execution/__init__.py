"""Policy chain execution.

* **PolicyChainExecutor** -- runs a resolved chain in order and stops at
  the first terminal outcome.
* **Continuation** -- the one-shot ``next`` handle each policy receives.
"""
from __future__ import annotations

from policy_chain.execution.chain import PolicyChainExecutor, as_bound
from policy_chain.execution.continuation import Continuation, wrap_failure

__all__ = [
    "PolicyChainExecutor",
    "Continuation",
    "as_bound",
    "wrap_failure",
]
