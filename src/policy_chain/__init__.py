"""policy-chain -- declarative ACL policy resolution and execution.

Maps controller/action endpoints to ordered chains of reusable
authorization policies and runs them as short-circuiting middleware.

Components
----------
1. Policy Registry (:mod:`policy_chain.registry`)
2. ACL Resolver (:mod:`policy_chain.acl`)
3. Policy Chain Executor (:mod:`policy_chain.execution`)
4. Outcome Dispatcher (:mod:`policy_chain.dispatch`)
"""
from __future__ import annotations

__version__ = "1.0.0a1"

# ---------------------------------------------------------------------------
# ACL
# ---------------------------------------------------------------------------
from policy_chain.acl import (
    ACLConfig,
    ACLResolver,
    PolicyLayer,
    PolicyMatch,
    load_acl_config,
    parse_policy_spec,
)
from policy_chain.core.config import PolicyEngineConfig
from policy_chain.core.errors import (
    AccessDenied,
    ConfigFileError,
    # Category bases
    ConfigurationError,
    DuplicatePolicyError,
    ExecutionError,
    InvalidPolicySpecError,
    PolicyChainError,
    PolicyExecutionError,
    RegistrationError,
    RegistryFrozenError,
    ReservedNameError,
    UnknownPolicyError,
)
from policy_chain.core.interfaces import (
    InMemoryPolicySource,
    PolicyFunction,
    PolicySource,
)
from policy_chain.core.types import (
    ALLOW,
    DENY,
    PROCEED,
    Allow,
    BoundPolicy,
    Deny,
    Denied,
    Errored,
    Named,
    Outcome,
    OutcomeKind,
    PolicyName,
    PolicySequence,
    PolicySpec,
    Proceed,
    Redirected,
    RequestContext,
    Responded,
)

# ---------------------------------------------------------------------------
# Dispatch / orchestration
# ---------------------------------------------------------------------------
from policy_chain.dispatch import OutcomeDispatcher
from policy_chain.engine import PolicyEngine

# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------
from policy_chain.execution import Continuation, PolicyChainExecutor

# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------
from policy_chain.registry import PolicyRegistry, allow_all, deny_all

__all__ = [
    # Meta
    "__version__",
    # Types
    "PolicyName",
    "PolicySpec",
    "Allow",
    "Deny",
    "Named",
    "PolicySequence",
    "ALLOW",
    "DENY",
    "RequestContext",
    "BoundPolicy",
    "Outcome",
    "OutcomeKind",
    "Proceed",
    "PROCEED",
    "Denied",
    "Redirected",
    "Responded",
    "Errored",
    # Config
    "PolicyEngineConfig",
    # Error hierarchy
    "PolicyChainError",
    "ConfigurationError",
    "RegistrationError",
    "ExecutionError",
    "InvalidPolicySpecError",
    "UnknownPolicyError",
    "ConfigFileError",
    "DuplicatePolicyError",
    "ReservedNameError",
    "RegistryFrozenError",
    "AccessDenied",
    "PolicyExecutionError",
    # Interfaces
    "PolicyFunction",
    "PolicySource",
    "InMemoryPolicySource",
    # Registry
    "PolicyRegistry",
    "allow_all",
    "deny_all",
    # ACL
    "ACLConfig",
    "ACLResolver",
    "PolicyLayer",
    "PolicyMatch",
    "load_acl_config",
    "parse_policy_spec",
    # Execution
    "PolicyChainExecutor",
    "Continuation",
    # Dispatch / orchestration
    "OutcomeDispatcher",
    "PolicyEngine",
]
