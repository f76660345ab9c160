"""Declarative access control lists.

* **ACLConfig** -- the parsed three-layer document (global default,
  controller defaults, action overrides).
* **ACLResolver** -- most-specific-wins resolution of an endpoint to its
  ordered policy chain.
"""
from __future__ import annotations

from policy_chain.acl.config import (
    ACLConfig,
    load_acl_config,
    parse_policy_spec,
    render_policy_spec,
)
from policy_chain.acl.resolver import ACLResolver, PolicyLayer, PolicyMatch

__all__ = [
    "ACLConfig",
    "ACLResolver",
    "PolicyLayer",
    "PolicyMatch",
    "load_acl_config",
    "parse_policy_spec",
    "render_policy_spec",
]
