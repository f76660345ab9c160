"""Tests for the policy registry and the error hierarchy.

1. **Built-ins** -- ``true``/``false`` are always resolvable.
2. **Registration** -- duplicates, reserved names, bad input, freezing.
3. **Lookup** -- resolve, bind, unknown names, introspection.
4. **Error codes** -- serialisation and code lookup.
"""
from __future__ import annotations

import pytest

from policy_chain.core.errors import (
    AccessDenied,
    ConfigurationError,
    DuplicatePolicyError,
    InvalidPolicySpecError,
    PolicyExecutionError,
    RegistrationError,
    RegistryFrozenError,
    ReservedNameError,
    UnknownPolicyError,
    error_from_code,
)
from policy_chain.core.interfaces import InMemoryPolicySource
from policy_chain.core.types import BoundPolicy, PolicyName
from policy_chain.registry import PolicyRegistry, allow_all, deny_all

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

def is_logged_in(context, next):
    next()


def is_admin(context, next):
    next()


@pytest.fixture
def registry() -> PolicyRegistry:
    """A registry with two user policies."""
    return PolicyRegistry({"isLoggedIn": is_logged_in, "isAdmin": is_admin})


# ===================================================================
# 1. Built-ins
# ===================================================================

class TestBuiltins:
    """The constant policies are pre-registered."""

    def test_true_resolves_to_allow_all(self) -> None:
        assert PolicyRegistry().resolve("true") is allow_all

    def test_false_resolves_to_deny_all(self) -> None:
        assert PolicyRegistry().resolve("false") is deny_all

    def test_builtins_not_counted(self) -> None:
        """len() and names only report user registrations."""
        registry = PolicyRegistry()
        assert len(registry) == 0
        assert registry.names == []
        assert "true" in registry
        assert "false" in registry


# ===================================================================
# 2. Registration
# ===================================================================

class TestRegistration:
    """Tests for PolicyRegistry.register and load."""

    def test_register_and_resolve(self) -> None:
        registry = PolicyRegistry()
        registry.register("isLoggedIn", is_logged_in)
        assert registry.resolve("isLoggedIn") is is_logged_in

    def test_duplicate_rejected(self, registry: PolicyRegistry) -> None:
        """Re-registering a name fails; the first binding is kept."""
        with pytest.raises(DuplicatePolicyError):
            registry.register("isLoggedIn", is_admin)
        assert registry.resolve("isLoggedIn") is is_logged_in

    @pytest.mark.parametrize("name", ["true", "false"])
    def test_reserved_names_rejected(self, name: str) -> None:
        with pytest.raises(ReservedNameError):
            PolicyRegistry().register(name, is_logged_in)

    def test_reserved_name_is_registration_error(self) -> None:
        with pytest.raises(RegistrationError):
            PolicyRegistry().register("true", is_logged_in)

    def test_empty_name_rejected(self) -> None:
        with pytest.raises(InvalidPolicySpecError):
            PolicyRegistry().register("", is_logged_in)

    def test_non_callable_rejected(self) -> None:
        with pytest.raises(InvalidPolicySpecError):
            PolicyRegistry().register("broken", "not-a-function")  # type: ignore[arg-type]

    def test_frozen_registry_rejects_registration(self, registry: PolicyRegistry) -> None:
        registry.freeze()
        assert registry.frozen
        with pytest.raises(RegistryFrozenError):
            registry.register("late", is_admin)

    def test_freeze_is_idempotent(self, registry: PolicyRegistry) -> None:
        assert registry.freeze() is registry
        assert registry.freeze() is registry

    def test_load_from_source(self) -> None:
        source = InMemoryPolicySource({"isLoggedIn": is_logged_in})
        source.add("isAdmin", is_admin)
        registry = PolicyRegistry()
        assert registry.load(source) == 2
        assert registry.names == ["isLoggedIn", "isAdmin"]

    def test_load_duplicate_across_sources(self, registry: PolicyRegistry) -> None:
        with pytest.raises(DuplicatePolicyError):
            registry.load(InMemoryPolicySource({"isAdmin": is_admin}))


# ===================================================================
# 3. Lookup
# ===================================================================

class TestLookup:
    """Tests for resolve, bind and introspection."""

    def test_unknown_name_raises(self, registry: PolicyRegistry) -> None:
        with pytest.raises(UnknownPolicyError) as exc_info:
            registry.resolve("isWizard")
        assert exc_info.value.details == {"policy": "isWizard"}

    def test_unknown_is_configuration_error(self, registry: PolicyRegistry) -> None:
        with pytest.raises(ConfigurationError):
            registry.resolve("isWizard")

    def test_names_are_case_sensitive(self, registry: PolicyRegistry) -> None:
        with pytest.raises(UnknownPolicyError):
            registry.resolve("isloggedin")

    def test_bind_keeps_name(self, registry: PolicyRegistry) -> None:
        bound = registry.bind("isAdmin")
        assert bound == BoundPolicy(name=PolicyName("isAdmin"), function=is_admin)

    def test_contains(self, registry: PolicyRegistry) -> None:
        assert "isAdmin" in registry
        assert "isWizard" not in registry
        assert 42 not in registry

    def test_iteration_order(self, registry: PolicyRegistry) -> None:
        assert list(registry) == ["isLoggedIn", "isAdmin"]


# ===================================================================
# 4. Error codes
# ===================================================================

class TestErrors:
    """Tests for the error hierarchy helpers."""

    def test_to_dict(self) -> None:
        err = UnknownPolicyError("Unknown policy: x", details={"policy": "x"})
        body = err.to_dict()
        assert body["error"]["code"] == "PC-E101"
        assert body["error"]["message"] == "Unknown policy: x"
        assert body["error"]["detail"] == {"policy": "x"}
        assert "resolution" in body["error"]

    def test_to_dict_without_details(self) -> None:
        err = UnknownPolicyError("Unknown policy: x", details={"policy": "x"})
        assert err.to_dict(include_details=False) == {
            "error": {"code": "PC-E101", "message": "Unknown policy: x"}
        }

    def test_error_from_code(self) -> None:
        assert isinstance(error_from_code("PC-E300"), AccessDenied)
        assert error_from_code("PC-E200", "dup").message == "dup"

    def test_error_from_unknown_code(self) -> None:
        with pytest.raises(KeyError):
            error_from_code("PC-E999")

    def test_execution_error_keeps_cause(self) -> None:
        cause = RuntimeError("db down")
        err = PolicyExecutionError("failed", cause=cause)
        assert err.cause is cause
        assert err.__cause__ is cause
        assert err.http_status == 500

    def test_repr(self) -> None:
        assert repr(AccessDenied()) == "AccessDenied(code='PC-E300', message='Access denied')"
