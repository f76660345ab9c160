"""Policy chain execution conformance tests.

Verifies short-circuit semantics, literal ordering, at-most-once handler
execution, and the separation of errors from authorization decisions.
"""
from __future__ import annotations

import asyncio
from typing import Any

import pytest

from policy_chain.acl.config import ACLConfig
from policy_chain.core.types import (
    PROCEED,
    Denied,
    Errored,
    OutcomeKind,
    RequestContext,
)
from policy_chain.engine import PolicyEngine
from policy_chain.registry import PolicyRegistry

UPLOAD = RequestContext(controller="FileController", action="upload")


# ===================================================================
# Short-circuit
# ===================================================================

class TestShortCircuit:
    """{FileController: {upload: [isAuthenticated, canWrite, hasEnoughSpace]}}."""

    @pytest.mark.asyncio
    async def test_MUST_stop_at_first_denial(
        self, upload_acl: dict[str, Any], upload_registry: PolicyRegistry, calls
    ) -> None:
        engine = PolicyEngine(ACLConfig.from_mapping(upload_acl), upload_registry)
        outcome = await engine.authorize(UPLOAD)
        assert isinstance(outcome, Denied)
        assert outcome.policy == "isAuthenticated"

    @pytest.mark.asyncio
    async def test_MUST_not_run_later_policies_or_handler(
        self, upload_acl: dict[str, Any], upload_registry: PolicyRegistry, calls
    ) -> None:
        engine = PolicyEngine(ACLConfig.from_mapping(upload_acl), upload_registry)
        status, _, _ = await engine.handle(UPLOAD, calls.handler())
        assert status == 403
        assert [
            calls.counts["isAuthenticated"],
            calls.counts["canWrite"],
            calls.counts["hasEnoughSpace"],
            calls.counts["handler"],
        ] == [1, 0, 0, 0]

    @pytest.mark.asyncio
    async def test_MUST_stop_in_the_middle_of_a_chain(self, calls) -> None:
        registry = PolicyRegistry(
            {
                "isAuthenticated": calls.allowing("isAuthenticated"),
                "canWrite": calls.denying("canWrite"),
                "hasEnoughSpace": calls.allowing("hasEnoughSpace"),
            }
        )
        acl = ACLConfig.from_mapping(
            {"FileController": {"upload": ["isAuthenticated", "canWrite", "hasEnoughSpace"]}}
        )
        engine = PolicyEngine(acl, registry)
        outcome = await engine.authorize(UPLOAD)
        assert outcome.policy == "canWrite"
        assert calls.order == ["isAuthenticated", "canWrite"]


# ===================================================================
# Proceeding and ordering
# ===================================================================

class TestProceedAndOrder:
    """All-proceed chains reach the handler exactly once, in literal order."""

    @pytest.mark.asyncio
    async def test_MUST_proceed_when_every_policy_calls_next(
        self, upload_acl: dict[str, Any], open_upload_registry: PolicyRegistry, calls
    ) -> None:
        engine = PolicyEngine(ACLConfig.from_mapping(upload_acl), open_upload_registry)
        assert await engine.authorize(UPLOAD) is PROCEED

    @pytest.mark.asyncio
    async def test_MUST_run_handler_exactly_once(
        self, upload_acl: dict[str, Any], open_upload_registry: PolicyRegistry, calls
    ) -> None:
        engine = PolicyEngine(ACLConfig.from_mapping(upload_acl), open_upload_registry)
        status, _, body = await engine.handle(UPLOAD, calls.handler())
        assert (status, body) == (200, "ok")
        assert calls.counts["handler"] == 1

    @pytest.mark.asyncio
    async def test_MUST_run_policies_in_literal_order(
        self, upload_acl: dict[str, Any], open_upload_registry: PolicyRegistry, calls
    ) -> None:
        engine = PolicyEngine(ACLConfig.from_mapping(upload_acl), open_upload_registry)
        await engine.handle(UPLOAD, calls.handler())
        assert calls.order == ["isAuthenticated", "canWrite", "hasEnoughSpace", "handler"]

    @pytest.mark.asyncio
    async def test_MUST_keep_order_with_slow_early_policies(self) -> None:
        order: list[str] = []

        async def slow(context, next):
            await asyncio.sleep(0.02)
            order.append("slow")
            next()

        async def fast(context, next):
            order.append("fast")
            next()

        engine = PolicyEngine.from_mapping(
            {"FileController": {"upload": ["slow", "fast"]}},
            {"slow": slow, "fast": fast},
        )
        assert await engine.authorize(UPLOAD) is PROCEED
        assert order == ["slow", "fast"]

    @pytest.mark.asyncio
    async def test_MUST_not_deduplicate_repeated_policies(self, calls) -> None:
        engine = PolicyEngine.from_mapping(
            {"FileController": {"upload": ["audit", "audit"]}},
            {"audit": calls.allowing("audit")},
        )
        await engine.authorize(UPLOAD)
        assert calls.counts["audit"] == 2


# ===================================================================
# Errors are not denials
# ===================================================================

class TestErrorsAreNotDenials:
    """Unexpected policy failures take the generic error path."""

    @pytest.mark.asyncio
    async def test_MUST_report_errored_not_denied(self, calls) -> None:
        def broken(context, next):
            raise LookupError("session store offline")

        engine = PolicyEngine.from_mapping(
            {"FileController": {"upload": ["broken", "canWrite"]}},
            {"broken": broken, "canWrite": calls.allowing("canWrite")},
        )
        outcome = await engine.authorize(UPLOAD)
        assert isinstance(outcome, Errored)
        assert outcome.kind is OutcomeKind.ERRORED
        assert calls.counts["canWrite"] == 0

    @pytest.mark.asyncio
    async def test_MUST_map_errors_to_generic_failure(self, calls) -> None:
        def broken(context, next):
            raise LookupError("session store offline")

        engine = PolicyEngine.from_mapping(
            {"FileController": {"upload": "broken"}}, {"broken": broken}
        )
        status, _, body = await engine.handle(UPLOAD, calls.handler())
        assert status == 500
        assert "session store offline" not in body
        assert calls.counts["handler"] == 0

    @pytest.mark.asyncio
    async def test_MUST_not_raise_from_authorize(self) -> None:
        async def broken(context, next):
            raise RuntimeError("boom")

        engine = PolicyEngine.from_mapping({"*": "broken"}, {"broken": broken})
        outcome = await engine.authorize(RequestContext(controller="A", action="b"))
        assert isinstance(outcome, Errored)
