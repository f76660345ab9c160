"""Shared fixtures for policy chain conformance tests.

Provides the reference ACL documents, call-counting policies and a
counting handler reused across the conformance suites.
"""
from __future__ import annotations

from collections import Counter
from typing import Any

import pytest

from policy_chain.core.types import Denied, RequestContext
from policy_chain.registry import PolicyRegistry

# ---------------------------------------------------------------------------
# Reference ACL documents
# ---------------------------------------------------------------------------
PROFILE_ACL: dict[str, Any] = {
    "*": True,
    "ProfileController": {"*": False, "edit": "isLoggedIn"},
}

UPLOAD_ACL: dict[str, Any] = {
    "FileController": {"upload": ["isAuthenticated", "canWrite", "hasEnoughSpace"]},
}


# ---------------------------------------------------------------------------
# Call counting
# ---------------------------------------------------------------------------
class CallLog:
    """Counts policy and handler invocations by name, in order."""

    def __init__(self) -> None:
        self.order: list[str] = []
        self.counts: Counter[str] = Counter()

    def record(self, name: str) -> None:
        self.order.append(name)
        self.counts[name] += 1

    def allowing(self, name: str):
        def policy(context: RequestContext, next: Any) -> None:
            self.record(name)
            next()

        policy.__name__ = name
        return policy

    def denying(self, name: str):
        def policy(context: RequestContext, next: Any) -> Denied:
            self.record(name)
            return Denied(reason=f"{name} refused")

        policy.__name__ = name
        return policy

    def handler(self, name: str = "handler"):
        async def handle(context: RequestContext) -> tuple[int, dict[str, str], str]:
            self.record(name)
            return (200, {}, "ok")

        return handle


@pytest.fixture()
def calls() -> CallLog:
    return CallLog()


@pytest.fixture()
def profile_registry(calls: CallLog) -> PolicyRegistry:
    return PolicyRegistry({"isLoggedIn": calls.allowing("isLoggedIn")})


@pytest.fixture()
def upload_registry(calls: CallLog) -> PolicyRegistry:
    return PolicyRegistry(
        {
            "isAuthenticated": calls.denying("isAuthenticated"),
            "canWrite": calls.allowing("canWrite"),
            "hasEnoughSpace": calls.allowing("hasEnoughSpace"),
        }
    )


@pytest.fixture()
def open_upload_registry(calls: CallLog) -> PolicyRegistry:
    return PolicyRegistry(
        {
            "isAuthenticated": calls.allowing("isAuthenticated"),
            "canWrite": calls.allowing("canWrite"),
            "hasEnoughSpace": calls.allowing("hasEnoughSpace"),
        }
    )


@pytest.fixture()
def profile_acl() -> dict[str, Any]:
    return {k: (dict(v) if isinstance(v, dict) else v) for k, v in PROFILE_ACL.items()}


@pytest.fixture()
def upload_acl() -> dict[str, Any]:
    return {k: dict(v) for k, v in UPLOAD_ACL.items()}
