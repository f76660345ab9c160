#!/usr/bin/env python3
"""policy-chain quickstart -- protecting a profile controller.

Demonstrates the core workflow:

1. Write an ACL mapping endpoints to policy chains.
2. Register the policies it names.
3. Build the engine (validates every name up front).
4. Handle requests: allowed, denied, redirected and failing.

Run:
    python examples/quickstart.py
"""
from __future__ import annotations

import asyncio
import logging

from policy_chain import (
    PolicyEngine,
    PolicyEngineConfig,
    RequestContext,
)
from policy_chain.core.types import Denied


# -- Policies ----------------------------------------------------------------

def is_logged_in(context: RequestContext, next):
    if context.attributes.get("user"):
        next()
        return None
    return Denied(reason="Please log in")


async def has_session(context: RequestContext, next):
    await asyncio.sleep(0)
    if context.header("cookie"):
        next()
    else:
        next.redirect("/login")


def audit_trail(context: RequestContext, next):
    raise ConnectionError("audit backend unreachable")


# -- Handlers ----------------------------------------------------------------

async def show(context: RequestContext):
    return (200, {"Content-Type": "text/plain"}, f"{context.controller}.{context.action}")


async def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    # -- Step 1: Write the ACL -----------------------------------------------
    acl = {
        "*": True,
        "ProfileController": {
            "*": False,
            "edit": ["hasSession", "isLoggedIn"],
        },
        "ReportController": {"export": "auditTrail"},
    }
    print("[1] ACL loaded for", ", ".join(k for k in acl if k != "*"))

    # -- Step 2 + 3: Register policies and build the engine ------------------
    engine = PolicyEngine.from_mapping(
        acl,
        {
            "isLoggedIn": is_logged_in,
            "hasSession": has_session,
            "auditTrail": audit_trail,
        },
        PolicyEngineConfig(),
    )
    print(f"[2] Engine ready with {len(engine.registry)} policies")

    # -- Step 4: Handle requests ---------------------------------------------
    requests = [
        RequestContext(controller="HomeController", action="index"),
        RequestContext(controller="ProfileController", action="view"),
        RequestContext(controller="ProfileController", action="edit"),
        RequestContext(
            controller="ProfileController",
            action="edit",
            headers={"Cookie": "sid=abc"},
        ),
        RequestContext(
            controller="ProfileController",
            action="edit",
            headers={"Cookie": "sid=abc"},
            attributes={"user": "alice"},
        ),
        RequestContext(controller="ReportController", action="export"),
    ]
    for n, context in enumerate(requests, start=3):
        status, headers, body = await engine.handle(context, show)
        print(f"[{n}] {context.controller}.{context.action} -> {status} {headers} {body}")

    print("\nDone.")


if __name__ == "__main__":
    asyncio.run(main())
