"""Bearer-token authentication policy.

Verifies an ``Authorization: Bearer <jwt>`` header with PyJWT and leaves
the decoded claims on the request context for later policies and the
handler.  Pair it with :func:`~policy_chain.policies.require_attribute`
(or any claims-based check) placed *after* it in the chain.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import jwt

from policy_chain.core.types import Denied, RequestContext

if TYPE_CHECKING:
    from policy_chain.execution.continuation import Continuation

logger = logging.getLogger(__name__)

BEARER_PREFIX = "bearer "


def bearer_token_policy(
    key: Any,
    *,
    algorithms: Sequence[str] = ("HS256",),
    audience: str | None = None,
    issuer: str | None = None,
    claims_attribute: str = "claims",
    required_claims: Sequence[str] = ("exp",),
):
    """Build a policy that requires a valid bearer JWT.

    Parameters
    ----------
    key:
        Verification key (shared secret for HMAC, public key otherwise).
    algorithms:
        Accepted signing algorithms.
    audience, issuer:
        Expected ``aud`` / ``iss`` claims, checked when given.
    claims_attribute:
        ``context.attributes`` key receiving the decoded claims.
    required_claims:
        Claims that must be present.

    Returns
    -------
    PolicyFunction
        Denies when the header is missing, malformed or the token fails
        verification; otherwise stores the claims and calls ``next()``.
    """
    options = {"require": list(required_claims)}

    def bearer_token(context: RequestContext, next: Continuation) -> Denied | None:
        header = context.header("Authorization")
        if not header or not header.lower().startswith(BEARER_PREFIX):
            return Denied(reason="Missing bearer token")
        token = header[len(BEARER_PREFIX):].strip()
        try:
            claims: dict[str, Any] = jwt.decode(
                token,
                key,
                algorithms=list(algorithms),
                audience=audience,
                issuer=issuer,
                options=options,
            )
        except jwt.ExpiredSignatureError:
            return Denied(reason="Bearer token has expired")
        except jwt.InvalidTokenError as exc:
            logger.info("Rejected bearer token: %s", exc)
            return Denied(reason="Invalid bearer token")
        context.attributes[claims_attribute] = claims
        next()
        return None

    return bearer_token
