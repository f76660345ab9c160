"""Reference outcome dispatcher.

Turns a chain :data:`~policy_chain.core.types.Outcome` into a
``(status, headers, body)`` response triple, or runs the requested
handler when the chain let the request through.  This can be wired into
an ASGI app, a test harness or any custom server; frameworks with their
own response objects can implement the same contract themselves.

Mapping:

* ``Proceed``    -- ``await handler(context)``, at most once.
* ``Denied``     -- ``denied_status`` (403) with a JSON error body.
* ``Redirected`` -- the redirect status with a ``Location`` header.
* ``Responded``  -- the policy's own response.
* ``Errored``    -- ``errored_status`` (500); the cause is withheld
  unless ``expose_error_details`` is enabled.
"""
from __future__ import annotations

import inspect
import json
import logging
from typing import TYPE_CHECKING

from policy_chain.core.config import PolicyEngineConfig
from policy_chain.core.errors import AccessDenied, PolicyExecutionError
from policy_chain.core.types import (
    Denied,
    Errored,
    Outcome,
    Proceed,
    Redirected,
    RequestContext,
    Responded,
)

if TYPE_CHECKING:
    from policy_chain.core.interfaces import Handler, Response

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE: str = "application/json"


class OutcomeDispatcher:
    """Maps outcomes to responses.

    Parameters
    ----------
    config:
        Supplies the status codes and the error-detail policy.
    """

    def __init__(self, config: PolicyEngineConfig | None = None) -> None:
        self._config = config or PolicyEngineConfig()

    async def dispatch(
        self,
        outcome: Outcome,
        context: RequestContext,
        handler: Handler,
    ) -> Response:
        """Produce the response for *outcome*."""
        if isinstance(outcome, Proceed):
            result = handler(context)
            if inspect.isawaitable(result):
                result = await result
            return result
        if isinstance(outcome, Denied):
            return self.denied(outcome)
        if isinstance(outcome, Redirected):
            return self.redirected(outcome)
        if isinstance(outcome, Responded):
            return (outcome.status, dict(outcome.headers), outcome.body)
        if isinstance(outcome, Errored):
            return self.errored(outcome)
        raise TypeError(f"Not an outcome: {outcome!r}")

    # -- individual responses ----------------------------------------------

    def denied(self, outcome: Denied) -> Response:
        error = AccessDenied(
            outcome.reason or None,
            details={"policy": outcome.policy} if outcome.policy else None,
        )
        body = error.to_dict(include_details=self._config.expose_error_details)
        return (self._config.denied_status, self._json_headers(), json.dumps(body))

    def redirected(self, outcome: Redirected) -> Response:
        status = outcome.status or self._config.redirect_status
        return (status, {"Location": outcome.target}, "")

    def errored(self, outcome: Errored) -> Response:
        if self._config.expose_error_details:
            body = outcome.cause.to_dict()
        else:
            body = PolicyExecutionError().to_dict(include_details=False)
        logger.error(
            "Request failed in policy %r: %s",
            outcome.policy,
            outcome.cause.message,
            exc_info=outcome.cause,
        )
        return (self._config.errored_status, self._json_headers(), json.dumps(body))

    @staticmethod
    def _json_headers() -> dict[str, str]:
        return {"Content-Type": JSON_CONTENT_TYPE}
