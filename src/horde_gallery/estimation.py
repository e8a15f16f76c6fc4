"""Kudos cost estimation for generation requests.

Estimates are requested on every form change, so they always pass through
the throttle gate before reaching the server.
"""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING

from horde_gallery.core.exceptions import RemoteServiceError
from horde_gallery.core.logging import get_logger

if TYPE_CHECKING:
    from horde_gallery.api.interfaces import EstimateSource
    from horde_gallery.api.schemas import RequestParams
    from horde_gallery.throttle import ThrottleGate

logger = get_logger(__name__)

# The Horde refuses to estimate a request without a prompt
PLACEHOLDER_PROMPT = "placeholder prompt for estimation"


def prepare_estimate_params(params: RequestParams) -> RequestParams:
    """Return a copy of ``params`` that the estimate endpoint accepts.

    A blank prompt is replaced with a placeholder and a blank negative
    prompt is dropped. The input is never modified.
    """
    prepared = copy.deepcopy(params)

    prompt = prepared.get("prompt")
    if not prompt or not str(prompt).strip():
        prepared["prompt"] = PLACEHOLDER_PROMPT

    inner = prepared.get("params")
    if isinstance(inner, dict):
        negative = inner.get("negative_prompt")
        if negative is not None and not str(negative).strip():
            del inner["negative_prompt"]

    return prepared


class KudosEstimator:
    """Keeps the latest kudos estimate for the request being composed."""

    def __init__(self, source: EstimateSource, throttle: ThrottleGate | None = None) -> None:
        self._source = source
        self._throttle = throttle
        self.kudos: float | None = None
        self.estimating = False

    @property
    def has_estimate(self) -> bool:
        return self.kudos is not None

    def clear(self) -> None:
        self.kudos = None

    async def estimate(self, params: RequestParams | None) -> float | None:
        """Estimate the kudos cost of ``params``.

        Returns:
            The estimated cost, or None when no model is selected or the
            estimate failed
        """
        if not params or not params.get("models"):
            self.kudos = None
            return None

        self.estimating = True
        try:
            prepared = prepare_estimate_params(params)
            if self._throttle is not None:
                await self._throttle.acquire()
            result = await self._source.estimate(prepared)
        except RemoteServiceError:
            logger.exception("Error estimating kudos")
            self.kudos = None
            return None
        finally:
            self.estimating = False

        self.kudos = result.kudos
        return self.kudos
