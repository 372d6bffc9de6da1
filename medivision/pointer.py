# medivision/pointer.py
"""
Locate a medicine in an image with a vision model's point query.

Per medicine the protocol costs at most three billed calls:
1. a primary point query ("<name> medicine"),
2. a bare-name fallback if the primary one gives no point,
3. a yes/no verification question for the candidate.

Each call runs in its own worker thread and is awaited separately, so
cancelling the surrounding task stops the protocol before its next call.

Verification is fail-open: an ambiguous answer, or a failed call, accepts
the candidate under VerificationPolicy.ACCEPT_ON_AMBIGUOUS.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, List, Optional

from medivision.results import (
    LocateResult,
    NotFound,
    ProviderResult,
    Success,
    TransportFailure,
    is_failure,
)
from medivision.schema import Point

logger = logging.getLogger(__name__)

PointFn = Callable[[object, str], ProviderResult[List[Point]]]
AskFn = Callable[[object, str], ProviderResult[str]]

PRIMARY_QUERY_TEMPLATE = "{name} medicine"
VERIFY_QUESTION_TEMPLATE = (
    'Is the medicine "{name}" (or a recognizable abbreviation or brand name of it) '
    "visible in this image? Answer YES or NO."
)


class Verdict(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"
    AMBIGUOUS = "ambiguous"


class VerificationPolicy(str, Enum):
    ACCEPT_ON_AMBIGUOUS = "accept_on_ambiguous"
    REJECT_ON_AMBIGUOUS = "reject_on_ambiguous"

    def resolve(self, verdict: Verdict) -> bool:
        if verdict == Verdict.AMBIGUOUS:
            return self == VerificationPolicy.ACCEPT_ON_AMBIGUOUS
        return verdict == Verdict.ACCEPT


def parse_verdict(answer: Optional[str]) -> Verdict:
    if not answer:
        return Verdict.AMBIGUOUS

    text = answer.strip().upper()
    if "YES" in text and "NO" not in text:
        return Verdict.ACCEPT
    if text.startswith("NO"):
        return Verdict.REJECT
    return Verdict.AMBIGUOUS


class CoordinatePointer:
    def __init__(
        self,
        point_fn: PointFn,
        ask_fn: Optional[AskFn] = None,
        policy: VerificationPolicy = VerificationPolicy.ACCEPT_ON_AMBIGUOUS,
    ):
        self.point_fn = point_fn
        self.ask_fn = ask_fn
        self.policy = policy

    async def _query(self, image, query: str) -> ProviderResult[List[Point]]:
        try:
            result = await asyncio.to_thread(self.point_fn, image, query)
        except Exception as e:
            logger.warning("[POINT] Query '%s' raised: %s", query, e)
            return TransportFailure(str(e))

        if isinstance(result, Success):
            logger.info("[POINT] Query '%s' returned %d point(s)", query, len(result.payload))
        else:
            logger.warning("[POINT] Query '%s' failed: %s", query, result.reason)
        return result

    async def verify(self, image, name: str) -> Verdict:
        question = VERIFY_QUESTION_TEMPLATE.format(name=name)
        try:
            result = await asyncio.to_thread(self.ask_fn, image, question)
        except Exception as e:
            logger.warning("[VERIFY] Question for '%s' raised: %s", name, e)
            return Verdict.AMBIGUOUS

        if not isinstance(result, Success):
            logger.warning("[VERIFY] Question for '%s' failed: %s", name, result.reason)
            return Verdict.AMBIGUOUS

        verdict = parse_verdict(result.payload)
        logger.info("[VERIFY] '%s' -> %r (%s)", name, result.payload, verdict.value)
        return verdict

    async def locate(self, image, name: str) -> LocateResult[Point]:
        queries = [PRIMARY_QUERY_TEMPLATE.format(name=name), name]
        candidate = None
        failures = []

        for query in queries:
            result = await self._query(image, query)
            if is_failure(result):
                failures.append(result)
            elif result.payload:
                candidate = result.payload[0]
                break

        if candidate is None:
            # Only report a failure when no query got an answer at all
            if len(failures) == len(queries):
                return failures[-1]
            return NotFound(f"'{name}' not found in image")

        if self.ask_fn is not None:
            verdict = await self.verify(image, name)
            if not self.policy.resolve(verdict):
                logger.info("[VERIFY] Rejected candidate for '%s'", name)
                return NotFound(f"'{name}' rejected by verification")

        return Success(candidate)
