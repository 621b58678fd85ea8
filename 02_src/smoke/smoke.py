"""Smoke scenarios against a live Vex endpoint."""

import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Protocol

import httpx

from vex import Vex, VexBlockError, VexResult
from vex.logging_config import get_logger

logger = get_logger(__name__)

AGENT_ID = "smoke-test-py"
GEO_TASK = "Answer geography questions accurately"
GEO_QUERY = {"query": "What is the capital of France?"}
GEO_TRUTH = "The capital of France is Paris."

ScenarioResult = tuple[bool, str]


@dataclass
class ScenarioOutcome:
    """Result of one smoke scenario."""

    name: str
    passed: bool
    detail: str
    elapsed_s: float


class ISmoke(Protocol):
    """Exercise the client end to end. Hardcoded scenarios."""

    async def run(self) -> list[ScenarioOutcome]:
        """Run every scenario in order."""
        ...


class Smoke:
    """Hardcoded smoke scenarios for the full client -> API pipeline."""

    def __init__(
        self,
        api_key: str,
        api_url: str,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._api_key = api_key
        self._api_url = api_url
        self._client = http_client

    def _make_vex(self, **config: Any) -> Vex:
        return Vex(
            api_key=self._api_key,
            config={"api_url": self._api_url, **config},
            http_client=self._client,
        )

    @property
    def scenarios(self) -> list[tuple[str, Callable[[], Awaitable[ScenarioResult]]]]:
        return [
            ("Async Ingest", self.async_ingest),
            ("Sync Pass", self.sync_pass),
            ("Sync Flag/Block", self.sync_flag_block),
            ("Correction (transparent)", self.correction_transparent),
            ("Multi-turn Session", self.multiturn_session),
        ]

    async def run(self) -> list[ScenarioOutcome]:
        """Run every scenario in order; an exception fails only its scenario."""
        outcomes = []
        for name, scenario in self.scenarios:
            logger.info("Running scenario: %s", name)
            started = time.perf_counter()
            try:
                passed, detail = await scenario()
            except Exception as e:
                logger.error("Unhandled exception in %s: %s", name, e, exc_info=True)
                passed, detail = False, "exception"
            outcomes.append(
                ScenarioOutcome(
                    name=name,
                    passed=passed,
                    detail=detail,
                    elapsed_s=time.perf_counter() - started,
                )
            )
        return outcomes

    async def async_ingest(self) -> ScenarioResult:
        """Fire-and-forget trace; must return a pass-through result."""
        async with self._make_vex(mode="async") as vex:

            def capture(ctx):
                ctx.set_ground_truth({"revenue": "$5.2B", "profit": "$800M"})
                ctx.record(
                    {
                        "response": "ACME Corp reported $5.2B in revenue "
                        "and $800M profit in Q4."
                    }
                )

            result = await vex.trace(
                capture,
                agent_id=AGENT_ID,
                task="Summarize quarterly earnings",
                input={"query": "Summarize Q4 earnings for ACME Corp"},
            )
        return result.action == "pass", "accepted"

    async def sync_pass(self) -> ScenarioResult:
        """Correct answer; expect pass or flag with high confidence."""
        async with self._make_vex(mode="sync") as vex:
            result = await vex.trace(
                self._answer(
                    "The capital of France is Paris. It is known for the "
                    "Eiffel Tower and the Louvre Museum."
                ),
                agent_id=AGENT_ID,
                task=GEO_TASK,
                input=GEO_QUERY,
            )
        self._log_result(result)
        high_confidence = result.confidence is None or result.confidence >= 0.5
        return result.action in ("pass", "flag") and high_confidence, result.action

    async def sync_flag_block(self) -> ScenarioResult:
        """Wrong answer; expect flag, or a block raised as VexBlockError."""
        async with self._make_vex(mode="sync") as vex:
            try:
                result = await vex.trace(
                    self._answer(
                        "The capital of France is Berlin. France is located in "
                        "Asia and has a population of 10 billion people."
                    ),
                    agent_id=AGENT_ID,
                    task=GEO_TASK,
                    input=GEO_QUERY,
                )
            except VexBlockError:
                return True, "block"
        self._log_result(result)
        return result.action in ("flag", "block"), result.action

    async def correction_transparent(self) -> ScenarioResult:
        """Wrong answer with correction on; expect a corrected output."""
        async with self._make_vex(
            mode="sync", correction="cascade", transparency="transparent"
        ) as vex:
            try:
                result = await vex.trace(
                    self._answer(
                        "The capital of France is Lyon. It is a beautiful city "
                        "known for the Eiffel Tower and the Louvre Museum."
                    ),
                    agent_id=AGENT_ID,
                    task=GEO_TASK,
                    input=GEO_QUERY,
                )
            except VexBlockError as e:
                return e.result.corrected, "blocked after correction"
        self._log_result(result)
        return result.corrected, f"corrected={result.corrected}"

    async def multiturn_session(self) -> ScenarioResult:
        """A turn contradicting the previous one; expect flag or block."""
        async with self._make_vex(mode="sync") as vex:
            session = vex.session(agent_id=f"{AGENT_ID}-session")
            first = await session.trace(
                self._answer(GEO_TRUTH), input=GEO_QUERY, task=GEO_TASK
            )
            self._log_result(first)
            try:
                second = await session.trace(
                    self._answer(
                        "Actually, the capital of France is Marseille. "
                        "I was wrong before, it has never been Paris."
                    ),
                    input=GEO_QUERY,
                    task=GEO_TASK,
                )
            except VexBlockError:
                return True, "block"
        self._log_result(second)
        return second.action in ("flag", "block"), second.action

    @staticmethod
    def _answer(response: str) -> Callable:
        def capture(ctx) -> None:
            ctx.set_ground_truth(GEO_TRUTH)
            ctx.record({"response": response})

        return capture

    @staticmethod
    def _log_result(result: VexResult) -> None:
        logger.info(
            "Verdict: action=%s confidence=%s corrected=%s",
            result.action,
            result.confidence,
            result.corrected,
        )
