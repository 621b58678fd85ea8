"""Pytest configuration and fixtures."""

import asyncio
import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI, Request

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

VALID_KEY = "vex_test_key_1234567890"
API_URL = "https://api.test.com"

HANG = "hang"  # scripted outcome: never answer (exercises the attempt timeout)


class ScriptedHandler:
    """httpx.MockTransport handler replaying scripted outcomes.

    Each outcome is a status code, a ``(status, body)`` pair, an exception
    instance to raise, or HANG. The last outcome repeats once the script runs
    out. Every request is recorded.
    """

    def __init__(self) -> None:
        self._outcomes: list[Any] = [(200, {})]
        self.requests: list[httpx.Request] = []

    def script(self, *outcomes: Any) -> "ScriptedHandler":
        self._outcomes = list(outcomes)
        return self

    @property
    def bodies(self) -> list[Any]:
        return [json.loads(request.content) for request in self.requests]

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        outcome = self._outcomes.pop(0) if len(self._outcomes) > 1 else self._outcomes[0]

        if outcome == HANG:
            await asyncio.sleep(3600)
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, tuple):
            status, body = outcome
        else:
            status, body = outcome, {}
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)


@pytest.fixture
def handler():
    """Scripted handler answering 200 {} until told otherwise."""
    return ScriptedHandler()


@pytest_asyncio.fixture
async def http_client(handler):
    """AsyncClient routed through the scripted handler."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    yield client
    await client.aclose()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep a developer's VEX_* environment out of the tests."""
    monkeypatch.delenv("VEX_API_KEY", raising=False)
    monkeypatch.delenv("VEX_API_URL", raising=False)


@pytest.fixture
def make_event():
    """Factory for ExecutionEvents with fixed defaults."""
    from vex.models import ExecutionEvent

    def _make(**overrides) -> ExecutionEvent:
        fields = {
            "execution_id": "exec-1",
            "agent_id": "agent-1",
            "input": "hello",
            "output": "world",
            "timestamp": datetime(2026, 1, 1, tzinfo=timezone.utc),
        }
        fields.update(overrides)
        return ExecutionEvent(**fields)

    return _make


def create_fake_service() -> FastAPI:
    """In-process stand-in for the Vex API.

    Verdicts are keyed on the recorded output text: "Berlin" blocks, "Marseille"
    flags, "Lyon" is corrected when correction is requested, anything else passes.
    """
    app = FastAPI()
    app.state.ingested = []
    app.state.verified = []

    @app.post("/v1/ingest/batch")
    async def ingest(request: Request) -> dict:
        body = await request.json()
        app.state.ingested.extend(body["events"])
        return {"accepted": len(body["events"])}

    @app.post("/v1/verify")
    async def verify(request: Request) -> dict:
        event = await request.json()
        app.state.verified.append(event)
        text = json.dumps(event.get("output"))
        metadata = event.get("metadata", {})
        verdict = {
            "execution_id": event["execution_id"],
            "action": "pass",
            "confidence": 0.95,
            "output": event.get("output"),
            "checks": {"hallucination": {"score": 0.95}},
            "corrected": False,
            "original_output": None,
            "correction_attempts": None,
        }
        if "Berlin" in text:
            verdict.update(action="block", confidence=0.1)
        elif "Marseille" in text:
            verdict.update(action="flag", confidence=0.45)
        elif "Lyon" in text and metadata.get("correction"):
            verdict.update(
                corrected=True,
                confidence=0.85,
                output={"response": "The capital of France is Paris."},
                original_output=event.get("output"),
                correction_attempts=[{"attempt": 1, "output": "Paris"}],
            )
        return verdict

    return app


@pytest.fixture
def fake_service():
    """FastAPI fake of the remote verification service."""
    return create_fake_service()


@pytest_asyncio.fixture
async def service_client(fake_service):
    """AsyncClient that talks to the fake service in-process."""
    client = httpx.AsyncClient(transport=httpx.ASGITransport(app=fake_service))
    yield client
    await client.aclose()
