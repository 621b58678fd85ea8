"""Live smoke scenarios for the Vex client."""

from .smoke import ISmoke, ScenarioOutcome, Smoke

__all__ = ["ISmoke", "ScenarioOutcome", "Smoke"]
