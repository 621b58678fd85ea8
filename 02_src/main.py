"""Run the live smoke scenarios against a Vex endpoint."""

import asyncio
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from smoke import ScenarioOutcome, Smoke
from vex.config import API_KEY_ENV, API_URL_ENV, DEFAULT_API_URL
from vex.logging_config import setup_logging


def print_summary(outcomes: list[ScenarioOutcome]) -> int:
    """Print one line per scenario and return the process exit code."""
    passed = sum(1 for outcome in outcomes if outcome.passed)
    print("\nSUMMARY")
    for outcome in outcomes:
        status = "PASS" if outcome.passed else "FAIL"
        print(
            f"  {outcome.name:<26} [{status}]  {outcome.detail} "
            f"({outcome.elapsed_s:.1f}s)"
        )
    print(f"\n  {passed}/{len(outcomes)} scenarios passed")
    return 0 if passed == len(outcomes) else 1


def main() -> int:
    """Run the application."""
    project_root = Path(__file__).resolve().parent.parent
    load_dotenv(project_root / ".env")
    setup_logging(log_file=os.getenv("VEX_LOG_FILE"))

    api_key = os.getenv(API_KEY_ENV, "")
    api_url = os.getenv(API_URL_ENV, DEFAULT_API_URL)
    if not api_key:
        print(f"ERROR: Set the {API_KEY_ENV} environment variable.", file=sys.stderr)
        return 1

    print(f"Vex smoke test against {api_url} (key {api_key[:8]}...{api_key[-4:]})")
    outcomes = asyncio.run(Smoke(api_key=api_key, api_url=api_url).run())
    return print_summary(outcomes)


if __name__ == "__main__":
    sys.exit(main())
