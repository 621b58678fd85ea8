"""Verification verdict data models."""

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

from ..errors import ConfigurationError

Action = Literal["pass", "flag", "block"]


@dataclass(frozen=True)
class ThresholdConfig:
    """Confidence cutoffs. Valid only when block < flag < pass."""

    pass_threshold: float = 0.8
    flag_threshold: float = 0.5
    block_threshold: float = 0.3

    def validate(self) -> None:
        """Raise ConfigurationError unless block < flag < pass."""
        if not (self.block_threshold < self.flag_threshold < self.pass_threshold):
            raise ConfigurationError(
                f"Invalid thresholds: block ({self.block_threshold}) < "
                f"flag ({self.flag_threshold}) < pass ({self.pass_threshold}) must hold"
            )

    def to_wire(self) -> dict[str, float]:
        """Cutoffs sent with a verify request (block is derived server-side)."""
        return {
            "pass_threshold": self.pass_threshold,
            "flag_threshold": self.flag_threshold,
        }


@dataclass
class VexResult:
    """Outcome of one traced execution, returned to the caller."""

    execution_id: str
    action: Action
    output: Any
    confidence: float | None = None
    corrections: list[dict] | None = None
    verification: dict | None = None
    corrected: bool = False
    original_output: Any = None

    @classmethod
    def pass_through(cls, execution_id: str, output: Any) -> "VexResult":
        """Unverified result: the caller's output, untouched."""
        return cls(execution_id=execution_id, action="pass", output=output)


class VerifyResponse(BaseModel):
    """Response body of the verify endpoint."""

    model_config = ConfigDict(extra="ignore")

    execution_id: str | None = None
    confidence: float | None = None
    action: Action | None = None
    output: Any = None
    corrections: list[dict] | None = None
    correction_attempts: list[dict] | None = None
    checks: dict | None = None
    corrected: bool = False
    original_output: Any = None
