"""Tests for error types."""

import pytest

from vex.errors import (
    ConfigurationError,
    IngestionError,
    VerificationError,
    VexBlockError,
    VexError,
)
from vex.models import VexResult


class TestErrorHierarchy:
    """Tests for the error taxonomy."""

    @pytest.mark.parametrize(
        "error",
        [
            ConfigurationError("bad"),
            IngestionError("bad", status_code=503),
            VerificationError("bad", status_code=422, body="x"),
        ],
    )
    def test_all_are_vex_errors(self, error):
        """Test that every error derives from VexError."""
        assert isinstance(error, VexError)

    def test_verification_error_carries_status(self):
        """Test that status and body are kept for inspection."""
        error = VerificationError("rejected", status_code=422, body="Unprocessable")
        assert error.status_code == 422
        assert error.body == "Unprocessable"
        assert str(error) == "rejected"


class TestVexBlockError:
    """Tests for VexBlockError."""

    def test_carries_result(self):
        """Test that the blocked result is attached."""
        result = VexResult(execution_id="e1", action="block", output="x", confidence=0.1)
        error = VexBlockError(result)
        assert error.result is result
        assert error.result.action == "block"
        assert "confidence=0.1" in str(error)

    def test_catchable_as_vex_error(self):
        """Test that callers can catch it through the base class."""
        result = VexResult(execution_id="e1", action="block", output=None)
        with pytest.raises(VexError):
            raise VexBlockError(result)
