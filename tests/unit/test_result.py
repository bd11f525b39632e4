"""Tests for the Ok/Err tagged result type."""

from __future__ import annotations

import pytest

from nmwguard.core.exceptions import ConfigurationError, ValidationError
from nmwguard.core.result import Err, Ok


class TestOk:
    def test_success_and_unwrap(self):
        result = Ok(42)
        assert result.success is True
        assert result.unwrap() == 42


class TestErr:
    def test_to_dict_for_validation_error(self):
        err = Err.from_error(ValidationError(["Worker ID is required", "bad date"], pay_period_id="PP1"))
        assert err.success is False
        assert err.is_validation is True
        assert err.to_dict() == {
            "success": False,
            "error": "ValidationError",
            "details": ["Worker ID is required", "bad date"],
            "worker_id": None,
            "pay_period_id": "PP1",
        }

    def test_explicit_ids_win(self):
        err = Err.from_error(ValidationError("x", worker_id="A"), worker_id="B", pay_period_id="P")
        assert err.worker_id == "B"
        assert err.pay_period_id == "P"

    def test_infrastructure_error_details(self):
        err = Err.from_error(ConfigurationError("rates.json", "invalid JSON"), worker_id="W1")
        payload = err.to_dict()
        assert payload["error"] == "ConfigurationError"
        assert "rates.json" in payload["details"][0]
        assert err.is_validation is False

    def test_unwrap_raises(self):
        err = Err.from_error(ValidationError("nope"))
        with pytest.raises(ValidationError):
            err.unwrap()
