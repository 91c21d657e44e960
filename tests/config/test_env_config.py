from __future__ import annotations

import os

import pytest

from pvaregistry.config import (
    ConfigurationError,
    MissingConfigurationError,
    optional_bool_env,
    optional_int_env,
    require_env_var,
    require_env_vars,
)


def test_require_env_vars_returns_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "value")

    result = require_env_vars(["EXAMPLE_VAR"])

    assert result["EXAMPLE_VAR"] == "value"


def test_require_env_vars_lists_every_missing_name(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MISSING_B", raising=False)
    monkeypatch.delenv("MISSING_A", raising=False)

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["MISSING_B", "MISSING_A"])

    assert str(exc.value) == "Missing configuration for: MISSING_A, MISSING_B"


def test_require_env_var_handles_blank_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "   ")

    with pytest.raises(MissingConfigurationError):
        require_env_var("EXAMPLE_VAR")


def test_require_env_var_reads_current_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TEMP_VAR", "123")

    assert os.getenv("TEMP_VAR") == "123"
    assert require_env_var("TEMP_VAR") == "123"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [(None, 7), ("", 7), ("12", 12), ("unlimited", None), ("None", None)],
)
def test_optional_int_env(
    monkeypatch: pytest.MonkeyPatch, raw: str | None, expected: int | None
) -> None:
    if raw is None:
        monkeypatch.delenv("LIMIT_VAR", raising=False)
    else:
        monkeypatch.setenv("LIMIT_VAR", raw)

    assert optional_int_env("LIMIT_VAR", 7) == expected


@pytest.mark.parametrize("raw", ["many", "-1"])
def test_optional_int_env_rejects_invalid_values(
    monkeypatch: pytest.MonkeyPatch, raw: str
) -> None:
    monkeypatch.setenv("LIMIT_VAR", raw)

    with pytest.raises(ConfigurationError, match="LIMIT_VAR"):
        optional_int_env("LIMIT_VAR", 7)


def test_optional_bool_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("FLAG_VAR", raising=False)
    assert optional_bool_env("FLAG_VAR", default=True)

    monkeypatch.setenv("FLAG_VAR", "Yes")
    assert optional_bool_env("FLAG_VAR", default=False)

    monkeypatch.setenv("FLAG_VAR", "off")
    assert not optional_bool_env("FLAG_VAR", default=True)

    monkeypatch.setenv("FLAG_VAR", "sometimes")
    with pytest.raises(ConfigurationError):
        optional_bool_env("FLAG_VAR", default=True)
