from __future__ import annotations

import os

import pytest

from crudmerge.config import (
    ConfigurationError,
    ServiceConfig,
    get_service_config,
    int_env_var,
)


def test_int_env_var_defaults_and_parses(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CRUDMERGE_TEST_INT", raising=False)
    assert int_env_var("CRUDMERGE_TEST_INT", 7) == 7

    monkeypatch.setenv("CRUDMERGE_TEST_INT", "12")
    assert int_env_var("CRUDMERGE_TEST_INT", 7) == 12
    assert os.getenv("CRUDMERGE_TEST_INT") == "12"


@pytest.mark.parametrize("raw", ["abc", "-1"])
def test_int_env_var_rejects_invalid_values(monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
    monkeypatch.setenv("CRUDMERGE_TEST_INT", raw)

    with pytest.raises(ConfigurationError, match="CRUDMERGE_TEST_INT"):
        int_env_var("CRUDMERGE_TEST_INT", 7)


def test_service_config_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "CRUDMERGE_MAX_RESULTS",
        "CRUDMERGE_AUTOCOMPLETE_CUT",
        "CRUDMERGE_AUTOCOMPLETE_MAX_RESULTS",
    ):
        monkeypatch.delenv(name, raising=False)

    config = get_service_config()

    assert config == ServiceConfig()
    assert (config.first_result, config.max_results) == (0, 256)
    assert (config.autocomplete_cut, config.autocomplete_max_results) == (3, 16)


def test_service_config_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CRUDMERGE_MAX_RESULTS", "10")
    monkeypatch.setenv("CRUDMERGE_AUTOCOMPLETE_CUT", "1")
    monkeypatch.setenv("CRUDMERGE_AUTOCOMPLETE_MAX_RESULTS", "2")

    config = get_service_config()

    assert config.max_results == 10
    assert config.autocomplete_cut == 1
    assert config.autocomplete_max_results == 2


def test_service_config_resolves_overrides() -> None:
    config = ServiceConfig(max_results=5)

    assert config.resolve_max_results(None) == 5
    assert config.resolve_max_results(2) == 2
    assert config.resolve_first_result(None) == 0
