from __future__ import annotations

import pytest

from chainrun.settings import env_int


def test_env_int_default_when_unset_or_blank(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CHAINRUN_TEST_INT", raising=False)
    assert env_int("CHAINRUN_TEST_INT", 4) == 4

    monkeypatch.setenv("CHAINRUN_TEST_INT", "  ")
    assert env_int("CHAINRUN_TEST_INT", 4) == 4


def test_env_int_parses_value(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CHAINRUN_TEST_INT", " 8 ")
    assert env_int("CHAINRUN_TEST_INT", 4, minimum=1) == 8


def test_env_int_names_the_variable_on_bad_input(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CHAINRUN_TEST_INT", "four")

    with pytest.raises(ValueError, match="CHAINRUN_TEST_INT must be an integer"):
        env_int("CHAINRUN_TEST_INT", 4)


def test_env_int_enforces_minimum(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CHAINRUN_TEST_INT", "0")

    with pytest.raises(ValueError, match="CHAINRUN_TEST_INT must be >= 1"):
        env_int("CHAINRUN_TEST_INT", 4, minimum=1)
