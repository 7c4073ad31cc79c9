from __future__ import annotations

import logging

import pytest

from asset_tracker.logging_setup import _level_from, get_logger


@pytest.mark.parametrize(
    "value,expected",
    [
        (logging.DEBUG, logging.DEBUG),
        ("warning", logging.WARNING),
        (" Error ", logging.ERROR),
        ("15", 15),
        ("chatty", logging.INFO),
    ],
)
def test_level_from_names_and_numbers(value, expected):
    assert _level_from(value) == expected


def test_level_from_environment(monkeypatch: pytest.MonkeyPatch):
    assert _level_from(None) == logging.INFO
    monkeypatch.setenv("ASSET_TRACKER_LOG_LEVEL", "debug")
    assert _level_from(None) == logging.DEBUG


def test_get_logger_lives_under_package_tree():
    log = get_logger("asset_tracker.schedule")
    assert log.name == "asset_tracker.schedule"
    assert logging.getLogger("asset_tracker").handlers
