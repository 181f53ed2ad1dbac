"""Pytest configuration for teleterm tests."""

import logging

import pytest

logging.getLogger("teleterm").handlers.clear()

_SUITE_TIMEOUTS = {"unit": 1, "integration": 5}


def pytest_collection_modifyitems(config, items):
    """Mark tests by suite directory and set per-marker timeouts: unit=1s, integration=5s."""
    for item in items:
        suite = item.path.parent.name
        if suite in _SUITE_TIMEOUTS:
            item.add_marker(getattr(pytest.mark, suite))
        for marker, seconds in _SUITE_TIMEOUTS.items():
            if marker in item.keywords:
                item.add_marker(pytest.mark.timeout(seconds))
                break
