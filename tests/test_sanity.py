"""Sanity tests ensuring the package imports correctly."""

from __future__ import annotations

import importlib

import pytest


@pytest.mark.parametrize(
    "module_name",
    [
        "rami",
        "rami.cards",
        "rami.melds",
        "rami.state",
        "rami.rules",
        "rami.actions",
        "rami.game",
        "rami.snapshot",
        "rami.strategy",
        "rami.simulate",
        "rami.cli.main",
    ],
)
def test_modules_import(module_name: str) -> None:
    """Ensure all foundational modules can be imported."""

    assert importlib.import_module(module_name)
