"""Shared test fixtures for annorder."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from annorder.engine.rule_table import RuleTable, default_rule_table

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture()
def table() -> RuleTable:
    """The built-in rule table."""
    return default_rule_table()


@pytest.fixture()
def tmp_project(tmp_path: Path) -> Path:
    """Create a minimal Java project structure for testing."""
    src_dir = tmp_path / "src" / "foo"
    src_dir.mkdir(parents=True)
    return tmp_path
