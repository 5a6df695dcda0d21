"""Pytest configuration and shared fixtures for flatree tests."""

import os
from pathlib import Path

import pytest

from flatree.tree.node import Record

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture(autouse=True)
def _isolate_environment(tmp_path, monkeypatch):
    """Keep tests away from the project tree, the real home and FLATREE_* vars."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    for name in list(os.environ):
        if name.startswith("FLATREE_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def org_records():
    """CEO -> (CTO -> Dev Team, QA Team), (CFO -> Accounting)."""
    return [
        Record(key=1, name="CEO", order=1),
        Record(key=2, parent_key=1, name="CTO", order=2),
        Record(key=3, parent_key=1, name="CFO", order=3),
        Record(key=4, parent_key=2, name="Dev Team", order=4),
        Record(key=5, parent_key=2, name="QA Team", order=5),
        Record(key=6, parent_key=3, name="Accounting", order=6),
    ]


@pytest.fixture
def orphan_records():
    """1 <- 2, plus 3 pointing at a missing parent 999."""
    return [
        Record(key=1, parent_key=0, root_value=0, name="Root"),
        Record(key=2, parent_key=1, root_value=0, name="Child"),
        Record(key=3, parent_key=999, root_value=0, name="Lost"),
    ]
