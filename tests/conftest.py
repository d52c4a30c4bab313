"""Pytest configuration and fixtures."""

from __future__ import annotations

from typing import Iterable

import pytest

from content_compliance import db
from content_compliance.core.catalog import RuleCatalog, default_catalog

ARTICLE = """# How to Optimize Content for AI Search

Search is changing. What exactly do assistants look for, and why does it matter?

## Why structure matters

Clear headings help readers and machines alike. We break every topic into a short section.

## What to write

Answer the questions your readers actually ask. How do you know which ones? Check your support inbox.
"""


def marker_content(catalog: RuleCatalog, exclude: Iterable[str] = (), only: Iterable[str] | None = None) -> str:
    """Content made of nothing but rule markers, one per line."""
    excluded = set(exclude)
    wanted = set(only) if only is not None else None
    return "\n".join(
        rule.marker
        for rule in catalog
        if rule.rule_id not in excluded and (wanted is None or rule.rule_id in wanted)
    )


@pytest.fixture
def catalog() -> RuleCatalog:
    return default_catalog()


@pytest.fixture
def all_markers(catalog) -> str:
    return marker_content(catalog)


@pytest.fixture
def article() -> str:
    return ARTICLE


@pytest.fixture
async def history_db(tmp_path, monkeypatch):
    """A fresh history database in a temporary DATA_DIR."""
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    await db.close_db()
    await db.init_db()
    yield tmp_path
    await db.close_db()


@pytest.fixture
async def missing_history_db(tmp_path, monkeypatch):
    """A DATA_DIR whose database was never initialized."""
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    await db.close_db()
    yield tmp_path
    await db.close_db()
