"""
tests/conftest.py
Shared fixtures for the crudforge test suite.

Generators write real files into pytest's tmp_path; the introspection tests
run against a throwaway SQLite database.
"""

from __future__ import annotations

import importlib
import json
import pathlib
import sys
from datetime import datetime

import pytest
from sqlalchemy import create_engine, text

from crudforge.config import ProjectConfig
from crudforge.engine import TemplateEngine

FIXED_NOW = datetime(2024, 1, 2, 3, 4, 5)


@pytest.fixture(scope="session")
def engine() -> TemplateEngine:
    """Compile the packaged templates once per session."""
    return TemplateEngine()


@pytest.fixture()
def clock():
    return lambda: FIXED_NOW


@pytest.fixture()
def project(tmp_path: pathlib.Path) -> pathlib.Path:
    """An empty target project root."""
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture()
def import_generated(project: pathlib.Path, monkeypatch):
    """Import modules generated under the project root; unloaded again on teardown."""
    monkeypatch.syspath_prepend(str(project))
    yield importlib.import_module
    for name in [m for m in sys.modules if m == "app" or m.startswith("app.")]:
        del sys.modules[name]


@pytest.fixture()
def frontend_project(tmp_path: pathlib.Path) -> pathlib.Path:
    """A minimal Ant Design Pro project: package.json plus src/."""
    web = tmp_path / "web"
    (web / "src").mkdir(parents=True)
    (web / "package.json").write_text(json.dumps({"name": "web"}), encoding="utf-8")
    return web


@pytest.fixture()
def sqlite_path(tmp_path: pathlib.Path) -> pathlib.Path:
    """SQLite catalog with a products table and a prefixed order items table."""
    path = tmp_path / "catalog.db"
    db = create_engine(f"sqlite:///{path}")
    with db.begin() as conn:
        conn.execute(text(
            "CREATE TABLE products ("
            " id INTEGER PRIMARY KEY,"
            " name VARCHAR(100) NOT NULL,"
            " price DECIMAL(10,2),"
            " stock INTEGER NOT NULL DEFAULT 0,"
            " created_at DATETIME,"
            " updated_at DATETIME)"
        ))
        conn.execute(text(
            "CREATE TABLE tb_order_items ("
            " id INTEGER PRIMARY KEY,"
            " quantity INTEGER NOT NULL)"
        ))
    db.dispose()
    return path


@pytest.fixture()
def sqlite_url(sqlite_path: pathlib.Path) -> str:
    return f"sqlite:///{sqlite_path}"


@pytest.fixture()
def sqlite_config(sqlite_path: pathlib.Path) -> ProjectConfig:
    return ProjectConfig.model_validate({"database": {"driver": "sqlite", "database": str(sqlite_path)}})
