"""Architectural tests for the ordering service layering.

All checks use static filesystem/AST inspection to avoid import-time side
effects.
"""

from __future__ import annotations

import ast
from pathlib import Path
from typing import Iterable

import pytest


PROJECT_ROOT = Path(__file__).resolve().parents[2]
APP_DIR = PROJECT_ROOT / "catalog_admin"
LOGIC_DIR = APP_DIR / "logic"
ROUTES_DIR = APP_DIR / "routes"
HTTP_DIR = APP_DIR / "http"

SQL_KEYWORDS = ("UPDATE ", "INSERT INTO", "DELETE FROM", "SELECT ")


def parse(path: Path) -> ast.Module:
    try:
        return ast.parse(path.read_text(encoding="utf-8"), filename=str(path))
    except (OSError, SyntaxError) as exc:  # pragma: no cover - explicit failure in test
        pytest.fail(f"Failed to parse {path}: {exc}")


def py_files_under(*roots: Path) -> list[Path]:
    return [p for root in roots for p in sorted(root.rglob("*.py")) if "__pycache__" not in p.parts]


def imported_modules(tree: ast.AST) -> set[str]:
    names: set[str] = set()
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            names.update(alias.name for alias in node.names)
        elif isinstance(node, ast.ImportFrom) and node.module:
            names.add(node.module)
    return names


def string_constants(tree: ast.AST) -> Iterable[str]:
    for node in ast.walk(tree):
        if isinstance(node, ast.Constant) and isinstance(node.value, str):
            yield node.value
        elif isinstance(node, ast.JoinedStr):
            yield "".join(v.value for v in node.values if isinstance(v, ast.Constant) and isinstance(v.value, str))


def test_sequencer_is_pure() -> None:
    tree = parse(LOGIC_DIR / "sequencer.py")
    roots = {m.split(".")[0] for m in imported_modules(tree)}
    assert not roots & {"sqlalchemy", "fastapi", "pydantic"}
    assert not any(m.startswith("catalog_admin.db") for m in imported_modules(tree))


def test_routes_do_not_touch_sql() -> None:
    for path in py_files_under(ROUTES_DIR):
        tree = parse(path)
        assert not any(m.startswith("sqlalchemy") for m in imported_modules(tree)), path.name
        for value in string_constants(tree):
            assert not any(k in value for k in SQL_KEYWORDS), f"{path.name}: {value!r}"


def test_order_writes_live_in_store_adapter() -> None:
    allowed = {"scoped_store.py"}
    for path in py_files_under(LOGIC_DIR):
        if path.name in allowed:
            continue
        for value in string_constants(parse(path)):
            assert "SET display_order" not in value, path.name


def test_every_ordering_error_code_is_mapped() -> None:
    codes: set[str] = set()
    for node in ast.walk(parse(LOGIC_DIR / "errors.py")):
        if isinstance(node, ast.ClassDef):
            for stmt in node.body:
                if (
                    isinstance(stmt, ast.Assign)
                    and any(isinstance(t, ast.Name) and t.id == "code" for t in stmt.targets)
                    and isinstance(stmt.value, ast.Constant)
                ):
                    codes.add(stmt.value.value)
    codes.discard("ORDER_ERROR")
    mapping_source = (HTTP_DIR / "error_mapping.py").read_text(encoding="utf-8")
    missing = sorted(c for c in codes if f'"{c}"' not in mapping_source)
    assert codes and not missing


def test_no_bare_except_in_application_code() -> None:
    for path in py_files_under(APP_DIR):
        for node in ast.walk(parse(path)):
            if isinstance(node, ast.ExceptHandler):
                assert node.type is not None, f"bare except in {path.name}:{node.lineno}"


def test_every_route_module_requires_admin() -> None:
    for path in py_files_under(ROUTES_DIR):
        if path.name in {"__init__.py", "dependencies.py"}:
            continue
        source = path.read_text(encoding="utf-8")
        assert "dependencies=[Depends(require_admin)]" in source, path.name


def test_migrations_declare_scope_uniqueness() -> None:
    for folder in ("migrations", "sqlite_migrations"):
        sql = "\n".join(p.read_text(encoding="utf-8") for p in sorted((PROJECT_ROOT / folder).glob("*.sql")))
        assert "UNIQUE (display_order)" in sql
        assert "UNIQUE (category_id, display_order)" in sql
