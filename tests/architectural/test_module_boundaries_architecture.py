"""Architectural tests for the formflow package layout.

All tests are static/AST-based to avoid runtime side effects. They pin the
layering: engine logic stays free of web and database frameworks (apart from
the progress repository), models stay plain pydantic, routes reach the
database only through logic modules, and each session builds its own store.
"""

from __future__ import annotations

import ast
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Set

import pytest


# -----
# Helpers: File discovery and safe AST parsing
# -----

PROJECT_ROOT = Path(__file__).resolve().parents[2]
PACKAGE_DIR = PROJECT_ROOT / "formflow"
ROUTES_DIR = PACKAGE_DIR / "routes"
LOGIC_DIR = PACKAGE_DIR / "logic"
MODELS_DIR = PACKAGE_DIR / "models"

WEB_FRAMEWORKS = {"fastapi", "starlette"}
DATABASE_LIBRARIES = {"sqlalchemy"}


def py_files_under(*roots: Path) -> list[Path]:
    files: list[Path] = []
    for root in roots:
        if not root.exists():
            continue
        for p in root.rglob("*.py"):
            if "__pycache__" in p.parts:
                continue
            files.append(p)
    return files


@dataclass
class ParsedModule:
    path: Path
    tree: ast.AST


def parse_module_safe(path: Path) -> Optional[ParsedModule]:
    try:
        code = path.read_text(encoding="utf-8")
    except OSError:  # pragma: no cover - filesystem error should fail test later
        return None
    try:
        return ParsedModule(path=path, tree=ast.parse(code, filename=str(path)))
    except SyntaxError:
        return None


def parse_many(files: Iterable[Path]) -> list[ParsedModule]:
    result: list[ParsedModule] = []
    for f in files:
        pm = parse_module_safe(f)
        if pm is not None:
            result.append(pm)
    return result


def imported_roots(pm: ParsedModule) -> Set[str]:
    """Top-level distribution names imported anywhere in the module."""
    roots: Set[str] = set()
    for node in ast.walk(pm.tree):
        if isinstance(node, ast.Import):
            roots.update(alias.name.split(".")[0] for alias in node.names)
        elif isinstance(node, ast.ImportFrom) and node.module and node.level == 0:
            roots.add(node.module.split(".")[0])
    return roots


def _rel(path: Path) -> str:
    return str(path.relative_to(PROJECT_ROOT))


# -----
# Tests
# -----


def test_package_sources_parse() -> None:
    files = py_files_under(PACKAGE_DIR)
    assert files, f"No Python sources found under {PACKAGE_DIR}"
    unparsable = [_rel(f) for f in files if parse_module_safe(f) is None]
    assert not unparsable, f"Modules failed to parse: {unparsable}"


def test_logic_does_not_import_web_frameworks() -> None:
    offenders: List[str] = []
    for pm in parse_many(py_files_under(LOGIC_DIR)):
        if imported_roots(pm) & WEB_FRAMEWORKS:
            offenders.append(_rel(pm.path))
    assert not offenders, f"Logic modules must not depend on FastAPI/Starlette: {offenders}"


def test_only_progress_repository_touches_the_database_from_logic() -> None:
    offenders: List[str] = []
    for pm in parse_many(py_files_under(LOGIC_DIR)):
        if pm.path.name == "repository_progress.py":
            continue
        if imported_roots(pm) & DATABASE_LIBRARIES:
            offenders.append(_rel(pm.path))
    assert not offenders, f"SQLAlchemy imported outside the progress repository: {offenders}"


def test_models_are_framework_free() -> None:
    offenders: List[str] = []
    for pm in parse_many(py_files_under(MODELS_DIR)):
        if imported_roots(pm) & (WEB_FRAMEWORKS | DATABASE_LIBRARIES):
            offenders.append(_rel(pm.path))
    assert not offenders, f"Models must only depend on pydantic: {offenders}"


def test_routes_do_not_import_sqlalchemy() -> None:
    offenders: List[str] = []
    for pm in parse_many(py_files_under(ROUTES_DIR)):
        if imported_roots(pm) & DATABASE_LIBRARIES:
            offenders.append(_rel(pm.path))
    assert not offenders, f"Routes must use repository functions for persistence: {offenders}"


def test_no_module_level_variable_store() -> None:
    offenders: List[str] = []
    for pm in parse_many(py_files_under(PACKAGE_DIR)):
        for node in getattr(pm.tree, "body", []):
            if not isinstance(node, (ast.Assign, ast.AnnAssign)):
                continue
            value = node.value
            if isinstance(value, ast.Call) and isinstance(value.func, ast.Name) and value.func.id == "VariableStore":
                offenders.append(f"{_rel(pm.path)}:{node.lineno}")
    assert not offenders, f"Variable stores must be created per session, not at import time: {offenders}"


@pytest.mark.parametrize(
    "module",
    ["sessions.py", "navigation.py", "conditions.py", "progress.py"],
)
def test_route_modules_declare_router(module: str) -> None:
    pm = parse_module_safe(ROUTES_DIR / module)
    assert pm is not None, f"Route module missing or unparsable: {module}"
    names = {
        target.id
        for node in ast.walk(pm.tree)
        if isinstance(node, ast.Assign)
        for target in node.targets
        if isinstance(target, ast.Name)
    }
    assert "router" in names, f"{module} must expose an APIRouter named 'router'"


def test_api_router_mounted_under_version_prefix() -> None:
    pm = parse_module_safe(PACKAGE_DIR / "main.py")
    assert pm is not None
    prefixes = [
        kw.value.value
        for node in ast.walk(pm.tree)
        if isinstance(node, ast.Call) and isinstance(node.func, ast.Attribute) and node.func.attr == "include_router"
        for kw in node.keywords
        if kw.arg == "prefix" and isinstance(kw.value, ast.Constant)
    ]
    assert "/api/v1" in prefixes
