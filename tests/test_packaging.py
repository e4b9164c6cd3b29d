"""Test packaging metadata and installation extras."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def _load_pyproject() -> dict[str, Any]:
    raw = (PROJECT_ROOT / "pyproject.toml").read_text(encoding="utf-8")
    if sys.version_info >= (3, 11):
        import tomllib

        return tomllib.loads(raw)

    import tomli

    return tomli.loads(raw)


def _names(requirements: list[str]) -> set[str]:
    out = set()
    for item in requirements:
        name = str(item).split(";")[0]
        for sep in ("<", ">", "=", "!", "~", "["):
            name = name.split(sep)[0]
        out.add(name.strip().lower())
    return out


def test_pyproject_declares_runtime_dependencies() -> None:
    """Every third-party library imported by `tideboard` is declared."""
    data = _load_pyproject()
    deps = _names(data.get("project", {}).get("dependencies", []))
    assert {"pyyaml", "loguru", "pydantic"} <= deps


def test_pyproject_declares_test_extras() -> None:
    """`[project.optional-dependencies].test` carries pytest and anyio."""
    data = _load_pyproject()
    test_deps = _names(data.get("project", {}).get("optional-dependencies", {}).get("test", []))
    assert "pytest" in test_deps
    assert "anyio" in test_deps


def test_package_exports() -> None:
    import tideboard

    assert set(tideboard.__all__) == {"BoardStore", "BoardState"}
