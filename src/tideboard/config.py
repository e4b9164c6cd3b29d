"""Load optional board configuration from `.tideboard/config.yaml`."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from .constants import (
    CONFIG_FILE,
    DEFAULT_BLOCK_COLOR,
    DEFAULT_BLOCK_NAME,
    DEFAULT_COLUMNS,
    STATE_DIR_NAME,
)
from .io_utils import _load_data_with_error


def load_board_config(project_dir: Path) -> tuple[dict[str, Any], str | None]:
    """Load the optional board config file.

    Args:
        project_dir: Directory holding the `.tideboard/` state directory.

    Returns:
        A tuple of `(config, error_message)`. If the file is missing, returns `({}, None)`.
    """
    project_dir = project_dir.resolve()
    path = project_dir / STATE_DIR_NAME / CONFIG_FILE
    if not path.exists():
        return {}, None
    data, err = _load_data_with_error(path, {})
    if err:
        return {}, err
    return data, None


def _get_nested(config: dict[str, Any], *keys: str) -> Any:
    cur: Any = config
    for key in keys:
        if not isinstance(cur, dict):
            return None
        cur = cur.get(key)
    return cur


def get_default_block_config(config: dict[str, Any]) -> dict[str, str]:
    """Return the catch-all block used when no block can be resolved.

    Args:
        config: Board configuration dictionary.

    Returns:
        A mapping with `name` and `color` keys.
    """
    raw = _get_nested(config, "default_block")
    raw = raw if isinstance(raw, dict) else {}
    name = raw.get("name")
    color = raw.get("color")
    return {
        "name": name.strip() if isinstance(name, str) and name.strip() else DEFAULT_BLOCK_NAME,
        "color": color if isinstance(color, str) and color else DEFAULT_BLOCK_COLOR,
    }


def get_columns_config(config: dict[str, Any]) -> list[tuple[str, str, bool]]:
    """Extract the initial column catalog as `(id, name, fixed)` tuples.

    Entries may be plain names or mappings with `id`, `name` and `fixed`.
    The fixed entry and terminal columns are always present, whatever the
    file says.
    """
    raw = _get_nested(config, "columns")
    if not isinstance(raw, list) or not raw:
        return list(DEFAULT_COLUMNS)

    from .board.columns import normalize_column_id

    defaults = {cid: (cid, name, fixed) for cid, name, fixed in DEFAULT_COLUMNS}
    out: list[tuple[str, str, bool]] = []
    seen: set[str] = set()
    for item in raw:
        if isinstance(item, str):
            name = item.strip()
            cid = normalize_column_id(name)
        elif isinstance(item, dict) and isinstance(item.get("name"), str):
            name = item["name"].strip()
            cid = normalize_column_id(str(item.get("id") or name))
        else:
            continue
        if not name or not cid or cid in seen:
            continue
        fixed = defaults[cid][2] if cid in defaults else False
        out.append((cid, name, fixed))
        seen.add(cid)

    for cid, spec in defaults.items():
        if spec[2] and cid not in seen:
            if cid == DEFAULT_COLUMNS[0][0]:
                out.insert(0, spec)
            else:
                out.append(spec)
    return out


def get_autosave_config(config: dict[str, Any]) -> dict[str, Any]:
    """Extract the autosave block (`enabled`, default True)."""
    raw = _get_nested(config, "autosave")
    raw = raw if isinstance(raw, dict) else {}
    return {"enabled": bool(raw.get("enabled", True))}


def get_ingestion_config(config: dict[str, Any]) -> dict[str, Any]:
    """Extract the ingestion block (`create_suggested_blocks`, default False)."""
    raw = _get_nested(config, "ingestion")
    raw = raw if isinstance(raw, dict) else {}
    return {"create_suggested_blocks": bool(raw.get("create_suggested_blocks", False))}
