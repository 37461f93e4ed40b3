"""Atomic JSON file helpers shared by the file-backed stores."""

import json
from pathlib import Path
from typing import Any

from grantflow.domain.constants import TEMP_SUFFIX
from grantflow.domain.errors import StoreError


def write_json_atomic(path: Path, data: Any) -> Path:
    """Write JSON to a temp file, then rename over the target."""
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_file = path.with_suffix(TEMP_SUFFIX)
    try:
        with open(temp_file, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        temp_file.replace(path)
    except OSError as e:
        raise StoreError(f"Failed to write {path}: {e}") from e
    return path


def read_json(path: Path, default: Any = None) -> Any:
    """Read a JSON file; a missing file yields ``default``."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        return default
    except json.JSONDecodeError as e:
        raise StoreError(f"Malformed JSON in {path}: {e}") from e
    except OSError as e:
        raise StoreError(f"Failed to read {path}: {e}") from e
