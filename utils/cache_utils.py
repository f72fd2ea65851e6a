import os
import json
import tempfile
import logging
from typing import Dict, Any

logger = logging.getLogger(__name__)


def load_cache(path: str) -> Dict[str, Any]:
    if not os.path.exists(path):
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f) or {}
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable JSON file %s: %s", path, e)
        return {}
    return data if isinstance(data, dict) else {}


def save_cache(path: str, cache: Dict[str, Any]) -> None:
    # write-then-rename so a crash never leaves a half-written file;
    # each writer gets its own temp file
    with tempfile.NamedTemporaryFile(
        "w", encoding="utf-8", dir=os.path.dirname(os.path.abspath(path)),
        prefix=os.path.basename(path) + ".", suffix=".tmp", delete=False,
    ) as f:
        json.dump(cache, f, indent=2, ensure_ascii=False)
    try:
        os.replace(f.name, path)
    except OSError:
        os.remove(f.name)
        raise
