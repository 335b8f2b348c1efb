"""Progress store: the two keys the tracer reads and writes.

The app shares one key-value store between unrelated features. The tracer
touches exactly two keys:

    zen_sutra_index   current character index (int, or a numeric string)
    zen_profile       {"totalXP": int, "spentXP": int}, shared XP ledger

Storage is injected as a ``KeyValueStore`` with ``get``/``set``. All
operations are best-effort: a failing store is logged and reported as a
False return, and the caller's in-memory state moves on regardless.

Backends:
    - InMemoryStore: dict-backed, for tests and embedding
    - YamlFileStore: one YAML mapping per file, written atomically
"""

import json
import logging
import math
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Union

from ..utils import fs
from ..utils.validators import ProgressConfig

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[Any]:
        ...

    def set(self, key: str, value: Any) -> None:
        ...


class InMemoryStore:
    """Dict-backed store."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self.data: Dict[str, Any] = dict(initial or {})

    def get(self, key: str) -> Optional[Any]:
        return self.data.get(key)

    def set(self, key: str, value: Any) -> None:
        self.data[key] = value


class YamlFileStore:
    """Store persisted as a single YAML mapping.

    Every ``set`` rewrites the whole file atomically. A missing file reads
    as empty; a file that is not a mapping raises ``ValueError``.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        data = fs.load_yaml(self.path)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError(f"Store file {self.path} must hold a mapping, got {type(data).__name__}")
        return data

    def get(self, key: str) -> Optional[Any]:
        return self._load().get(key)

    def set(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        fs.atomic_yaml_dump(data, self.path)


def _parse_index(raw: Any) -> Optional[int]:
    """Leading-integer parse of a stored index; None when unparsable."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return int(raw) if math.isfinite(raw) else None
    text = str(raw).strip()
    digits = ""
    for i, ch in enumerate(text):
        if ch.isdigit() or (i == 0 and ch in "+-"):
            digits += ch
        else:
            break
    try:
        return int(digits)
    except ValueError:
        return None


class ProgressStore:
    """Cursor persistence and XP awards on top of a key-value store."""

    def __init__(self, store: KeyValueStore, cfg: Optional[ProgressConfig] = None):
        self.store = store
        self.cfg = cfg or ProgressConfig()

    def load_index(self, corpus_length: int) -> int:
        """Stored cursor, or 0 when missing, unparsable, out of range or unreadable."""
        try:
            raw = self.store.get(self.cfg.index_key)
        except Exception as e:
            logger.warning(f"Could not read {self.cfg.index_key}: {e}")
            return 0

        index = _parse_index(raw)
        if index is None or not 0 <= index < corpus_length:
            if raw is not None:
                logger.debug(
                    f"Stored {self.cfg.index_key}={raw!r} outside [0, {corpus_length}); using 0"
                )
            return 0
        return index

    def save_index(self, index: int) -> bool:
        try:
            self.store.set(self.cfg.index_key, int(index))
        except Exception as e:
            logger.warning(f"Could not persist {self.cfg.index_key}={index}: {e}")
            return False
        return True

    def award_xp(self, amount: int) -> bool:
        """Add amount to the shared profile's totalXP.

        A missing profile starts at zero. A malformed one is left untouched
        so another feature's data is never overwritten.
        """
        key = self.cfg.profile_key
        try:
            profile = self.store.get(key)
            if profile is None:
                profile = {"totalXP": 0, "spentXP": 0}
            elif isinstance(profile, str):
                profile = json.loads(profile)
            if not isinstance(profile, dict):
                raise ValueError(f"profile is {type(profile).__name__}, expected a mapping")

            updated = dict(profile)
            updated["totalXP"] = int(updated.get("totalXP", 0)) + int(amount)
            updated.setdefault("spentXP", 0)
            self.store.set(key, updated)
        except Exception as e:
            logger.warning(f"Could not award {amount} XP to {key}: {e}")
            return False
        logger.debug(f"Awarded {amount} XP")
        return True
