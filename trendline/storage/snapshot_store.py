"""Local JSON snapshot of the last good prediction list per (sport, min confidence)."""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from trendline.models.payloads import parse_timestamp
from trendline.models.trends import Prediction

logger = logging.getLogger(__name__)


def prediction_key(sport: str, min_confidence: int) -> str:
    return f"predictions:{sport.lower()}:{int(min_confidence)}"


class SnapshotStore:
    """
    JSON file keyed by snapshot name, written with an atomic temp-file replace.

    A read or write failure never propagates: reads fall back to an empty
    store and writes are logged and skipped.
    """

    def __init__(self, path: str):
        self.path = Path(path)
        self._loaded = False
        self._entries: Dict[str, Dict[str, Any]] = {}

    def _load(self) -> None:
        if self._loaded:
            return
        self._loaded = True
        if not self.path.exists():
            self._entries = {}
            return
        try:
            payload = json.loads(self.path.read_text())
            entries = payload.get("entries", {})
            self._entries = entries if isinstance(entries, dict) else {}
        except Exception as e:
            logger.warning("Snapshot store read failed (%s). Starting with an empty store.", e)
            self._entries = {}

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "updated_at": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "entries": self._entries,
        }
        tmp_path = self.path.with_suffix(f"{self.path.suffix}.tmp")
        tmp_path.write_text(json.dumps(payload, indent=2, sort_keys=True) + "\n")
        tmp_path.replace(self.path)

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        self._load()
        entry = self._entries.get(str(key))
        if not isinstance(entry, dict):
            return None
        return dict(entry)

    def upsert(self, key: str, entry: Dict[str, Any]) -> None:
        self._load()
        self._entries[str(key)] = dict(entry)
        try:
            self._save()
        except Exception as e:
            logger.warning("Snapshot store write failed (%s). Continuing without persistence.", e)

    # ========================================================================
    # PREDICTIONS
    # ========================================================================

    def load_predictions(self, sport: str, min_confidence: int) -> Optional[Tuple[List[Prediction], Optional[datetime]]]:
        """Last saved predictions and when they were saved, or None."""
        entry = self.get(prediction_key(sport, min_confidence))
        if entry is None:
            return None
        items = entry.get("items")
        if not isinstance(items, list):
            return None
        try:
            predictions = [Prediction.from_dict(item) for item in items]
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Ignoring unreadable prediction snapshot for %s (%s)", sport, e)
            return None
        return predictions, parse_timestamp(entry.get("saved_at"))

    def save_predictions(
        self,
        sport: str,
        min_confidence: int,
        predictions: Sequence[Prediction],
        saved_at: datetime,
    ) -> None:
        self.upsert(prediction_key(sport, min_confidence), {
            "saved_at": saved_at.isoformat(),
            "items": [p.to_dict() for p in predictions],
        })
