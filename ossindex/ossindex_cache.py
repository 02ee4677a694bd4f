import json
import threading
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Iterable, List, Optional, Tuple

from models.coordinate import Coordinate


def _as_local_naive(dt: datetime) -> datetime:
    if dt.tzinfo is not None:
        return dt.astimezone().replace(tzinfo=None)
    return dt


class OSSIndexCache:
    """
    Single-file JSON cache of OSS Index component reports, keyed by purl.

    Cache file format:
      {
        "pkg:golang/github.com/foo/bar@v1.0.0": {
          "expires_at": "2026-10-19T22:00:00",
          "data": { ... Coordinate as dict ... }
        }
      }

    Every entry written during a run expires at the same instant (the audit's TTL).
    """

    def __init__(self, cache_path: Path, *, expires_at: datetime) -> None:
        self.cache_path = cache_path
        self.expires_at = _as_local_naive(expires_at)
        self._lock = threading.RLock()
        self._entries: Dict[str, Dict[str, Any]] = {}
        self._load_cache_file()

    @staticmethod
    def _key(purl: str) -> str:
        return purl.strip().lower()

    def _load_cache_file(self) -> None:
        try:
            if self.cache_path.exists():
                data = json.loads(self.cache_path.read_text(encoding="utf-8"))
                if isinstance(data, dict):
                    self._entries.update({k: v for k, v in data.items() if isinstance(v, dict)})
        except (OSError, ValueError):
            # corrupted cache: start empty, it gets rewritten on the next save
            self._entries = {}

    def _save_cache_file(self) -> None:
        self.cache_path.parent.mkdir(parents=True, exist_ok=True)
        self.cache_path.write_text(json.dumps(self._entries, indent=2, ensure_ascii=False), encoding="utf-8")

    @staticmethod
    def _is_fresh(entry: Dict[str, Any], now: datetime) -> bool:
        raw = entry.get("expires_at")
        if not isinstance(raw, str):
            return False
        try:
            expires_at = _as_local_naive(datetime.fromisoformat(raw))
        except ValueError:
            return False
        return now < expires_at

    def get(self, purl: str, *, now: Optional[datetime] = None) -> Optional[Coordinate]:
        now = now or datetime.now()
        with self._lock:
            entry = self._entries.get(self._key(purl))
            if not entry or not self._is_fresh(entry, now):
                return None
            data = entry.get("data")
            if not isinstance(data, dict):
                return None
            return Coordinate.from_dict(data)

    def partition(self, purls: Iterable[str], *, now: Optional[datetime] = None) -> Tuple[List[Coordinate], List[str]]:
        """
        Split purls into (cached coordinates, purls that still need a lookup).
        """
        hits: List[Coordinate] = []
        misses: List[str] = []
        for purl in purls:
            cached = self.get(purl, now=now)
            if cached is None:
                misses.append(purl)
            else:
                hits.append(cached)
        return hits, misses

    def put_all(self, coordinates: Iterable[Coordinate]) -> None:
        with self._lock:
            for c in coordinates:
                self._entries[self._key(c.coordinates)] = {
                    "expires_at": self.expires_at.isoformat(),
                    "data": c.to_dict(),
                }
            self._save_cache_file()
