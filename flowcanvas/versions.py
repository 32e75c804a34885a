"""
In-memory list of saved versions.

Versions are appended on save, never edited, and removed only on explicit
delete or when an imported bundle replaces the whole list.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from flowcanvas.models import Snapshot, Version

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO-8601 timestamp; naive values are taken as UTC.

    Unparseable values sort before every real timestamp.
    """
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        return datetime.min.replace(tzinfo=timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class VersionStore:
    def __init__(self, versions: Iterable[Version] = ()):
        self._versions: List[Version] = list(versions)

    def __len__(self) -> int:
        return len(self._versions)

    def __iter__(self):
        return iter(self._versions)

    def all(self) -> List[Version]:
        """Versions in insertion order (the order they are exported in)."""
        return list(self._versions)

    def newest_first(self) -> List[Version]:
        return sorted(self._versions, key=lambda v: parse_timestamp(v.timestamp), reverse=True)

    def latest(self) -> Optional[Version]:
        ordered = self.newest_first()
        return ordered[0] if ordered else None

    def get(self, version_id: str) -> Optional[Version]:
        for v in self._versions:
            if v.id == version_id:
                return v
        return None

    def save(self, name: str, snapshot: Snapshot, timestamp: Optional[str] = None) -> Version:
        """
        Store a copy of snapshot under name.

        Raises:
            ValueError: if the name is empty after trimming
        """
        name = (name or "").strip()
        if not name:
            raise ValueError("Version name must not be empty")
        version = Version(
            id=str(uuid.uuid4()),
            name=name,
            timestamp=timestamp or _now_iso(),
            snapshot=snapshot,
        )
        self._versions.append(version)
        logger.info(f"Saved version '{name}' ({version.id})")
        return version

    def delete(self, version_id: str) -> bool:
        before = len(self._versions)
        self._versions = [v for v in self._versions if v.id != version_id]
        return len(self._versions) != before

    def replace_all(self, versions: Iterable[Version]) -> None:
        self._versions = list(versions)
