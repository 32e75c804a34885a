"""
JSON file import/export for FlowCanvas.

Export format (always the full bundle):

{
  "nodes": [...],      # current snapshot
  "edges": [...],
  "history": [         # every saved version
    {"id", "name", "timestamp", "nodes": [...], "edges": [...]}
  ]
}

Import accepts the full bundle or a bare {"nodes", "edges"} object. Parsing
is all-or-nothing: the whole document is validated and converted before the
caller touches any state, and every problem surfaces as a BundleError.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from flowcanvas.models import Snapshot, Version

logger = logging.getLogger(__name__)


class BundleError(ValueError):
    """A file could not be imported. The message is safe to show to the user."""


@dataclass
class ImportedBundle:
    """
    Parsed import file.

    versions is None for a bare {nodes, edges} file, otherwise the list
    of versions from the bundle (possibly empty).
    """
    snapshot: Snapshot
    versions: Optional[List[Version]] = None

    @property
    def is_full_bundle(self) -> bool:
        return self.versions is not None


def build_bundle(snapshot: Snapshot, versions: List[Version]) -> Dict[str, Any]:
    return {
        **snapshot.to_dict(),
        "history": [v.to_dict() for v in versions],
    }


def dumps_bundle(snapshot: Snapshot, versions: List[Version]) -> str:
    return json.dumps(build_bundle(snapshot, versions), indent=2, ensure_ascii=False)


def parse_bundle(text: str) -> ImportedBundle:
    """
    Parse and validate an import file.

    Raises:
        BundleError: on a JSON syntax error, a wrong shape, or a record that
            cannot be converted
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise BundleError(f"Error reading or parsing file: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("nodes"), list) \
            or not isinstance(data.get("edges"), list):
        raise BundleError("Invalid file format: expected 'nodes' and 'edges' arrays.")

    snapshot = _snapshot_from(data, "file")

    if "history" not in data:
        return ImportedBundle(snapshot=snapshot)

    raw_history = data["history"]
    if not isinstance(raw_history, list):
        raise BundleError("Invalid file format: 'history' must be an array.")

    versions = []
    for i, raw in enumerate(raw_history):
        if not isinstance(raw, dict):
            raise BundleError(f"Invalid version at index {i}.")
        for key in ("nodes", "edges"):
            if not isinstance(raw.get(key, []), list):
                raise BundleError(f"Invalid version at index {i}: '{key}' must be an array.")
        vsnap = _snapshot_from(raw, f"version {i}")
        v = Version.from_dict({k: raw[k] for k in ("id", "name", "timestamp") if k in raw})
        versions.append(Version(id=v.id, name=v.name, timestamp=v.timestamp, snapshot=vsnap))

    return ImportedBundle(snapshot=snapshot, versions=versions)


def _snapshot_from(data: Dict[str, Any], where: str) -> Snapshot:
    for key in ("nodes", "edges"):
        for i, record in enumerate(data.get(key) or []):
            if not isinstance(record, dict):
                raise BundleError(f"Invalid {key[:-1]} at index {i} in {where}.")
    for i, record in enumerate(data.get("nodes") or []):
        variables = record.get("variables")
        if variables is None:
            continue
        if not isinstance(variables, list) or not all(isinstance(v, dict) for v in variables):
            raise BundleError(f"Invalid variables on node at index {i} in {where}.")
    try:
        return Snapshot.from_dict(data)
    except KeyError as e:
        raise BundleError(f"Missing field {e} in {where}.") from e
    except (ValueError, TypeError) as e:
        raise BundleError(f"Invalid record in {where}: {e}") from e


def write_bundle(path: Path, snapshot: Snapshot, versions: List[Version]) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(dumps_bundle(snapshot, versions))
    logger.info(f"Exported {len(snapshot.nodes)} nodes, {len(versions)} versions to {path}")
    return path


def read_bundle(path: Path) -> ImportedBundle:
    try:
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise BundleError(f"Error reading file: {e}") from e
    return parse_bundle(text)
