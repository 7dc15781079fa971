"""
Configuration Persister: builds, merges and commits the canonical document.

Document shape:

    version: 1
    stack:
        catalog: {name, version}
        structure / project_type / language / framework: <option id>
        additions: [<option id>, ...]
    tooling:
        <opaque payload from integration metadata, e.g. mcp servers, skills;
         a mapping or a list>
    integrations:
        <opaque payload from integration metadata, e.g. tracker ids>

Merge rules (existing document + newly built document):
    - mappings merge key by key, recursively
    - a key in the new document overwrites the old scalar value
    - a key only in the old document is preserved
    - lists are unioned, old items first, deduplicated by a stable identity
    - keys under "stack" written from the selection replace the old value
      outright, so a superseded tool never lingers in the document

The Persister is the only component that writes durable state, and it
writes the whole document at once (temp file + rename).
"""

from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml

from stackplan.config import REQUIRED_SECTIONS
from stackplan.errors import SchemaValidationError
from stackplan.selection import SelectionSnapshot

logger = logging.getLogger(__name__)

DOCUMENT_VERSION = 1

PAYLOAD_SECTIONS = ("integrations", "tooling")


def _identity(item: Any) -> str:
    """Stable identity for list deduplication."""
    if isinstance(item, Mapping):
        for key in ("id", "name"):
            if key in item:
                return f"{key}:{json.dumps(item[key], sort_keys=True, default=str)}"
    return json.dumps(item, sort_keys=True, default=str)


def merge_lists(old: Sequence[Any], new: Sequence[Any]) -> List[Any]:
    """Union two lists, old order first. Mapping items with the same identity are merged."""
    result: List[Any] = []
    index: Dict[str, int] = {}
    for item in list(old) + list(new):
        key = _identity(item)
        if key in index:
            pos = index[key]
            if isinstance(result[pos], Mapping) and isinstance(item, Mapping):
                result[pos] = deep_merge(result[pos], item)
            continue
        index[key] = len(result)
        result.append(copy.deepcopy(item))
    return result


def deep_merge(old: Mapping[str, Any], new: Mapping[str, Any]) -> Dict[str, Any]:
    """Recursively merge `new` into a copy of `old`."""
    merged: Dict[str, Any] = copy.deepcopy(dict(old))
    for key, value in new.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        elif isinstance(current, list) and isinstance(value, list):
            merged[key] = merge_lists(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def validate_document(document: Any, required_sections: Sequence[str] = REQUIRED_SECTIONS) -> None:
    """
    Only the shape is checked: section content other than "stack" is
    opaque and may be a mapping or a list.

    Raises:
        SchemaValidationError: not a mapping, a required section is
            missing, or "stack" is not a mapping
    """
    if not isinstance(document, Mapping):
        raise SchemaValidationError(reason=f"expected a mapping, got {type(document).__name__}")
    missing = [s for s in required_sections if s not in document]
    if missing:
        raise SchemaValidationError(missing)
    if "stack" in document and not isinstance(document["stack"], Mapping):
        raise SchemaValidationError(reason="section 'stack' must be a mapping")


def build_stack_section(snapshot: SelectionSnapshot) -> Dict[str, Any]:
    stack: Dict[str, Any] = {
        "catalog": {"name": snapshot.catalog_name, "version": snapshot.catalog_version},
    }
    for node_id, value in snapshot.answers.items():
        stack[node_id] = list(value) if isinstance(value, tuple) else value
    return stack


def build_document(snapshot: SelectionSnapshot, integration_metadata: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """
    Build a fresh canonical document.

    `integration_metadata` may carry "integrations" and "tooling"
    payloads (mappings or lists); their content is passed through unchanged.
    """
    metadata = integration_metadata or {}
    integrations = metadata.get("integrations")
    tooling = metadata.get("tooling")
    return {
        "version": DOCUMENT_VERSION,
        "integrations": copy.deepcopy(integrations) if integrations is not None else {},
        "tooling": copy.deepcopy(tooling) if tooling is not None else {},
        "stack": build_stack_section(snapshot),
    }


def persist(existing: Optional[Mapping[str, Any]], snapshot: SelectionSnapshot,
            integration_metadata: Optional[Mapping[str, Any]] = None,
            required_sections: Sequence[str] = REQUIRED_SECTIONS) -> Dict[str, Any]:
    """
    Produce the canonical document for `snapshot`, in memory.

    Args:
        existing: The current document, or None on first run
        snapshot: Finalized selection
        integration_metadata: Opaque "integrations" / "tooling" payload

    Returns:
        The new document (never aliases `existing`)

    Raises:
        SchemaValidationError: the result lacks a required section
    """
    fresh = build_document(snapshot, integration_metadata)
    if existing is None:
        document = fresh
    else:
        if not isinstance(existing, Mapping):
            raise SchemaValidationError(reason=f"existing document is a {type(existing).__name__}")
        metadata = integration_metadata or {}
        # a payload section the caller did not supply keeps its stored content
        update = {
            key: value for key, value in fresh.items()
            if key not in PAYLOAD_SECTIONS or key not in existing or metadata.get(key) is not None
        }
        document = deep_merge(existing, update)
        if isinstance(document.get("stack"), dict):
            document["stack"].update(copy.deepcopy(fresh["stack"]))
    validate_document(document, required_sections)
    return document


class ConfigStore:
    """
    On-disk home of the canonical document.

    YAML by default; JSON when the path ends in ".json".
    """

    def __init__(self, path: Path, required_sections: Sequence[str] = REQUIRED_SECTIONS):
        self.path = Path(path)
        self.required_sections = tuple(required_sections)

    @property
    def is_json(self) -> bool:
        return self.path.suffix.lower() == ".json"

    def load(self) -> Optional[Dict[str, Any]]:
        """Return the stored document, or None if there is none yet."""
        if not self.path.exists():
            return None
        text = self.path.read_text(encoding="utf-8")
        data = json.loads(text) if self.is_json else yaml.safe_load(text)
        if data is None:
            return None
        if not isinstance(data, dict):
            raise SchemaValidationError(reason=f"{self.path} does not contain a mapping")
        return data

    def dumps(self, document: Mapping[str, Any]) -> str:
        if self.is_json:
            return json.dumps(document, indent=2) + "\n"
        return yaml.safe_dump(dict(document), sort_keys=False, default_flow_style=False)

    def commit(self, document: Mapping[str, Any]) -> Path:
        """
        Validate and atomically replace the stored document.

        On SchemaValidationError the existing file is left untouched.
        """
        validate_document(document, self.required_sections)
        text = self.dumps(document)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(text)
            os.replace(tmp_name, self.path)
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
        logger.info("Wrote %s", self.path)
        return self.path

    def persist(self, snapshot: SelectionSnapshot, integration_metadata: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """Load, merge and commit in one step."""
        document = persist(self.load(), snapshot, integration_metadata, self.required_sections)
        self.commit(document)
        return document
