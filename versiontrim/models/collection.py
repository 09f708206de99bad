"""Collection, object and version models.

Typed records for the entities discovered in the versioned object store.
All of them are read-only to the trimming engine and live for a single run.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict

DOCUMENT_LIBRARY = "document_library"
FILE = "file"
FOLDER = "folder"


@dataclass(frozen=True)
class Collection:
    """A named group of versioned objects (bucket, document library).

    Attributes:
        name: Collection identifier/title
        item_count: Number of items, when the store reports it (default: 0)
        hidden: True for hidden/system collections that are never trimmed
        kind: Collection class; only document libraries are trim targets
    """

    name: str
    item_count: int = 0
    hidden: bool = False
    kind: str = DOCUMENT_LIBRARY

    @property
    def is_target_candidate(self) -> bool:
        """Whether the collection may be selected by discovery."""
        return self.kind == DOCUMENT_LIBRARY and not self.hidden


@dataclass(frozen=True)
class ObjectItem:
    """One versioned object within a collection.

    Attributes:
        collection: Owning collection name
        object_id: Store identifier of the object
        reference: Server-relative path/key used to address the object
        display_name: Human-readable file name
        kind: Object type; only "file" entries are trimmed
        size: Size of the current version in bytes
    """

    collection: str
    object_id: str
    reference: str
    display_name: str
    kind: str = FILE
    size: int = 0

    @property
    def is_file(self) -> bool:
        return self.kind == FILE


@dataclass(frozen=True)
class ObjectVersion:
    """One stored version of an object.

    Exactly one version per object is current; the current version is never
    a deletion candidate.

    Attributes:
        version_id: Store identifier of the version
        label: Version label (e.g. "3.0" or an ordinal)
        created_at: Creation timestamp (timezone-aware UTC)
        is_current: True for the live version
        size: Version size in bytes
    """

    version_id: str
    label: str
    created_at: datetime
    is_current: bool = False
    size: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version_id": self.version_id,
            "label": self.label,
            "created_at": self.created_at.isoformat(),
            "is_current": self.is_current,
            "size": self.size,
        }
