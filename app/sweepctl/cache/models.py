"""Metadata cache entry model."""

import json
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """Cached metadata for a single path.

    An entry describes the path as it was at ``mtime``; it is only valid
    while the path's current mtime matches.

    Attributes:
        path: Absolute path.
        mtime: Path modification time the entry was measured at.
        size_kb: Size in kilobytes (0 when unknown).
        last_used_epoch: Last-used time (0 when unknown).
        updated_epoch: When the entry was written.
        bundle_id: Application identity, if any.
        display_name: Display name, if any.
    """

    path: str
    mtime: int
    size_kb: int = 0
    last_used_epoch: int = 0
    updated_epoch: int = 0
    bundle_id: str | None = None
    display_name: str | None = None

    def __post_init__(self) -> None:
        """Validate entry data after initialization."""
        if not self.path:
            msg = "Cache entry path cannot be empty"
            raise ValueError(msg)
        if self.size_kb < 0 or self.last_used_epoch < 0:
            msg = f"Negative metadata in cache entry for {self.path}"
            raise ValueError(msg)

    @property
    def identity_key(self) -> tuple[str, int]:
        """Entry identity: (path, mtime)."""
        return (self.path, self.mtime)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage."""
        result: dict[str, Any] = {
            "path": self.path,
            "mtime": self.mtime,
            "size_kb": self.size_kb,
            "last_used_epoch": self.last_used_epoch,
            "updated_epoch": self.updated_epoch,
        }
        if self.bundle_id is not None:
            result["bundle_id"] = self.bundle_id
        if self.display_name is not None:
            result["display_name"] = self.display_name
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CacheEntry":
        """Deserialize from dictionary.

        Raises:
            KeyError: If required fields are missing.
            ValueError: If fields have invalid values.
            TypeError: If fields have the wrong type.
        """
        return cls(
            path=str(data["path"]),
            mtime=int(data["mtime"]),
            size_kb=int(data.get("size_kb", 0)),
            last_used_epoch=int(data.get("last_used_epoch", 0)),
            updated_epoch=int(data.get("updated_epoch", 0)),
            bundle_id=data.get("bundle_id"),
            display_name=data.get("display_name"),
        )

    def to_json_line(self) -> str:
        """Serialize to JSON line for JSONL storage."""
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_json_line(cls, line: str) -> "CacheEntry":
        """Deserialize from JSON line.

        Raises:
            json.JSONDecodeError: If line is not valid JSON.
            KeyError: If required fields are missing.
            ValueError: If data is invalid.
            TypeError: If fields have the wrong type.
        """
        return cls.from_dict(json.loads(line.strip()))
