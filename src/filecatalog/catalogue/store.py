"""Catalogue of file locations keyed by content fingerprint, plus its storage."""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1.0"


class CatalogueFormatError(ValueError):
    """Persisted catalogue bytes could not be decoded."""


@dataclass(frozen=True)
class FileLocation:
    """One on-disk occurrence of a piece of content."""

    name: str
    directory: str
    size: int

    @property
    def path(self) -> str:
        return os.path.join(self.directory, self.name)

    def to_dict(self) -> dict:
        return {"name": self.name, "directory": self.directory, "size": self.size}

    @classmethod
    def from_dict(cls, data: dict) -> "FileLocation":
        if not isinstance(data, dict):
            raise CatalogueFormatError(f"Location must be an object, got {type(data).__name__}")
        try:
            name, directory, size = data["name"], data["directory"], data["size"]
        except KeyError as e:
            raise CatalogueFormatError(f"Location is missing field {e}") from e
        if not isinstance(name, str) or not isinstance(directory, str):
            raise CatalogueFormatError("Location name and directory must be strings")
        if isinstance(size, bool) or not isinstance(size, int) or size < 0:
            raise CatalogueFormatError(f"Location size must be a non-negative integer, got {size!r}")
        return cls(name=name, directory=directory, size=size)


class Catalogue:
    """Mapping from fingerprint to every known location sharing that content.

    Lists are append-only and never empty: a fingerprint only becomes a key
    when its first location is recorded.
    """

    def __init__(self) -> None:
        self._entries: dict[str, list[FileLocation]] = {}
        self._paths: list[str] = []

    @classmethod
    def empty(cls) -> "Catalogue":
        return cls()

    def lookup(self, fingerprint: str) -> list[FileLocation] | None:
        locations = self._entries.get(fingerprint)
        if locations is None:
            return None
        return list(locations)

    def record(self, fingerprint: str, location: FileLocation) -> None:
        self._entries.setdefault(fingerprint, []).append(location)

    def add_path(self, root: str) -> None:
        """Remember a scanned root path (once)."""
        if root not in self._paths:
            self._paths.append(root)

    @property
    def paths(self) -> list[str]:
        return list(self._paths)

    def fingerprints(self) -> list[str]:
        return list(self._entries)

    def duplicates(self) -> dict[str, list[FileLocation]]:
        """Fingerprints recorded at more than one location."""
        return {fp: list(locs) for fp, locs in self._entries.items() if len(locs) > 1}

    def total_files(self) -> int:
        return sum(len(locs) for locs in self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, fingerprint: object) -> bool:
        return fingerprint in self._entries

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Catalogue):
            return NotImplemented
        return self._entries == other._entries and self._paths == other._paths

    def __repr__(self) -> str:
        return f"Catalogue(fingerprints={len(self)}, files={self.total_files()})"

    def serialize(self) -> bytes:
        doc = {
            "schema_version": SCHEMA_VERSION,
            "paths": self._paths,
            "entries": {
                fp: [loc.to_dict() for loc in locs] for fp, locs in self._entries.items()
            },
        }
        return json.dumps(doc, indent=2, sort_keys=True).encode("utf-8")

    @classmethod
    def deserialize(cls, data: bytes) -> "Catalogue":
        """Rebuild a catalogue from serialize() output.

        Raises CatalogueFormatError for truncated, malformed or structurally
        invalid input. No partial catalogue is ever returned.
        """
        try:
            doc = json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise CatalogueFormatError(f"Catalogue is not valid JSON: {e}") from e

        if not isinstance(doc, dict):
            raise CatalogueFormatError("Catalogue document must be an object")
        if doc.get("schema_version") != SCHEMA_VERSION:
            raise CatalogueFormatError(
                f"Unsupported catalogue schema version: {doc.get('schema_version')!r}"
            )

        entries = doc.get("entries")
        paths = doc.get("paths", [])
        if not isinstance(entries, dict):
            raise CatalogueFormatError("Catalogue 'entries' must be an object")
        if not isinstance(paths, list) or not all(isinstance(p, str) for p in paths):
            raise CatalogueFormatError("Catalogue 'paths' must be a list of strings")

        catalogue = cls()
        for fingerprint, locations in entries.items():
            if not isinstance(locations, list) or not locations:
                raise CatalogueFormatError(
                    f"Fingerprint {fingerprint} must map to a non-empty list of locations"
                )
            for loc in locations:
                catalogue.record(fingerprint, FileLocation.from_dict(loc))
        for root in paths:
            catalogue.add_path(root)
        return catalogue


def load_catalogue(path: Path) -> Catalogue:
    """Read a persisted catalogue. OSError and CatalogueFormatError propagate."""
    path = Path(path)
    catalogue = Catalogue.deserialize(path.read_bytes())
    logger.info("Catalogue loaded: %s (%d fingerprints)", path, len(catalogue))
    return catalogue


def save_catalogue(catalogue: Catalogue, path: Path) -> None:
    """Overwrite the persisted catalogue at path.

    The new content is written next to the target and moved into place, so
    a failed write leaves the previous file intact.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    try:
        with open(tmp, "wb") as f:
            f.write(catalogue.serialize())
        os.replace(tmp, path)
    except OSError:
        tmp.unlink(missing_ok=True)
        raise
    logger.info("Catalogue saved: %s (%d fingerprints)", path, len(catalogue))


def open_catalogue(path: Path) -> Catalogue:
    """Load the catalogue at path, creating an empty one there first if missing."""
    path = Path(path)
    if not path.exists():
        logger.info("No catalogue at %s, creating an empty one", path)
        save_catalogue(Catalogue.empty(), path)
    return load_catalogue(path)
