"""SCAN stage: walk a directory tree and fingerprint every file into a catalogue."""

import logging
import os
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable

from filecatalog.catalogue.store import Catalogue, FileLocation
from filecatalog.intake.hasher import DEFAULT_ALGORITHM, hash_file

logger = logging.getLogger(__name__)

DuplicateObserver = Callable[[FileLocation, int], None]


@dataclass
class ScanCounters:
    """Per-scan tallies. Never persisted."""

    unique: int = 0
    duplicates: int = 0

    def reset(self) -> None:
        self.unique = 0
        self.duplicates = 0

    @property
    def files(self) -> int:
        return self.unique + self.duplicates


def log_duplicate(location: FileLocation, occurrence: int) -> None:
    logger.info("![%d] %s", occurrence, location.path)


def _raise(error: OSError) -> None:
    raise error


def _root_is_file(root: Path) -> bool:
    """Stat the scan root (following a symlinked root) and reject other types."""
    mode = os.stat(root).st_mode
    if stat.S_ISREG(mode):
        return True
    if not stat.S_ISDIR(mode):
        raise NotADirectoryError(f"Not a directory or regular file: {root}")
    return False


def iter_files(root: Path, skip_names: Iterable[str] = ()) -> Iterable[Path]:
    """Yield regular files under root depth-first, in sorted name order.

    Symbolic links below the root are never followed or yielded. Directory
    listing errors are raised rather than skipped.
    """
    skip = set(skip_names)
    if _root_is_file(root):
        yield Path(root)
        return

    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
        # Prune in place; os.walk does not descend into symlinked dirs by default
        dirnames[:] = sorted(d for d in dirnames if d not in skip)

        for fname in sorted(filenames):
            if fname in skip:
                continue
            fpath = Path(dirpath) / fname
            mode = os.lstat(fpath).st_mode
            if not stat.S_ISREG(mode):
                continue
            yield fpath


def scan(
    root: Path,
    catalogue: Catalogue,
    *,
    algorithm: str = DEFAULT_ALGORITHM,
    hasher: Callable[[Path], str] | None = None,
    on_duplicate: DuplicateObserver | None = log_duplicate,
    counters: ScanCounters | None = None,
    skip_names: Iterable[str] = (),
) -> ScanCounters:
    """Fingerprint every regular file under root and record it in the catalogue.

    A file whose fingerprint is not yet in the catalogue counts as unique;
    otherwise it counts as a duplicate and the observer is told its
    occurrence number (existing copies + 1). Both kinds are recorded.

    Fail-fast: the first OSError (listing, stat or hashing) stops the walk
    and propagates unchanged. Locations recorded before the failure stay in
    the catalogue.
    """
    if hasher is None:
        def hasher(path: Path) -> str:
            return hash_file(path, algorithm)

    if counters is None:
        counters = ScanCounters()

    root = Path(root).expanduser().resolve()
    _root_is_file(root)
    catalogue.add_path(str(root))
    logger.debug("Scanning %s", root)

    for fpath in iter_files(root, skip_names):
        fingerprint = hasher(fpath)
        location = FileLocation(
            name=fpath.name,
            directory=str(fpath.parent),
            size=fpath.stat().st_size,
        )

        existing = catalogue.lookup(fingerprint)
        if existing is None:
            counters.unique += 1
        else:
            counters.duplicates += 1
            if on_duplicate is not None:
                on_duplicate(location, len(existing) + 1)
        catalogue.record(fingerprint, location)

    logger.debug(
        "Scanned %s: %d unique, %d duplicates", root, counters.unique, counters.duplicates
    )
    return counters
