"""Scan / commit / discard lifecycle of the live catalogue.

The controller owns the one in-memory Catalogue for the process and moves
it through these states:

    IDLE --scan--> SCANNING --> AWAITING_DECISION --commit|discard--> IDLE
    IDLE | AWAITING_DECISION --quit--> TERMINAL

IDLE always mirrors what is persisted at ``catalogue_path``. Each commit or
discard starts a new IDLE state with zeroed counters, so the counters only
ever describe the most recent scan.
"""

import enum
import logging
from pathlib import Path
from typing import Callable

from filecatalog.catalogue.report import write_duplicate_report
from filecatalog.catalogue.store import (
    Catalogue,
    load_catalogue,
    open_catalogue,
    save_catalogue,
)
from filecatalog.intake.hasher import DEFAULT_ALGORITHM
from filecatalog.intake.scanner import DuplicateObserver, ScanCounters, log_duplicate, scan

logger = logging.getLogger(__name__)


class SessionState(enum.Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    AWAITING_DECISION = "awaiting_decision"
    TERMINAL = "terminal"


class SessionStateError(RuntimeError):
    """An operation was requested in a state that does not allow it."""


class SessionController:
    def __init__(
        self,
        catalogue_path: Path,
        *,
        algorithm: str = DEFAULT_ALGORITHM,
        skip_names: list[str] | None = None,
        hasher: Callable[[Path], str] | None = None,
        on_duplicate: DuplicateObserver | None = log_duplicate,
    ) -> None:
        self.catalogue_path = Path(catalogue_path).expanduser()
        self.algorithm = algorithm
        self.skip_names = list(skip_names or [])
        self._hasher = hasher
        self._on_duplicate = on_duplicate
        self._catalogue: Catalogue | None = None
        self._counters = ScanCounters()
        self._state: SessionState | None = None

    @property
    def state(self) -> SessionState | None:
        return self._state

    @property
    def catalogue(self) -> Catalogue:
        if self._catalogue is None:
            raise SessionStateError("Session has not been started")
        return self._catalogue

    @property
    def counters(self) -> ScanCounters:
        return self._counters

    def _require(self, *allowed: SessionState) -> None:
        if self._state not in allowed:
            names = ", ".join(s.name for s in allowed)
            current = self._state.name if self._state else "NOT_STARTED"
            raise SessionStateError(f"Expected session state {names}, got {current}")

    def _enter_loaded(self, catalogue: Catalogue) -> None:
        self._catalogue = catalogue
        self._counters = ScanCounters()
        self._state = SessionState.IDLE

    def start(self) -> Catalogue:
        """Load the persisted catalogue, creating an empty one if none exists."""
        if self._state is not None:
            raise SessionStateError("Session already started")
        self._enter_loaded(open_catalogue(self.catalogue_path))
        return self.catalogue

    def scan(self, root: Path) -> ScanCounters:
        """Walk root into the live catalogue and wait for a commit or discard.

        If the walk fails, whatever it had recorded is dropped by reloading
        the persisted catalogue, and the walk's exception is re-raised. If
        that reload fails too, the session drops back to not started (state
        None) and the reload error is raised from the walk's.
        """
        self._require(SessionState.IDLE)
        self._state = SessionState.SCANNING
        try:
            scan(
                root,
                self.catalogue,
                algorithm=self.algorithm,
                hasher=self._hasher,
                on_duplicate=self._on_duplicate,
                counters=self._counters,
                skip_names=self.skip_names,
            )
        except Exception as scan_error:
            logger.warning("Scan of %s failed, reverting to %s", root, self.catalogue_path)
            try:
                reverted = load_catalogue(self.catalogue_path)
            except Exception as reload_error:
                self._catalogue = None
                self._counters = ScanCounters()
                self._state = None
                raise reload_error from scan_error
            self._enter_loaded(reverted)
            raise
        self._state = SessionState.AWAITING_DECISION
        logger.info(
            "Job finished: %d new, %d duplicates", self._counters.unique, self._counters.duplicates
        )
        return self._counters

    def commit(self) -> Catalogue:
        """Persist the scanned catalogue and make it the new loaded state."""
        self._require(SessionState.AWAITING_DECISION)
        save_catalogue(self.catalogue, self.catalogue_path)
        self._enter_loaded(load_catalogue(self.catalogue_path))
        return self.catalogue

    def discard(self) -> Catalogue:
        """Drop the scan's additions by reloading the persisted catalogue."""
        self._require(SessionState.AWAITING_DECISION)
        logger.debug("Reverting to %s", self.catalogue_path)
        self._enter_loaded(load_catalogue(self.catalogue_path))
        return self.catalogue

    def quit(self) -> None:
        """End the session. An undecided scan is discarded first."""
        self._require(SessionState.IDLE, SessionState.AWAITING_DECISION)
        if self._state is SessionState.AWAITING_DECISION:
            self.discard()
        self._state = SessionState.TERMINAL

    def write_report(self, path: Path) -> int:
        """Append the duplicate report for the loaded catalogue to path."""
        self._require(SessionState.IDLE, SessionState.TERMINAL)
        return write_duplicate_report(self.catalogue, path)
