"""Flat CSV export of duplicated catalogue entries."""

import csv
import logging
from pathlib import Path

from filecatalog.catalogue.store import Catalogue

logger = logging.getLogger(__name__)

REPORT_FIELDS = ["hash", "filepath", "bytes", "copies"]


def duplicate_rows(catalogue: Catalogue) -> list[dict]:
    """One row per location of every fingerprint recorded more than once.

    Fingerprints are sorted; locations keep their recorded order.
    """
    rows = []
    for fingerprint, locations in sorted(catalogue.duplicates().items()):
        for loc in locations:
            rows.append({
                "hash": fingerprint,
                "filepath": loc.path,
                "bytes": loc.size,
                "copies": len(locations),
            })
    return rows


def write_duplicate_report(catalogue: Catalogue, path: Path) -> int:
    """Append duplicate rows to the CSV at path and return how many were written.

    The header is only written when the file is new.
    """
    path = Path(path)
    write_header = not path.exists()
    rows = duplicate_rows(catalogue)

    with open(path, "a", newline="", encoding="utf-8", errors="surrogateescape") as f:
        writer = csv.DictWriter(f, fieldnames=REPORT_FIELDS, quoting=csv.QUOTE_ALL)
        if write_header:
            writer.writeheader()
        writer.writerows(rows)

    logger.info("Saved summary to: %s (%d rows)", path, len(rows))
    return len(rows)
