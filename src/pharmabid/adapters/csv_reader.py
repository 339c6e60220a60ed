"""Loads distributor inventory exports from CSV files."""

from __future__ import annotations

import csv
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

log = logging.getLogger(__name__)


def read_inventory_csv(
    path: Path, *, encoding: str = "utf-8-sig"
) -> tuple[list[str], list[dict[str, str]]]:
    """Return the header row (in file order) and one mapping per data row.

    Cells missing from short rows come back as empty strings. The default
    encoding strips the byte-order mark spreadsheet tools like to prepend.
    """

    with path.open(newline="", encoding=encoding) as handle:
        reader = csv.DictReader(handle)
        headers = list(reader.fieldnames or [])
        records = [
            {key: (value or "") for key, value in row.items() if key is not None}
            for row in reader
        ]
    log.info("Read %d rows with %d columns from %s", len(records), len(headers), path)
    return headers, records
