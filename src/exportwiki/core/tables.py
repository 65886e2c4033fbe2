"""CSV exports of workspace databases.

A database is exported as ``Name.csv`` (the rows visible in the saved view)
and, for filtered views, ``Name_all.csv`` (every row).
"""

import csv
import io
import logging
from pathlib import Path

from exportwiki.core.identifiers import find_file_by_identifier
from exportwiki.core.models import TabularData, TabularPair

logger = logging.getLogger(__name__)

# Long text properties export as single cells well past the default limit
csv.field_size_limit(2**31 - 1)

TABLE_SUFFIX = ".csv"
ALL_VARIANT_SUFFIX = "_all.csv"


def filtered_variant(path: str) -> str:
    """Path of the filtered export for either variant."""
    if path.endswith(ALL_VARIANT_SUFFIX):
        return path[: -len(ALL_VARIANT_SUFFIX)] + TABLE_SUFFIX
    return path


def all_variant(path: str) -> str:
    """Path of the complete export for either variant."""
    filtered = filtered_variant(path)
    if filtered.endswith(TABLE_SUFFIX):
        return filtered[: -len(TABLE_SUFFIX)] + ALL_VARIANT_SUFFIX
    return filtered


def parse_table(text: str, source: str = "<string>") -> TabularData:
    """Parse CSV text with a header row.

    Malformed input is logged and parsing keeps whatever rows it managed
    to read. Short rows leave the missing columns out of the row.
    """
    reader = csv.reader(io.StringIO(text.lstrip("\ufeff"), newline=""))
    headers: list[str] = []
    rows: list[dict[str, str]] = []

    try:
        for record in reader:
            if not any(cell.strip() for cell in record):
                continue
            if not headers:
                headers = record
                continue
            if len(record) > len(headers):
                logger.warning(
                    "%s line %d: %d cells for %d columns, extra cells dropped",
                    source,
                    reader.line_num,
                    len(record),
                    len(headers),
                )
            rows.append(dict(zip(headers, record)))
    except csv.Error as e:
        logger.warning("%s line %d: CSV parse error: %s", source, reader.line_num, e)

    return TabularData(headers=headers, rows=rows)


class TableReader:
    """Reads CSV exports relative to the markdown export root."""

    def __init__(self, markdown_root: Path):
        self.markdown_root = markdown_root

    def read_table(self, path: str) -> TabularData | None:
        """Parse the CSV at ``path``, or None when it does not exist."""
        full_path = self.markdown_root / path
        if not full_path.is_file():
            return None
        text = full_path.read_text(encoding="utf-8", errors="replace")
        return parse_table(text, source=path)

    def get_pair(self, path: str) -> TabularPair | None:
        """Read both variants of a table.

        When only one variant is on disk, both sides of the pair are the
        same data. None when neither exists.
        """
        filtered = self.read_table(filtered_variant(path))
        complete = self.read_table(all_variant(path))
        if filtered is None and complete is None:
            return None
        return TabularPair(filtered=filtered or complete, all=complete or filtered)

    def find_by_identifier(self, identifier: str) -> str | None:
        """Locate a table's filtered export by identifier."""
        return find_file_by_identifier(
            self.markdown_root,
            identifier,
            TABLE_SUFFIX,
            exclude_suffix=ALL_VARIANT_SUFFIX,
        )
