"""
Output storage for miner results.

Appends qualifying repositories to a CSV file, once per repository per run.
"""

import csv
from pathlib import Path
from typing import List, Sequence, Set

from models import OutputRow


class CsvOutputStorage:
    """
    Append-only CSV sink.

    The header is written only when the file does not exist yet. Rows from
    earlier runs are never read back or rewritten, so the same repository
    can appear once per run.
    """

    def __init__(
        self,
        output_file: str = "output/repos_ts_react_jest.csv",
        header: Sequence[str] = OutputRow.HEADER,
    ):
        """
        Initialize output storage.

        Args:
            output_file: CSV path; parent directories are created
            header: Column names for a new file
        """
        self.output_file = Path(output_file)
        self.header = list(header)
        self._seen: Set[str] = set()
        self.rows_written = 0

    def ensure_header(self) -> None:
        """Create the file with its header row if missing."""
        if self.output_file.exists():
            return
        self.output_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.output_file, "w", encoding="utf-8", newline="") as f:
            csv.writer(f).writerow(self.header)

    def has_seen(self, key: str) -> bool:
        return key in self._seen

    def append_if_new(self, key: str, row: OutputRow) -> bool:
        """
        Append `row` unless `key` was already written during this run.

        Args:
            key: Repository identity (owner/name)
            row: OutputRow to serialize

        Returns:
            True if a line was appended
        """
        if key in self._seen:
            print(f"  [SKIP] Duplicate repository: {key}")
            return False

        self.ensure_header()
        self._append_csv(row.to_csv_row())
        self._seen.add(key)
        self.rows_written += 1
        return True

    def _append_csv(self, values: List[str]) -> None:
        with open(self.output_file, "a", encoding="utf-8", newline="") as f:
            csv.writer(f).writerow(values)

    def read_rows(self) -> List[List[str]]:
        """All data rows currently in the file (header excluded)."""
        if not self.output_file.exists():
            return []
        with open(self.output_file, "r", encoding="utf-8", newline="") as f:
            rows = list(csv.reader(f))
        return rows[1:]
