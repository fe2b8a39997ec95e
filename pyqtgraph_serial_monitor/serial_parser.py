from __future__ import annotations

from typing import Tuple

from .errors import ColumnMismatch


class SchemaParser:
    """
    Parses comma-separated numeric lines, e.g. "1.0, 2.5, -3".

    Fields that are not numbers are skipped, so labels and units may be mixed
    in ("T=, 21.5, C"). The first parsed line fixes the column count; later
    lines with a different count raise ColumnMismatch and leave it unchanged.
    """

    def __init__(self):
        self._columns = 0

    @property
    def columns(self) -> int:
        return self._columns

    def reset(self) -> None:
        self._columns = 0

    def parse(self, line: str) -> Tuple[float, ...]:
        values = []
        for field in line.split(","):
            field = field.strip()
            if "_" in field:
                continue  # float() would take "1_000" as a digit group
            try:
                values.append(float(field))
            except ValueError:
                continue

        if self._columns != 0 and self._columns != len(values):
            raise ColumnMismatch(self._columns, len(values))
        self._columns = len(values)
        return tuple(values)
