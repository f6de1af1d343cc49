"""File service — turns uploaded spreadsheets into header-keyed rows."""

import io
import os
import logging
import tempfile
import zipfile
from typing import List, Dict, Tuple

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from qrstudio.core.config import settings
from qrstudio.core.exceptions import ValidationError
from qrstudio.services.duckdb_engine import DuckDBEngine

logger = logging.getLogger("qrstudio.files")

SUPPORTED_EXTENSIONS = ("csv", "xlsx", "xls")

Row = Dict[str, str]


def file_format(filename: str) -> str:
    """Lower-case extension of ``filename``, or ValidationError if unsupported."""
    ext = os.path.splitext(filename or "")[1].lower().lstrip(".")
    if ext not in SUPPORTED_EXTENSIONS:
        raise ValidationError("Please upload a CSV or Excel file (.csv, .xlsx, .xls)")
    return ext


class FileService:
    """Parses uploads for the bulk import pipeline.

    CSV goes through DuckDB; Excel workbooks through openpyxl, first sheet only.
    """

    def __init__(self, max_rows: int = None, max_upload_mb: int = None):
        self.max_rows = settings.BULK_MAX_ROWS if max_rows is None else max_rows
        self.max_upload_mb = settings.BULK_MAX_UPLOAD_MB if max_upload_mb is None else max_upload_mb

    def parse(self, filename: str, content: bytes) -> Tuple[List[str], List[Row]]:
        """Parse an upload into (columns, rows).

        Rows whose every field is empty are dropped.

        Raises:
            ValidationError: unsupported type, too large, unreadable, too many rows,
                or no data rows.
        """
        ext = file_format(filename)
        if len(content) > self.max_upload_mb * 1024 * 1024:
            raise ValidationError(f"File exceeds the {self.max_upload_mb} MB upload limit")

        if ext == "csv":
            columns, raw_rows = self._read_csv(content)
        else:
            columns, raw_rows = self._read_workbook(content)

        rows = [dict(zip(columns, values)) for values in raw_rows]
        rows = [row for row in rows if any(v.strip() for v in row.values())]

        if not rows:
            raise ValidationError("No data found in file")
        if len(rows) > self.max_rows:
            raise ValidationError(f"File has {len(rows)} rows; the limit is {self.max_rows}")

        logger.info("Parsed %s: %d columns, %d rows", filename, len(columns), len(rows))
        return columns, rows

    def _read_csv(self, content: bytes) -> Tuple[List[str], List[List[str]]]:
        # DuckDB reads from a path, so spill to a temp file
        with tempfile.NamedTemporaryFile(delete=False, suffix=".csv") as tmp:
            tmp.write(content)
            tmp_path = tmp.name
        try:
            result = DuckDBEngine.read_rows(tmp_path)
        finally:
            os.unlink(tmp_path)
        return result["columns"], result["rows"]

    def _read_workbook(self, content: bytes) -> Tuple[List[str], List[List[str]]]:
        try:
            workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
        except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as e:
            raise ValidationError(f"Could not read Excel file: {e}")

        try:
            sheet = workbook.worksheets[0]
            values = sheet.iter_rows(values_only=True)
            header = next(values, None)
            if header is None:
                raise ValidationError("No data found in file")
            columns = [self._cell_text(cell) for cell in header]

            rows = []
            for record in values:
                cells = [self._cell_text(cell) for cell in record]
                cells = (cells + [""] * len(columns))[: len(columns)]
                if any(c.strip() for c in cells):
                    rows.append(cells)
                if len(rows) > self.max_rows:
                    break
            return columns, rows
        finally:
            workbook.close()

    @staticmethod
    def _cell_text(value) -> str:
        if value is None:
            return ""
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        return str(value)


file_service = FileService()
