"""Bulk QR import — upload a sheet, map columns, create one QR per row."""

import copy
import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from qrstudio.core.config import settings
from qrstudio.core.exceptions import QRStudioError, ValidationError
from qrstudio.services.file_service import FileService, Row, file_service

logger = logging.getLogger("qrstudio.bulk")

BULK_QR_TYPES = ("url", "text", "email", "phone")
MAPPABLE_FIELDS = ("name", "content")
SAMPLE_SIZE = 5

BULK_DESIGN: Dict[str, Any] = {
    "dotsOptions": {"color": "#3b82f6", "type": "rounded"},
    "backgroundOptions": {"color": "#ffffff"},
}


class BulkState(str, enum.Enum):
    UPLOAD = "upload"
    MAPPING = "mapping"
    RESULTS = "results"


@dataclass
class RowOutcome:
    row: int
    status: str
    reason: Optional[str] = None
    qr_id: Optional[int] = None


@dataclass
class BulkImportReport:
    created: List[Any] = field(default_factory=list)
    outcomes: List[RowOutcome] = field(default_factory=list)

    @property
    def created_count(self) -> int:
        return len(self.created)

    @property
    def skipped_count(self) -> int:
        return sum(1 for o in self.outcomes if o.status == "skipped")

    @property
    def failed_count(self) -> int:
        return sum(1 for o in self.outcomes if o.status == "failed")

    @property
    def samples(self) -> List[Any]:
        return self.created[:SAMPLE_SIZE]

    @property
    def remaining(self) -> int:
        """How many created codes the samples leave out ("+N more")."""
        return max(0, self.created_count - SAMPLE_SIZE)


CreateFn = Callable[[Dict[str, Any]], Any]


class BulkImportSession:
    """Three-step wizard: UPLOAD -> MAPPING -> RESULTS.

    Holds the parsed sheet and column mapping between steps. ``generate``
    is handed the function that persists one QR, so the session itself never
    touches the database.
    """

    def __init__(self, files: FileService = file_service):
        self.files = files
        self.reset()

    def reset(self) -> None:
        """Clear everything and return to UPLOAD ("create more")."""
        self.state = BulkState.UPLOAD
        self.filename: Optional[str] = None
        self._columns: List[str] = []
        self.rows: List[Row] = []
        self.qr_type = "url"
        self.mapping: Dict[str, str] = {}
        self.report: Optional[BulkImportReport] = None

    def back(self) -> None:
        if self.state is not BulkState.MAPPING:
            raise ValidationError("Can only go back from the mapping step")
        self.reset()

    @property
    def columns(self) -> List[str]:
        return list(self._columns)

    def upload(self, filename: str, content: bytes) -> List[str]:
        """Parse the file and move to MAPPING. Returns the column names.

        On any parse error the session stays in UPLOAD, untouched.
        """
        if self.state is not BulkState.UPLOAD:
            raise ValidationError("A file has already been uploaded; reset first")
        columns, rows = self.files.parse(filename, content)
        self.filename = filename
        self._columns = columns
        self.rows = rows
        self.state = BulkState.MAPPING
        return self.columns

    def set_qr_type(self, qr_type: str) -> None:
        self._require(BulkState.MAPPING)
        if qr_type not in BULK_QR_TYPES:
            raise ValidationError(f"Bulk generation supports {', '.join(BULK_QR_TYPES)}; got '{qr_type}'")
        self.qr_type = qr_type

    def map_field(self, qr_field: str, column: str) -> None:
        self._require(BulkState.MAPPING)
        if qr_field not in MAPPABLE_FIELDS:
            raise ValidationError(f"Unknown QR field '{qr_field}'")
        if column not in self._columns:
            raise ValidationError(f"Column '{column}' is not in the uploaded file")
        self.mapping[qr_field] = column

    def preview(self, limit: Optional[int] = None) -> Dict[str, Any]:
        """First rows as they would be imported, plus the annotated columns."""
        self._require(BulkState.MAPPING)
        limit = settings.BULK_PREVIEW_ROWS if limit is None else limit
        mapped_by_column = {column: qr_field for qr_field, column in self.mapping.items()}
        return {
            "filename": self.filename,
            "row_count": len(self.rows),
            "columns": [{"name": c, "mapped_to": mapped_by_column.get(c)} for c in self._columns],
            "rows": [
                {"row": i, "name": self._mapped(row, "name"), "content": self._mapped(row, "content")}
                for i, row in enumerate(self.rows[:limit], start=1)
            ],
        }

    def generate(self, create: CreateFn) -> BulkImportReport:
        """Create one QR per row with a non-empty name and content.

        Rows are processed in file order, one ``create`` call at a time. A
        failure is recorded against its row and the run carries on; codes
        already created stay created.
        """
        self._require(BulkState.MAPPING)
        missing = [f for f in MAPPABLE_FIELDS if f not in self.mapping]
        if missing:
            raise ValidationError(f"Please map the {' and '.join(missing)} field(s)")

        report = BulkImportReport()
        for index, row in enumerate(self.rows, start=1):
            name = self._mapped(row, "name")
            content = self._mapped(row, "content")
            if not name.strip() or not content.strip():
                blank = "name" if not name.strip() else "content"
                report.outcomes.append(RowOutcome(index, "skipped", f"Empty {blank}"))
                continue

            request = {
                "name": name,
                "type": self.qr_type,
                "content": content,
                "design": copy.deepcopy(BULK_DESIGN),
                "is_dynamic": True,
                "is_active": True,
            }
            try:
                qr = create(request)
            except QRStudioError as e:
                logger.warning("Bulk row %d failed: %s", index, e.message)
                report.outcomes.append(RowOutcome(index, "failed", e.message))
                continue
            report.created.append(qr)
            report.outcomes.append(RowOutcome(index, "created", qr_id=getattr(qr, "id", None)))

        self.report = report
        self.state = BulkState.RESULTS
        logger.info(
            "Bulk import of %s: %d created, %d skipped, %d failed",
            self.filename, report.created_count, report.skipped_count, report.failed_count,
        )
        return report

    # --- Internal helpers ---

    def _mapped(self, row: Row, qr_field: str) -> str:
        return row.get(self.mapping.get(qr_field, ""), "") or ""

    def _require(self, state: BulkState) -> None:
        if self.state is not state:
            raise ValidationError(f"Not allowed in the {self.state.value} step")
