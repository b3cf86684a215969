"""Bulk student registration.

Rows are registered one at a time through the regular registration pipeline.
There is no cross-row transaction: a failing row is recorded in the ledger and
the next row is processed regardless.
"""

import csv
import io
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import ValidationError

from school_portal.core.exceptions import MalformedInputError, PortalError
from school_portal.schemas.registration import BulkRowResult, StudentRegistrationRequest
from school_portal.utils.registration_manager import RegistrationManager

logger = logging.getLogger(__name__)

# Ledger reason for a row that failed outside the registration error taxonomy
UNEXPECTED_FAILURE_REASON = "InternalError"

# Accepted header spellings for each registration field, in priority order
HEADER_ALIASES: Dict[str, List[str]] = {
    "name": ["name", "student name", "full name", "student_name"],
    "email": ["email", "email address", "e-mail", "student_email"],
    "class": ["class", "grade", "standard", "class_name"],
    "division": ["division", "section", "div", "class_division"],
    "rollNumber": ["roll number", "roll no", "roll_number", "rollnumber", "admission_number", "roll"],
    "parentName": ["parent name", "parentname", "father name", "guardian", "parent_name", "father_name"],
    "place": ["place", "location", "address", "city", "hometown"],
    "phone": ["phone", "mobile", "contact", "phone_number", "mobile_number"],
}


@dataclass
class BulkImportReport:
    results: List[BulkRowResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return self.total - self.succeeded


def parse_student_csv(content: str) -> List[Dict[str, str]]:
    """Parse CSV text into rows keyed by registration field name.

    Header matching is case-insensitive and tolerant of the usual spreadsheet
    spellings. Blank lines are skipped; unknown columns are dropped.

    Raises:
        MalformedInputError: If the file has no header or no name column.
    """
    reader = csv.reader(io.StringIO(content.lstrip("\ufeff")))
    try:
        headers = [h.strip().lower() for h in next(reader)]
    except StopIteration:
        raise MalformedInputError("CSV file is empty")

    columns: Dict[str, int] = {}
    for field_name, aliases in HEADER_ALIASES.items():
        for alias in aliases:
            if alias in headers:
                columns[field_name] = headers.index(alias)
                break
    if "name" not in columns:
        raise MalformedInputError("CSV file must have a name column")

    rows = []
    for values in reader:
        if not any(v.strip() for v in values):
            continue
        rows.append(
            {
                field_name: values[index].strip() if index < len(values) else ""
                for field_name, index in columns.items()
            }
        )
    return rows


class BulkImportProcessor:
    """Registers a batch of students, collecting a per-row ledger."""

    def __init__(self, registration_manager: RegistrationManager):
        self.registration_manager = registration_manager

    def process(self, rows: Iterable[Mapping[str, Any]]) -> BulkImportReport:
        """Register every row independently.

        Args:
            rows: Raw registration rows, in import order.

        Returns:
            BulkImportReport with one entry per row.
        """
        report = BulkImportReport()
        for row_number, row in enumerate(rows, start=1):
            report.results.append(self._process_row(row_number, row))
        logger.info(
            "Bulk import finished: %d rows, %d registered, %d failed",
            report.total,
            report.succeeded,
            report.failed,
        )
        return report

    def _process_row(self, row_number: int, row: Mapping[str, Any]) -> BulkRowResult:
        name: Optional[str] = row.get("name") or None
        try:
            request = StudentRegistrationRequest.model_validate(dict(row))
        except ValidationError as e:
            logger.info("Bulk row %d rejected: %d validation errors", row_number, e.error_count())
            return BulkRowResult(
                row=row_number,
                name=name,
                success=False,
                reason=MalformedInputError.reason,
                error=_validation_summary(e),
            )

        try:
            result = self.registration_manager.register_student(request)
        except PortalError as e:
            logger.info("Bulk row %d (%s) failed: %s", row_number, request.email, e.reason)
            return BulkRowResult(
                row=row_number,
                name=request.name,
                email=request.email,
                success=False,
                reason=e.reason,
                error=str(e),
            )
        except Exception as e:
            logger.exception("Bulk row %d (%s) failed unexpectedly", row_number, request.email)
            return BulkRowResult(
                row=row_number,
                name=request.name,
                email=request.email,
                success=False,
                reason=UNEXPECTED_FAILURE_REASON,
                error=repr(e),
            )

        return BulkRowResult(
            row=row_number,
            name=request.name,
            email=request.email,
            success=True,
            username=result.credentials.username,
            password=result.credentials.password,
        )


def _validation_summary(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
    )
