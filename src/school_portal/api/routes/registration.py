"""Registration routes.

Student registration (single and CSV bulk) is reserved for primary
controllers. Primary controllers themselves are bootstrapped with the
``ADMIN_TOKEN`` configured on the server.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Header, HTTPException, UploadFile, status

from school_portal import config
from school_portal.api.routes.auth import require_controller
from school_portal.core.dependencies import (
    BulkImportProcessorDep,
    RecordStoreDep,
    RegistrationManagerDep,
)
from school_portal.core.exceptions import (
    DuplicateEmailError,
    IdentityProviderError,
    MalformedInputError,
    OperationTimeoutError,
    PortalError,
    UsernameCollisionError,
)
from school_portal.schemas.registration import (
    BulkImportResponse,
    ControllerRegistrationRequest,
    RegistrationResponse,
    StudentRegistrationRequest,
)
from school_portal.utils.bulk_import import parse_student_csv
from school_portal.utils.registration_manager import RegistrationResult
from school_portal.utils.token_codec import SessionClaims

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Registration"])

# Maximum accepted CSV upload size
MAX_CSV_SIZE = 2 * 1024 * 1024  # 2MB


def _to_http_error(exc: PortalError) -> HTTPException:
    """Translate a registration failure into an HTTP error."""
    if isinstance(exc, MalformedInputError):
        code = status.HTTP_422_UNPROCESSABLE_ENTITY
    elif isinstance(exc, (DuplicateEmailError, UsernameCollisionError)):
        code = status.HTTP_409_CONFLICT
    elif isinstance(exc, (IdentityProviderError, OperationTimeoutError)):
        code = status.HTTP_502_BAD_GATEWAY
    else:
        # RecordStoreError, OrphanedIdentityAccountError
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail={"reason": exc.reason, "message": str(exc)})


def _to_response(result: RegistrationResult) -> RegistrationResponse:
    record = result.record
    return RegistrationResponse(
        id=record.id,
        username=result.credentials.username,
        password=result.credentials.password,
        email=record.email,
        name=record.name,
        qr_token=result.qr_token,
        qr_payload=result.qr_payload,
        qr_card_payload=result.card_payload,
        email_sent=bool(record.email_sent),
    )


@router.post(
    "/register",
    response_model=RegistrationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a student",
)
def register_student(
    req: StudentRegistrationRequest,
    registration_manager: RegistrationManagerDep,
    controller: SessionClaims = Depends(require_controller),
) -> RegistrationResponse:
    """Register a single student and return the generated credentials once.

    Args:
        req: Student profile.
        registration_manager: Injected RegistrationManager instance.
        controller: Authenticated primary controller.

    Returns:
        RegistrationResponse with the plaintext credentials and QR data.

    Raises:
        HTTPException: If registration fails.
    """
    try:
        result = registration_manager.register_student(req)
    except PortalError as e:
        raise _to_http_error(e)
    logger.info("Controller %s registered student %s", controller.username, result.record.username)
    return _to_response(result)


@router.post("/register-bulk", response_model=BulkImportResponse, summary="Register students from CSV")
async def register_bulk(
    processor: BulkImportProcessorDep,
    csv: UploadFile = File(..., description="CSV file with one student per row"),
    controller: SessionClaims = Depends(require_controller),
) -> BulkImportResponse:
    """Register every student in an uploaded CSV file.

    Rows are independent: a failing row is reported and the rest are still
    registered.
    """
    raw = await csv.read()
    if len(raw) > MAX_CSV_SIZE:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"CSV file exceeds {MAX_CSV_SIZE} bytes",
        )
    try:
        rows = parse_student_csv(raw.decode("utf-8"))
    except UnicodeDecodeError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="CSV file must be UTF-8 encoded",
        )
    except MalformedInputError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    report = processor.process(rows)
    logger.info(
        "Controller %s bulk-registered %d/%d students",
        controller.username,
        report.succeeded,
        report.total,
    )
    return BulkImportResponse(
        message=f"Processed {report.total} students",
        total=report.total,
        succeeded=report.succeeded,
        failed=report.failed,
        results=report.results,
    )


@router.get("/students", summary="List students")
def list_students(
    store: RecordStoreDep,
    controller: SessionClaims = Depends(require_controller),
) -> List[dict]:
    """List all registered students, newest first."""
    try:
        students = store.students.list_all()
    except PortalError as e:
        raise _to_http_error(e)
    return [s.to_view() for s in students]


@router.post(
    "/controllers",
    response_model=RegistrationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a primary controller",
)
def create_controller(
    req: ControllerRegistrationRequest,
    registration_manager: RegistrationManagerDep,
    x_admin_token: Optional[str] = Header(default=None),
) -> RegistrationResponse:
    """Bootstrap a primary controller account.

    Requires the ``X-Admin-Token`` header to match ``ADMIN_TOKEN``.
    """
    if not config.ADMIN_TOKEN:
        logger.error("ADMIN_TOKEN is not set in environment variables")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Controller creation is not configured. ADMIN_TOKEN not set.",
        )
    if x_admin_token != config.ADMIN_TOKEN:
        logger.warning("Rejected controller creation with invalid admin token")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid admin token",
        )

    try:
        result = registration_manager.register_controller(req)
    except PortalError as e:
        raise _to_http_error(e)
    return _to_response(result)
