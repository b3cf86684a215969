"""Authentication routes.

This module handles HTTP endpoints for password login, QR login and the
current-user profile, plus the bearer-token dependencies used by other routes.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from school_portal.core.dependencies import AuthManagerDep, TokenCodecDep
from school_portal.core.exceptions import (
    ExpiredTokenError,
    InvalidCredentialsError,
    InvalidQRError,
    InvalidTokenError,
)
from school_portal.schemas.auth import (
    CurrentUserResponse,
    LoginRequest,
    LoginResponse,
    QRLoginRequest,
)
from school_portal.schemas.user import Role
from school_portal.utils.token_codec import SessionClaims

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])

# HTTP Bearer token security
security = HTTPBearer(auto_error=False)


def verify_token(
    codec: TokenCodecDep,
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> SessionClaims:
    """Verify the session token from the Authorization header.

    Raises:
        HTTPException: If the token is missing, invalid or expired.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return codec.decode_session_token(credentials.credentials)
    except ExpiredTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )


def require_controller(claims: SessionClaims = Depends(verify_token)) -> SessionClaims:
    """Require a primary controller session."""
    if claims.role != Role.CONTROLLER:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only primary controllers can perform this action",
        )
    return claims


@router.post("/login", response_model=LoginResponse, summary="Password login")
def login(req: LoginRequest, auth_manager: AuthManagerDep) -> LoginResponse:
    """Login with username (or student email) and password.

    Args:
        req: Login request with username, password and role.
        auth_manager: Injected AuthenticationManager instance.

    Returns:
        LoginResponse with the session token and user information.

    Raises:
        HTTPException: 401 on any credential failure.
    """
    try:
        result = auth_manager.login_password(req.username, req.password, req.role)
    except InvalidCredentialsError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )
    return LoginResponse(token=result.token, user=result.user.to_view())


@router.post("/login-qr", response_model=LoginResponse, summary="QR code login")
def login_qr(req: QRLoginRequest, auth_manager: AuthManagerDep) -> LoginResponse:
    """Login with a scanned QR code (stored token or JSON payload)."""
    try:
        result = auth_manager.login_qr(req.qr_token, req.role)
    except InvalidQRError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid QR code",
        )
    return LoginResponse(token=result.token, user=result.user.to_view())


@router.post("/logout", summary="Logout")
def logout() -> dict:
    """Logout endpoint.

    Session tokens are stateless, so logout is handled client-side by
    discarding the token. This endpoint exists for API consistency.
    """
    return {"success": True, "message": "Logged out successfully"}


@router.get("/me", response_model=CurrentUserResponse, summary="Current user profile")
def get_current_user_info(
    auth_manager: AuthManagerDep,
    claims: SessionClaims = Depends(verify_token),
) -> CurrentUserResponse:
    """Get the profile of the authenticated account.

    Raises:
        HTTPException: 404 if the account no longer exists.
    """
    user = auth_manager.get_current_user(claims)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    qr_token = user.qr_token if user.role == Role.STUDENT else None
    return CurrentUserResponse(user=user.to_view(), qr_token=qr_token)
