from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import timedelta

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from core.config import settings
from core.database import get_db
from core.security import ROLES, decode_token, normalize_role
from services.enrollment_service import EnrollmentCapacityManager


bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    """The caller as described by the auth service's token."""

    user_id: uuid.UUID
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "ADMIN"


def _extract_token(request: Request, creds: HTTPAuthorizationCredentials | None) -> str | None:
    if creds is not None and creds.credentials:
        return creds.credentials
    cookie_token = request.cookies.get("access_token")
    return cookie_token or None


def get_current_principal(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Principal:
    cached = getattr(request.state, "principal", None)
    if isinstance(cached, Principal):
        return cached

    token = _extract_token(request, creds)
    if not token:
        raise HTTPException(status_code=401, detail="NOT_AUTHENTICATED")
    try:
        payload = decode_token(token)
    except JWTError:
        raise HTTPException(status_code=401, detail="INVALID_TOKEN")

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="INVALID_TOKEN")
    try:
        user_uuid = uuid.UUID(str(user_id))
    except ValueError:
        raise HTTPException(status_code=401, detail="INVALID_TOKEN")

    role = normalize_role(payload.get("role"))
    if role not in ROLES:
        raise HTTPException(status_code=403, detail="NOT_AUTHORIZED")

    principal = Principal(user_id=user_uuid, role=role)
    request.state.principal = principal
    return principal


def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.is_admin:
        raise HTTPException(status_code=403, detail="NOT_AUTHORIZED")
    return principal


def require_student(principal: Principal = Depends(get_current_principal)) -> Principal:
    if principal.role != "STUDENT":
        raise HTTPException(status_code=403, detail="NOT_AUTHORIZED")
    return principal


def get_enrollment_manager(db: Session = Depends(get_db)) -> EnrollmentCapacityManager:
    return EnrollmentCapacityManager(
        db,
        enforce_prerequisites=settings.prerequisites_enforced,
        drop_period=timedelta(weeks=settings.drop_period_weeks),
    )
