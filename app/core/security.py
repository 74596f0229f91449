from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

import jwt
from jwt.exceptions import PyJWTError

from app.core.config import settings

ROLES = ("user", "doctor", "admin")

@dataclass(frozen=True)
class CurrentIdentity:
    """Authenticated caller as vouched for by the identity service."""
    id: UUID
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def is_specialist(self) -> bool:
        return self.role == "doctor"

class InvalidToken(Exception):
    pass

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

def decode_identity(token: str) -> CurrentIdentity:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except PyJWTError as exc:
        raise InvalidToken(str(exc)) from exc

    subject = payload.get("sub")
    role = payload.get("role", "user")
    if subject is None or role not in ROLES:
        raise InvalidToken("Token is missing a subject or carries an unknown role")
    try:
        return CurrentIdentity(id=UUID(str(subject)), role=role)
    except ValueError as exc:
        raise InvalidToken("Token subject is not a valid id") from exc
