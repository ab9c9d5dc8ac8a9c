import secrets
from datetime import datetime, timedelta, timezone
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from core.exceptions import Forbidden
from database import get_db
from models.user import User
from services.storage import SQLAlchemyStorage

# Salted hashes for share-link passwords
share_pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
security_scheme = HTTPBearer(auto_error=False)


def hash_share_password(password: str) -> str:
    return share_pwd_context.hash(password)


def verify_share_password(plain: str, hashed: str) -> bool:
    return share_pwd_context.verify(plain, hashed)


def generate_share_token() -> str:
    """Random, URL-safe bearer token for a report share link."""
    return secrets.token_urlsafe(settings.share_token_bytes)


def create_access_token(user_id: UUID) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_expire_minutes)
    return jwt.encode(
        {"sub": str(user_id), "exp": expire},
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )


def ensure_company_access(user: User, company_id: UUID) -> None:
    if not user.can_access_company(company_id):
        raise Forbidden("Access denied")


async def _get_user_from_jwt(token: str, db: AsyncSession) -> User | None:
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
        user_id = UUID(payload["sub"])
    except (JWTError, ValueError, KeyError):
        return None
    return await SQLAlchemyStorage(db).get_user_by_id(user_id)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Authenticate the caller from the JWT Bearer token issued by the identity provider."""
    if credentials and credentials.credentials:
        user = await _get_user_from_jwt(credentials.credentials, db)
        if user:
            return user

    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid authentication")
