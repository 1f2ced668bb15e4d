"""
Security utilities for JWT session credentials and password hashing
"""

from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from joserfc import jwt as jose_jwt
from joserfc.jwk import OctKey
from pwdlib import PasswordHash
from pwdlib.hashers.bcrypt import BcryptHasher
import structlog

from inventory_api.core.authorization import Identity
from inventory_api.core.config import settings
from inventory_api.core.exceptions import InvalidCredentials
from inventory_api.core.token_validator import IssuerAwareTokenValidator, LocalJWTValidationStrategy

logger = structlog.get_logger()

pwd_context = PasswordHash((BcryptHasher(),))

# JWT Configuration
ALGORITHM = settings.JWT_ALGORITHM
SECRET_KEY = settings.JWT_SECRET_KEY
ACCESS_TOKEN_EXPIRE_MINUTES = settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES

_jwt_key = OctKey.import_key(SECRET_KEY)

_token_validator = IssuerAwareTokenValidator(
    active_issuer=settings.AUTH_ACTIVE_ISSUER,
    trusted_issuers=settings.AUTH_TRUSTED_ISSUERS,
    local_strategy=LocalJWTValidationStrategy(
        secret_key=SECRET_KEY,
        algorithm=ALGORITHM,
        issuer=settings.AUTH_LOCAL_ISSUER,
    ),
)


def create_access_token(
    user_id: int,
    username: str,
    role: Optional[str] = None,
    role_id: Optional[int] = None,
    permissions: Iterable[str] = (),
    expires_delta: Optional[timedelta] = None,
    additional_claims: Optional[dict] = None,
) -> str:
    """
    Create a signed session credential

    The ``permissions`` claim is a snapshot taken at issuance; authorization
    always re-reads the live permission set.
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))

    to_encode = {
        "sub": str(user_id),
        "userId": user_id,
        "username": username,
        "role": role,
        "roleId": role_id,
        "permissions": sorted(permissions),
        "type": "access",
        "iss": settings.AUTH_LOCAL_ISSUER,
        "iat": int(now.timestamp()),
        "exp": int(expire.timestamp()),
    }
    if additional_claims:
        to_encode.update(additional_claims)

    encoded_jwt = jose_jwt.encode({"alg": ALGORITHM}, to_encode, _jwt_key)

    logger.debug("Access token created", user_id=user_id, expires=expire)
    return encoded_jwt


def verify_token(token: str, token_type: str = "access") -> dict:
    """
    Verify a JWT and return its claims

    Raises:
        InvalidCredentials: bad signature, wrong type, expired or untrusted issuer
    """
    return _token_validator.validate(token, token_type=token_type).claims


def identity_from_claims(claims: dict) -> Identity:
    try:
        user_id = int(claims.get("userId", claims.get("sub")))
    except (TypeError, ValueError) as exc:
        logger.warning("Token carries no usable user id", sub=claims.get("sub"))
        raise InvalidCredentials() from exc

    return Identity(
        user_id=user_id,
        username=str(claims.get("username") or ""),
        role=claims.get("role"),
        role_id=claims.get("roleId"),
        permission_snapshot=frozenset(claims.get("permissions") or ()),
    )


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except Exception as e:
        logger.error("Password verification error", error=str(e))
        return False


def get_password_hash(password: str) -> str:
    # Bcrypt only looks at the first 72 bytes
    password_bytes = password.encode('utf-8')
    if len(password_bytes) > 72:
        password = password_bytes[:72].decode('utf-8', errors='ignore')
        logger.warning("Password truncated to 72 bytes for bcrypt")

    return pwd_context.hash(password)
