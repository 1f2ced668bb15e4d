"""
Token validation by issuer strategy.

Only the local JWT issuer is supported; any other configured active
issuer is rejected as a server error.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone

from joserfc import jwt as jose_jwt
from joserfc.jwk import OctKey
from joserfc.errors import JoseError
import structlog

from inventory_api.core.exceptions import InvalidCredentials, InventoryAPIError

logger = structlog.get_logger()


@dataclass(frozen=True)
class TokenValidationResult:
    subject: str
    claims: dict
    issuer: str


class TokenValidationStrategy(ABC):
    @abstractmethod
    def validate(self, token: str, token_type: str = "access") -> TokenValidationResult:
        raise NotImplementedError


class LocalJWTValidationStrategy(TokenValidationStrategy):
    def __init__(self, secret_key: str, algorithm: str, issuer: str) -> None:
        self._jwt_key = OctKey.import_key(secret_key)
        self._algorithm = algorithm
        self._issuer = issuer

    def validate(self, token: str, token_type: str = "access") -> TokenValidationResult:
        try:
            token_obj = jose_jwt.decode(token, self._jwt_key, algorithms=[self._algorithm])
        except (JoseError, ValueError) as exc:
            logger.warning("JWT verification failed", error=str(exc))
            raise InvalidCredentials() from exc

        payload = token_obj.claims

        if payload.get("type") != token_type:
            logger.warning("Invalid token type", expected=token_type, actual=payload.get("type"))
            raise InvalidCredentials("Invalid token type")

        subject = payload.get("sub")
        if subject is None:
            logger.warning("Token missing subject")
            raise InvalidCredentials("Invalid token: missing subject")

        exp = payload.get("exp")
        if exp is None or datetime.now(timezone.utc).timestamp() >= exp:
            logger.warning("Token expired", subject=subject)
            raise InvalidCredentials()

        issuer = payload.get("iss") or self._issuer
        logger.debug("Token verified successfully", subject=subject, issuer=issuer, type=token_type)
        return TokenValidationResult(subject=str(subject), claims=dict(payload), issuer=issuer)


class IssuerAwareTokenValidator:
    """Strategy router for token validation by issuer."""

    def __init__(
        self,
        *,
        active_issuer: str,
        trusted_issuers: list[str],
        local_strategy: TokenValidationStrategy,
    ) -> None:
        self._active_issuer = active_issuer
        self._trusted_issuers = set(trusted_issuers)
        self._strategies = {"local": local_strategy}

    def validate(self, token: str, token_type: str = "access") -> TokenValidationResult:
        strategy = self._strategies.get(self._active_issuer)
        if strategy is None:
            logger.error("Unsupported active auth issuer", active_issuer=self._active_issuer)
            raise InventoryAPIError("Unsupported authentication issuer strategy")

        result = strategy.validate(token, token_type=token_type)
        if self._trusted_issuers and result.issuer not in self._trusted_issuers:
            logger.warning(
                "Token issuer is not trusted",
                issuer=result.issuer,
                trusted=sorted(self._trusted_issuers),
            )
            raise InvalidCredentials("Untrusted token issuer")

        return result
