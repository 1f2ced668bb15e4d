from datetime import timedelta

import pytest

from inventory_api.core.config import settings
from inventory_api.core.exceptions import InvalidCredentials, InventoryAPIError
from inventory_api.core.security import create_access_token, identity_from_claims, verify_token
from inventory_api.core.token_validator import IssuerAwareTokenValidator, LocalJWTValidationStrategy


def local_strategy():
    return LocalJWTValidationStrategy(
        secret_key=settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
        issuer=settings.AUTH_LOCAL_ISSUER,
    )


def test_verify_token_returns_claims_from_local_strategy():
    token = create_access_token(user_id=12, username="storekeeper", role="Viewer", permissions=["stock:read"])

    claims = verify_token(token, token_type="access")

    assert claims["sub"] == "12"
    assert claims["username"] == "storekeeper"
    assert claims["permissions"] == ["stock:read"]


def test_identity_carries_permission_snapshot():
    token = create_access_token(user_id=12, username="storekeeper", role="Viewer", role_id=3,
                                permissions=["stock:read", "products:read"])

    identity = identity_from_claims(verify_token(token))

    assert identity.user_id == 12
    assert identity.role_id == 3
    assert identity.permission_snapshot == frozenset({"stock:read", "products:read"})


def test_identity_requires_numeric_user_id():
    with pytest.raises(InvalidCredentials):
        identity_from_claims({"sub": "not-a-number"})


def test_expired_token_is_rejected():
    token = create_access_token(user_id=1, username="old", expires_delta=timedelta(seconds=-5))

    with pytest.raises(InvalidCredentials) as exc_info:
        verify_token(token)

    assert exc_info.value.status_code == 401
    assert exc_info.value.message == "Invalid or expired token"


def test_tampered_token_is_rejected():
    token = create_access_token(user_id=1, username="someone")
    header, payload, signature = token.split(".")
    tampered = ".".join([header, payload, signature[::-1]])

    with pytest.raises(InvalidCredentials):
        verify_token(tampered)


def test_wrong_token_type_is_rejected():
    token = create_access_token(user_id=1, username="someone", additional_claims={"type": "refresh"})

    with pytest.raises(InvalidCredentials) as exc_info:
        verify_token(token, token_type="access")

    assert "type" in exc_info.value.message.lower()


def test_issuer_aware_validator_rejects_untrusted_issuer_claim():
    validator = IssuerAwareTokenValidator(
        active_issuer="local",
        trusted_issuers=[settings.AUTH_LOCAL_ISSUER],
        local_strategy=local_strategy(),
    )
    token = create_access_token(user_id=1, username="mallory", additional_claims={"iss": "malicious-issuer"})

    with pytest.raises(InvalidCredentials) as exc_info:
        validator.validate(token, token_type="access")

    assert exc_info.value.status_code == 401
    assert "issuer" in exc_info.value.message.lower()


def test_issuer_aware_validator_fails_for_unsupported_active_strategy():
    validator = IssuerAwareTokenValidator(
        active_issuer="keycloak",
        trusted_issuers=["local", "keycloak"],
        local_strategy=local_strategy(),
    )
    token = create_access_token(user_id=1, username="someone")

    with pytest.raises(InventoryAPIError) as exc_info:
        validator.validate(token, token_type="access")

    assert exc_info.value.status_code == 500
