from datetime import datetime, timedelta, timezone

from jose import jwt

from ordertrack.auth import create_token, decode_token, hash_password, verify_password
from ordertrack.config import Settings
from ordertrack.records import Role


def test_hash_is_salted_and_verifiable():
    h1 = hash_password("Abcd123!")
    h2 = hash_password("Abcd123!")
    assert h1 != "Abcd123!"
    assert h1 != h2
    assert verify_password("Abcd123!", h1)
    assert not verify_password("Abcd123?", h1)


def test_verify_password_rejects_garbage_hash():
    assert verify_password("Abcd123!", "not-a-hash") is False


def test_token_round_trip(settings):
    token = create_token(42, Role.DELIVERY_PARTNER, settings)
    claims = decode_token(token, settings)
    assert claims is not None
    assert claims.user_id == 42
    assert claims.role == Role.DELIVERY_PARTNER
    assert claims.expires_at > claims.issued_at


def test_token_lifetime_follows_settings():
    settings = Settings(jwt_secret="s", jwt_expire_minutes=30)
    claims = decode_token(create_token(1, Role.CUSTOMER, settings), settings)
    assert timedelta(minutes=29) < claims.expires_at - claims.issued_at <= timedelta(minutes=30, seconds=1)


def test_token_signed_with_other_secret_is_rejected(settings):
    other = Settings(jwt_secret="someone-else")
    assert decode_token(create_token(1, Role.ADMIN, other), settings) is None


def test_expired_token_is_rejected(settings):
    past = datetime.now(timezone.utc) - timedelta(hours=1)
    token = jwt.encode({"sub": "1", "role": "ADMIN", "exp": past}, settings.jwt_secret, algorithm="HS256")
    assert decode_token(token, settings) is None


def test_tampered_token_is_rejected(settings):
    token = create_token(1, Role.CUSTOMER, settings)
    header, payload, signature = token.split(".")
    forged = jwt.encode({"sub": "1", "role": "ADMIN", "exp": 9999999999}, "guess", algorithm="HS256")
    assert decode_token(".".join([header, forged.split(".")[1], signature]), settings) is None


def test_malformed_tokens_never_raise(settings):
    for token in ["", "abc", "a.b.c", "Bearer x"]:
        assert decode_token(token, settings) is None


def test_token_with_unknown_role_is_rejected(settings):
    token = jwt.encode(
        {"sub": "1", "role": "SUPERUSER", "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
        settings.jwt_secret,
        algorithm="HS256",
    )
    assert decode_token(token, settings) is None
