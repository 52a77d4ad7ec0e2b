import secrets
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from .config import SECRET_KEY, SESSION_MAX_AGE


def generate_magic_token() -> str:
    # 32 random bytes, url-safe; stored as-is and matched exactly on sign
    return secrets.token_urlsafe(32)


def make_session_token(payload: dict) -> str:
    s = URLSafeTimedSerializer(SECRET_KEY, salt="session")
    return s.dumps(payload)


def read_session_token(token: str, max_age: int = SESSION_MAX_AGE) -> dict | None:
    s = URLSafeTimedSerializer(SECRET_KEY, salt="session")
    try:
        return s.loads(token, max_age=max_age)
    except (BadSignature, SignatureExpired):
        return None


def sign_url(base_url: str, token: str) -> str:
    return f"{base_url.rstrip('/')}/sign/{token}"
