"""Small request helpers shared by the route modules"""
import base64
import json
import secrets
from fastapi import Request


async def read_json_body(request: Request) -> dict:
    """Parse a JSON object body; anything else reads as an empty dict."""
    try:
        body = await request.json()
    except (ValueError, UnicodeDecodeError):
        return {}
    return body if isinstance(body, dict) else {}


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client and request.client.host:
        return request.client.host
    return "local"


def encode_state(payload: dict) -> str:
    """base64url JSON without padding, for OAuth ``state``."""
    raw = json.dumps(payload, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode_state(state: str) -> dict:
    """Inverse of :func:`encode_state`. Raises ``ValueError`` on garbage."""
    padded = state + "=" * (-len(state) % 4)
    try:
        data = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))
    except (ValueError, UnicodeError) as e:
        raise ValueError(f"Invalid OAuth state: {e}") from e
    if not isinstance(data, dict):
        raise ValueError("Invalid OAuth state: not an object")
    return data


def secret_matches(provided: str | None, expected: str | None) -> bool:
    """Constant-time comparison on UTF-8 bytes; empty values never match."""
    if not provided or not expected:
        return False
    return secrets.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def clean_text(value, max_length: int) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip()[:max_length]
