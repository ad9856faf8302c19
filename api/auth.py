"""Bearer-token identity for the calendar API.

Tokens are HS256-signed by the identity provider with the shared
``JWT_SECRET``; the ``sub`` claim is trusted as the owner id.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import time
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from core.config import get_settings


bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class OwnerPrincipal:
    owner_id: str
    exp: int


def _b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64url_decode(data: str) -> bytes:
    padding = "=" * ((4 - (len(data) % 4)) % 4)
    return base64.urlsafe_b64decode((data + padding).encode("ascii"))


def _sign(signing_input: str, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), signing_input.encode("ascii"), hashlib.sha256).digest()
    return _b64url_encode(digest)


def issue_access_token(owner_id: str, expires_in_seconds: Optional[int] = None) -> str:
    settings = get_settings()
    if expires_in_seconds is None:
        expires_in_seconds = settings.jwt_expire_minutes * 60
    header = {"alg": "HS256", "typ": "JWT"}
    payload = {"sub": str(owner_id), "exp": int(time.time()) + int(expires_in_seconds)}
    header_b64 = _b64url_encode(json.dumps(header, separators=(",", ":"), sort_keys=True).encode("utf-8"))
    payload_b64 = _b64url_encode(json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8"))
    signing_input = f"{header_b64}.{payload_b64}"
    return f"{signing_input}.{_sign(signing_input, settings.jwt_secret)}"


def decode_access_token(token: str) -> OwnerPrincipal:
    settings = get_settings()
    try:
        header_b64, payload_b64, signature = token.split(".", 2)
    except ValueError as exc:
        raise HTTPException(status_code=401, detail={"code": "INVALID_TOKEN"}) from exc

    expected_sig = _sign(f"{header_b64}.{payload_b64}", settings.jwt_secret)
    if not hmac.compare_digest(signature, expected_sig):
        raise HTTPException(status_code=401, detail={"code": "INVALID_TOKEN"})

    try:
        payload = json.loads(_b64url_decode(payload_b64))
    except (ValueError, UnicodeDecodeError) as exc:
        raise HTTPException(status_code=401, detail={"code": "INVALID_TOKEN"}) from exc

    exp = int(payload.get("exp") or 0)
    if exp <= int(time.time()):
        raise HTTPException(status_code=401, detail={"code": "TOKEN_EXPIRED"})

    owner_id = str(payload.get("sub") or "").strip()
    if not owner_id:
        raise HTTPException(status_code=401, detail={"code": "INVALID_TOKEN"})
    return OwnerPrincipal(owner_id=owner_id, exp=exp)


def get_current_owner(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> OwnerPrincipal:
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail={"code": "AUTH_REQUIRED"})
    return decode_access_token(credentials.credentials)


def owner_from_authorization(header: Optional[str]) -> Optional[str]:
    """Owner id carried by a raw ``Authorization`` header, or None when absent or invalid.

    For request attribution only (rate-limit keys, log context); routes still
    authenticate through ``get_current_owner``.
    """
    scheme, _, token = (header or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    try:
        return decode_access_token(token.strip()).owner_id
    except HTTPException:
        return None
