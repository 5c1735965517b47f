# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Stateless signed session tokens and the cookie that carries them.

Wire form: ``base64url(json payload) + "." + base64url(hmac-sha256)``, both
segments unpadded. The MAC covers the encoded payload exactly as sent, and is
checked before the payload is decoded. Nothing is kept server side: a token is
valid until its ``exp`` passes or the signing secret changes.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Union

from fastapi import Response
from itsdangerous import BadData, Signer
from itsdangerous.encoding import base64_decode, base64_encode

from lore.auth.accounts import PublicAccount
from lore.config import get_settings

logger = logging.getLogger(__name__)

COOKIE_NAME = "lore_session"
SESSION_TTL_SECONDS = 60 * 60 * 24 * 30  # 30 days

_SEP = "."
_B64URL = re.compile(r"[A-Za-z0-9_-]+")
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class SessionUser:
    id: str
    username: str
    display_name: str

    def to_dict(self) -> dict:
        return {"id": self.id, "username": self.username, "displayName": self.display_name}


Subject = Union[SessionUser, PublicAccount]


# ------------------ Signing key ------------------

_KEY_FUTURE: Optional["Future[Signer]"] = None
_KEY_LOCK = threading.Lock()


def _make_signer() -> Signer:
    settings = get_settings()
    if not settings.session_secret:
        msg = "SESSION_SECRET is not set. Falling back to an insecure development secret."
        if settings.production:
            logger.error("%s Sessions can be forged by anyone who reads the source.", msg)
        else:
            logger.warning(msg)
    return Signer(
        settings.signing_secret,
        sep=_SEP,
        key_derivation="none",
        digest_method=hashlib.sha256,
    )


def get_signer() -> Signer:
    """Return the process-wide signer, building it at most once.

    The first caller publishes a future and derives the key; concurrent first
    callers wait on that same future instead of deriving their own.
    """
    global _KEY_FUTURE
    fut = _KEY_FUTURE
    if fut is None:
        owner = False
        with _KEY_LOCK:
            if _KEY_FUTURE is None:
                _KEY_FUTURE = Future()
                owner = True
            fut = _KEY_FUTURE
        if owner:
            try:
                fut.set_result(_make_signer())
            except BaseException as exc:
                fut.set_exception(exc)
                with _KEY_LOCK:
                    _KEY_FUTURE = None
                raise
    return fut.result()


def reset_signing_key() -> None:
    """Forget the memoized key; the next call re-reads the configured secret."""
    global _KEY_FUTURE
    with _KEY_LOCK:
        _KEY_FUTURE = None


# ------------------ Codec ------------------


def _now(now: Optional[float]) -> int:
    return int(time.time() if now is None else now)


def create_session_token(subject: Subject, *, now: Optional[float] = None) -> str:
    payload = {
        "sub": subject.id,
        "username": subject.username,
        "displayName": subject.display_name,
        "exp": _now(now) + SESSION_TTL_SECONDS,
    }
    body = json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    encoded = base64_encode(body).decode("ascii")
    return get_signer().sign(encoded).decode("ascii")


def _canonical(segment: str) -> bool:
    # Unused low bits in the last base64 character would otherwise let two
    # different strings decode to the same signature.
    if not _B64URL.fullmatch(segment):
        return False
    return base64_encode(base64_decode(segment)).decode("ascii") == segment


def _session_user(payload: object) -> Optional[SessionUser]:
    if not isinstance(payload, dict):
        return None
    sub = payload.get("sub")
    username = payload.get("username")
    display_name = payload.get("displayName")
    if not all(isinstance(v, str) for v in (sub, username, display_name)):
        return None
    return SessionUser(id=sub, username=username, display_name=display_name)


def read_session_token(token: Optional[str], *, now: Optional[float] = None) -> Optional[SessionUser]:
    if not token or not isinstance(token, str):
        return None
    parts = token.split(_SEP)
    if len(parts) != 2 or not all(parts):
        return None
    encoded, signature = parts
    try:
        if not (_canonical(encoded) and _canonical(signature)):
            return None
        get_signer().unsign(token)
        payload = json.loads(base64_decode(encoded).decode("utf-8"))
    except BadData:
        return None
    except (ValueError, UnicodeDecodeError) as exc:
        logger.debug("Discarding undecodable session token: %s", exc)
        return None

    exp = payload.get("exp") if isinstance(payload, dict) else None
    if not isinstance(exp, int) or isinstance(exp, bool):
        return None
    if exp < _now(now):
        return None
    return _session_user(payload)


# ------------------ Cookie ------------------


def _cookie_flags() -> dict:
    return {
        "httponly": True,
        "samesite": "lax",
        "secure": get_settings().production,
        "path": "/",
    }


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(COOKIE_NAME, token, max_age=SESSION_TTL_SECONDS, **_cookie_flags())


def clear_session_cookie(response: Response) -> None:
    response.set_cookie(COOKIE_NAME, "", max_age=0, expires=_EPOCH, **_cookie_flags())
