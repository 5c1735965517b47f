# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Mapping, Optional, Sequence
from urllib.parse import quote

from fastapi import HTTPException, Request
from fastapi.responses import RedirectResponse

from lore.auth.session import COOKIE_NAME, SessionUser, read_session_token

logger = logging.getLogger(__name__)

LOGIN_PATH = "/login"

# Never filtered, whatever the protected prefixes are.
PUBLIC_PATHS = frozenset({LOGIN_PATH, "/session", "/api/auth/login", "/api/auth/session"})

# Cookies of the request being served; bound by the inbound middleware so code
# without a Request object in hand can still ask who is calling.
_REQUEST_COOKIES: ContextVar[Optional[Mapping[str, str]]] = ContextVar(
    "lore_request_cookies", default=None
)


def session_user_from_cookies(cookies: Optional[Mapping[str, str]]) -> Optional[SessionUser]:
    token = (cookies or {}).get(COOKIE_NAME)
    return read_session_token(token)


def bind_request_cookies(cookies: Mapping[str, str]):
    return _REQUEST_COOKIES.set(cookies)


def unbind_request_cookies(token) -> None:
    _REQUEST_COOKIES.reset(token)


def current_user(request: Optional[Request] = None) -> Optional[SessionUser]:
    if request is not None:
        return session_user_from_cookies(request.cookies)
    return session_user_from_cookies(_REQUEST_COOKIES.get())


def login_url(next_path: str = "") -> str:
    if not next_path or next_path == LOGIN_PATH:
        return LOGIN_PATH
    return f"{LOGIN_PATH}?next={quote(next_path, safe='/')}"


def _next_path(request: Request) -> str:
    next_url = str(request.url.path)
    if request.url.query:
        next_url += "?" + request.url.query
    return next_url


def require_user(request: Optional[Request] = None) -> SessionUser:
    u = current_user(request)
    if u:
        return u
    loc = login_url(_next_path(request)) if request is not None else LOGIN_PATH
    raise HTTPException(status_code=303, headers={"Location": loc})


def authenticated_user(request: Request) -> SessionUser:
    """FastAPI dependency form of :func:`require_user`."""
    return require_user(request)


def is_protected_path(path: str, prefixes: Sequence[str]) -> bool:
    if path in PUBLIC_PATHS:
        return False
    for p in prefixes:
        if p == "/" or path == p or path.startswith(p + "/"):
            return True
    return False


async def session_gate(request: Request, call_next, *, protected_prefixes: Sequence[str]):
    """Inbound filter: resolve the caller and keep anonymous ones out of protected pages."""
    token = bind_request_cookies(request.cookies)
    try:
        user = current_user(request)
        request.state.user = user
        if user is None and is_protected_path(request.url.path, protected_prefixes):
            logger.debug("Redirecting anonymous request for %s to login", request.url.path)
            return RedirectResponse(url=login_url(_next_path(request)), status_code=303)
        return await call_next(request)
    finally:
        unbind_request_cookies(token)
