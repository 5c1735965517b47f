# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
import math
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlsplit

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from lore.auth.accounts import get_roster, verify_credentials
from lore.auth.session import (
    SessionUser,
    clear_session_cookie,
    create_session_token,
    get_signer,
    set_session_cookie,
)
from lore.config import get_settings
from lore.media.store import CATEGORIES, MediaItem, MediaStore, stable_item_id
from lore.permissions import authenticated_user, current_user, require_user, session_gate

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))


@asynccontextmanager
async def _lifespan(app: FastAPI):
    # Roster errors are fatal here; a missing secret is reported before the first request.
    get_roster()
    get_signer()
    yield


app = FastAPI(lifespan=_lifespan)
app.state.media = MediaStore()


@app.middleware("http")
async def _auth_middleware(request: Request, call_next):
    return await session_gate(request, call_next, protected_prefixes=get_settings().protected_prefixes)


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


async def _json_body(request: Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _media(request: Request) -> MediaStore:
    return request.app.state.media


# ------------------ Session API ------------------

auth_router = APIRouter()


@auth_router.post("/login")
async def login_post(request: Request):
    body = await _json_body(request)
    username = body.get("username") if isinstance(body.get("username"), str) else ""
    password = body.get("password") if isinstance(body.get("password"), str) else ""
    if not username or not password:
        return _error("Username and password are required.", 400)

    account = await run_in_threadpool(verify_credentials, username, password)
    if account is None:
        logger.info("Rejected login for %r", username.strip())
        return _error("Invalid credentials.", 401)

    token = create_session_token(account)
    resp = JSONResponse({"user": account.to_dict()})
    set_session_cookie(resp, token)
    logger.info("User %s logged in", account.username)
    return resp


@auth_router.delete("/login")
def logout(request: Request):
    u = getattr(request.state, "user", None)
    resp = JSONResponse({"success": True})
    clear_session_cookie(resp)
    if u is not None:
        logger.info("User %s logged out", u.username)
    return resp


@auth_router.get("/session")
def session_get(request: Request):
    u = current_user(request)
    return {"user": u.to_dict() if u else None}


app.include_router(auth_router)
app.include_router(auth_router, prefix="/api/auth")


# ------------------ Pages ------------------


@app.get("/healthz")
def healthz():
    return {"status": "ok"}


@app.get("/")
def index():
    return RedirectResponse(url="/dashboard", status_code=303)


def _local_path(target: str, default: str = "/dashboard") -> str:
    # Browsers read a backslash as a slash and drop tabs and newlines, so
    # "/\host" or "/\t/host" would leave the site.
    if not target.startswith("/") or "\\" in target or any(ord(c) < 0x20 for c in target):
        return default
    parts = urlsplit(target)
    if parts.scheme or parts.netloc:
        return default
    return target


@app.get("/login", response_class=HTMLResponse)
def login_get(request: Request, next: str = "/dashboard"):
    target = _local_path(next)
    if getattr(request.state, "user", None):
        return RedirectResponse(url=target, status_code=303)
    return templates.TemplateResponse(request, "login.html", {"next": target})


@app.get("/dashboard", response_class=HTMLResponse)
async def dashboard(request: Request):
    # The inbound filter normally redirects first.
    user = require_user()
    store = _media(request)
    sections = []
    for slug, category in CATEGORIES.items():
        items = store.list_items(user.id, category)
        sections.append(
            {
                "slug": slug,
                "items": [
                    it.to_dict(rating=_rating_value(store, user, it.id)) for it in items
                ],
            }
        )
    return templates.TemplateResponse(request, "dashboard.html", {"user": user, "sections": sections})


# ------------------ Catalogue API ------------------


def _rating_value(store: MediaStore, user: SessionUser, item_id: int) -> Optional[float]:
    r = store.rating_for(user.id, item_id)
    return r.value if r else None


@app.post("/api/rating")
async def rating_post(request: Request, user: SessionUser = Depends(authenticated_user)):
    body = await _json_body(request)
    try:
        item_id = stable_item_id(body.get("movieId"))
        value = float(body.get("value"))
    except (TypeError, ValueError):
        return _error("movieId and value are required", 400)
    if math.isnan(value) or math.isinf(value):
        return _error("movieId and value are required", 400)

    try:
        rating = _media(request).upsert_rating(user.id, item_id, value)
    except KeyError:
        return _error("Item not found", 404)
    return {"rating": rating.to_dict()}


@app.get("/api/{category}")
def media_list(category: str, request: Request, user: SessionUser = Depends(authenticated_user)):
    kind = CATEGORIES.get(category)
    if kind is None:
        return _error("Unknown category", 404)
    store = _media(request)
    items = store.list_items(user.id, kind)
    return {"items": [it.to_dict(rating=_rating_value(store, user, it.id)) for it in items]}


@app.post("/api/{category}")
async def media_add(category: str, request: Request, user: SessionUser = Depends(authenticated_user)):
    kind = CATEGORIES.get(category)
    if kind is None:
        return _error("Unknown category", 404)
    body = await _json_body(request)
    title = body.get("title")
    if not isinstance(title, str) or not title.strip():
        return _error("id and title are required", 400)
    try:
        item_id = stable_item_id(body.get("id"))
    except ValueError:
        return _error("id and title are required", 400)

    genres = body.get("genres")
    item = MediaItem(
        owner_id=user.id,
        id=item_id,
        title=title.strip(),
        category=kind,
        poster=body.get("poster") if isinstance(body.get("poster"), str) else None,
        release_date=body.get("releaseDate") if isinstance(body.get("releaseDate"), str) else None,
        genres=tuple(str(g) for g in genres) if isinstance(genres, list) else (),
    )
    stored, existed = _media(request).add(item)
    return {"item": stored.to_dict(), "alreadyExists": existed}


@app.delete("/api/{category}")
def media_delete(
    category: str,
    request: Request,
    id: Optional[str] = None,
    user: SessionUser = Depends(authenticated_user),
):
    if category not in CATEGORIES:
        return _error("Unknown category", 404)
    if not id:
        return _error("Missing id", 400)
    try:
        item_id = stable_item_id(id)
    except ValueError:
        return _error("Invalid id", 400)
    if not _media(request).delete(user.id, item_id):
        return _error("Item not found", 404)
    return {"ok": True}
