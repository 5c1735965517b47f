# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional, Tuple

# Anchor default data paths to the project root, not the current working directory.
BASE_DIR = Path(__file__).resolve().parents[2]

DEV_SESSION_SECRET = "dev-insecure-session-secret"

_TRUTHY = {"1", "true", "yes", "y"}


@dataclass(frozen=True)
class AccountSeed:
    id: str
    username: str
    display_name: str
    password: str
    salt: str


@dataclass(frozen=True)
class Settings:
    session_secret: Optional[str]
    production: bool
    accounts_path: Path
    account_seeds: Tuple[AccountSeed, ...]
    protected_prefixes: Tuple[str, ...]

    @property
    def signing_secret(self) -> str:
        return self.session_secret or DEV_SESSION_SECRET


def _seed(id: str, username: str, env_prefix: str, default_salt: str) -> AccountSeed:
    return AccountSeed(
        id=id,
        username=username,
        display_name=username,
        password=os.getenv(f"{env_prefix}_PASSWORD", "1234"),
        salt=os.getenv(f"{env_prefix}_SALT", default_salt),
    )


def _prefixes(raw: str) -> Tuple[str, ...]:
    out = []
    for part in raw.split(","):
        p = part.strip()
        if not p:
            continue
        if not p.startswith("/"):
            p = "/" + p
        out.append(p.rstrip("/") or "/")
    return tuple(out)


def load_settings() -> Settings:
    env = (os.getenv("LORE_ENV") or os.getenv("APP_ENV") or "development").strip().lower()
    return Settings(
        session_secret=os.getenv("SESSION_SECRET") or None,
        production=env == "production",
        accounts_path=Path(
            os.getenv("LORE_ACCOUNTS_PATH", str(BASE_DIR / "data" / "accounts.yml"))
        ).resolve(),
        account_seeds=(
            _seed("flams1", "flams", "AUTH_ACCOUNT_ARCHIVIST", "2e3d8b4fa3a84620"),
            _seed("germanopoli1", "germanopoli", "AUTH_ACCOUNT_CHRONICLE", "ab90c12d77894f0e"),
            _seed("random1", "random", "AUTH_ACCOUNT_SCRIBE", "6f2d3c4b5a6e7d8c"),
        ),
        protected_prefixes=_prefixes(os.getenv("LORE_PROTECTED_PREFIXES", "/dashboard")),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()


def env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in _TRUTHY
