# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import yaml

from lore.auth.passwords import derive_password_hash, hashes_match
from lore.config import AccountSeed, get_settings

logger = logging.getLogger(__name__)

# Hashed in place of a real account when the username is unknown, so both
# failure paths cost one derivation.
_DECOY_SALT = "lore.decoy.account.salt"


@dataclass(frozen=True)
class PublicAccount:
    id: str
    username: str
    display_name: str

    def to_dict(self) -> dict:
        return {"id": self.id, "username": self.username, "displayName": self.display_name}


@dataclass(frozen=True)
class Account:
    id: str
    username: str
    display_name: str
    password_salt: str
    password_hash: str

    def public(self) -> PublicAccount:
        return PublicAccount(id=self.id, username=self.username, display_name=self.display_name)


class AccountRoster:
    """Immutable set of accounts indexed by lowercased username."""

    def __init__(self, accounts: Iterable[Account]):
        by_name: Dict[str, Account] = {}
        for acc in accounts:
            key = _normalize(acc.username)
            if not key:
                raise ValueError(f"Account {acc.id!r} has an empty username")
            if key in by_name:
                raise ValueError(f"Duplicate username in roster: {acc.username!r}")
            by_name[key] = acc
        self._by_name = by_name
        self._decoy_hash = derive_password_hash("", _DECOY_SALT)

    def __len__(self) -> int:
        return len(self._by_name)

    def find(self, username: str) -> Optional[Account]:
        return self._by_name.get(_normalize(username))

    def verify(self, username: str, password: str) -> Optional[PublicAccount]:
        account = self.find(username)
        if account is None:
            salt, stored = _DECOY_SALT, self._decoy_hash
        else:
            salt, stored = account.password_salt, account.password_hash
        attempted = derive_password_hash(password or "", salt)
        ok = hashes_match(attempted, stored)
        if account is None or not ok:
            return None
        return account.public()


def _normalize(username: str) -> str:
    return (username or "").strip().lower()


def accounts_from_seeds(seeds: Iterable[AccountSeed]) -> List[Account]:
    return [
        Account(
            id=s.id,
            username=s.username,
            display_name=s.display_name,
            password_salt=s.salt,
            password_hash=derive_password_hash(s.password, s.salt),
        )
        for s in seeds
    ]


def load_accounts_file(path: Path) -> List[Account]:
    """Read a YAML roster written by ``scripts/create_account.py``.

    Entries carry a precomputed ``password_hash`` and the ``salt`` it was
    derived with; plaintext passwords are never stored in the file.
    """
    raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    entries = (raw.get("accounts") or {}) if isinstance(raw, dict) else {}
    if not isinstance(entries, dict):
        raise ValueError(f"{path}: 'accounts' must be a mapping")
    out: List[Account] = []
    for uname, data in entries.items():
        if not isinstance(data, dict):
            raise ValueError(f"{path}: account {uname!r} must be a mapping")
        username = str(uname).strip()
        salt = str(data.get("salt") or "").strip()
        ph = str(data.get("password_hash") or "").strip().lower()
        if not salt or not ph:
            raise ValueError(f"{path}: account {username!r} needs salt and password_hash")
        try:
            bytes.fromhex(ph)
        except ValueError:
            raise ValueError(f"{path}: account {username!r} has a non-hex password_hash") from None
        out.append(
            Account(
                id=str(data.get("id") or username).strip(),
                username=username,
                display_name=str(data.get("display_name") or username).strip(),
                password_salt=salt,
                password_hash=ph,
            )
        )
    return out


def build_roster() -> AccountRoster:
    settings = get_settings()
    path = settings.accounts_path
    if path.exists():
        roster = AccountRoster(load_accounts_file(path))
        logger.info("Loaded %d account(s) from %s", len(roster), path)
    else:
        roster = AccountRoster(accounts_from_seeds(settings.account_seeds))
        logger.info("Loaded %d seed account(s)", len(roster))
    return roster


_ROSTER: Optional[AccountRoster] = None
_ROSTER_LOCK = threading.Lock()


def get_roster() -> AccountRoster:
    global _ROSTER
    roster = _ROSTER
    if roster is None:
        with _ROSTER_LOCK:
            if _ROSTER is None:
                _ROSTER = build_roster()
            roster = _ROSTER
    return roster


def reset_roster() -> None:
    global _ROSTER
    with _ROSTER_LOCK:
        _ROSTER = None


def find_account(username: str) -> Optional[Account]:
    return get_roster().find(username)


def verify_credentials(username: str, password: str) -> Optional[PublicAccount]:
    return get_roster().verify(username, password)
