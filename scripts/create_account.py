#!/usr/bin/env python3
from __future__ import annotations

import secrets
from getpass import getpass

import yaml

from lore.auth.passwords import derive_password_hash
from lore.config import get_settings

ACCOUNTS_PATH = get_settings().accounts_path


def main() -> None:
    ACCOUNTS_PATH.parent.mkdir(parents=True, exist_ok=True)
    if ACCOUNTS_PATH.exists():
        raw = yaml.safe_load(ACCOUNTS_PATH.read_text(encoding="utf-8")) or {}
    else:
        raw = {"version": 1, "accounts": {}}

    if "accounts" not in raw or not isinstance(raw["accounts"], dict):
        raw["accounts"] = {}

    username = input("Username: ").strip().lower()
    if not username:
        raise SystemExit("Username is required")
    account_id = input(f"Account id [{username}1]: ").strip() or f"{username}1"
    display_name = input(f"Display name [{username}]: ").strip() or username

    pw1 = getpass("Password: ")
    pw2 = getpass("Repeat password: ")
    if pw1 != pw2:
        raise SystemExit("Passwords do not match")
    if not pw1:
        raise SystemExit("Password is required")

    salt = secrets.token_hex(8)
    raw["accounts"][username] = {
        "id": account_id,
        "display_name": display_name,
        "salt": salt,
        "password_hash": derive_password_hash(pw1, salt),
    }

    ACCOUNTS_PATH.write_text(yaml.safe_dump(raw, sort_keys=False, allow_unicode=True), encoding="utf-8")
    print(f"OK -> {ACCOUNTS_PATH}")


if __name__ == "__main__":
    main()
