# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import hmac

from argon2.low_level import Type, hash_secret_raw

# Argon2id parameters. Changing any of them invalidates every stored hash.
TIME_COST = 2
MEMORY_COST_KIB = 19 * 1024
PARALLELISM = 1
HASH_LEN = 32
MIN_SALT_BYTES = 8


def derive_password_hash(plain: str, salt: str) -> str:
    """Deterministically derive the hex Argon2id hash of ``plain`` under ``salt``."""
    salt_bytes = (salt or "").encode("utf-8")
    if len(salt_bytes) < MIN_SALT_BYTES:
        raise ValueError(f"Salt must be at least {MIN_SALT_BYTES} bytes")
    raw = hash_secret_raw(
        secret=(plain or "").encode("utf-8"),
        salt=salt_bytes,
        time_cost=TIME_COST,
        memory_cost=MEMORY_COST_KIB,
        parallelism=PARALLELISM,
        hash_len=HASH_LEN,
        type=Type.ID,
    )
    return raw.hex()


def hashes_match(attempted_hex: str, stored_hex: str) -> bool:
    """Constant-time comparison of two hex digests.

    A length mismatch is reported as a plain mismatch by ``compare_digest``
    without comparing content first.
    """
    try:
        attempted = bytes.fromhex(attempted_hex)
        stored = bytes.fromhex(stored_hex)
    except ValueError:
        return False
    return hmac.compare_digest(attempted, stored)
