# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Authentication helpers.

This package provides:
- Password hashing/verification (argon2id, constant-time comparison)
- The fixed account roster (seed accounts or data/accounts.yml)
- Signed stateless session tokens and their cookie (itsdangerous)
"""
