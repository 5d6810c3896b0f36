# sdt_core/tokens.py
"""Single-use submit keys.

The plaintext key goes to the test taker once; only its one-way transform is
stored on the test. A submitted key is checked by transforming it again and
comparing against the stored value.
"""
from __future__ import annotations

import base64
import hashlib
import secrets
from typing import Tuple


class SubmitKeyCryptor:
    def __init__(self, token_bytes: int = 48):
        self.token_bytes = token_bytes

    def create_secure_token(self) -> Tuple[str, str]:
        """Return ``(plain, encrypted)``."""

        plain = secrets.token_urlsafe(self.token_bytes)
        return plain, self.reverse_secure_token(plain)

    def reverse_secure_token(self, plain: str) -> str:
        digest = hashlib.sha256(plain.encode("utf-8")).digest()
        return base64.b64encode(digest).decode("ascii")
