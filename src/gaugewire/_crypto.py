"""Internal helpers for the eGauge digest-style login."""

from __future__ import annotations

import secrets
from collections.abc import Sequence

from Crypto.Hash import MD5


def hash_tokens(tokens: Sequence[str]) -> str:
    """MD5 hex digest of *tokens* joined with ``:`` (digest-auth compatible)."""
    h = MD5.new()
    h.update(":".join(tokens).encode("utf-8"))
    return h.hexdigest()


def make_client_nonce() -> str:
    """Random client nonce rendered as hex (64 random bytes)."""
    return secrets.token_hex(64)


def build_login_payload(
    username: str, password: str, realm: str, nonce: str, client_nonce: str | None = None
) -> dict[str, str]:
    """Build the ``/auth/login`` body from the server challenge.

    ``ha1 = md5(usr:rlm:pwd)`` and ``hash = md5(ha1:nnc:cnnc)``; the
    password itself never leaves the client.
    """
    cnnc = client_nonce if client_nonce is not None else make_client_nonce()
    ha1 = hash_tokens([username, realm, password])
    ha2 = hash_tokens([ha1, nonce, cnnc])
    return {
        "usr": username,
        "rlm": realm,
        "nnc": nonce,
        "cnnc": cnnc,
        "hash": ha2,
    }
