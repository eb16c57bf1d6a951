"""
nonces.py — short-lived anti-forgery tokens.

A token is an HMAC-SHA256 over (tick, action, session_id) truncated to 20 hex
chars. The clock is split into ticks of half the lifetime; a token is accepted
during the tick it was issued in and the one after, so its real lifetime is
between lifetime/2 and lifetime depending on when it was minted.
"""
from __future__ import annotations

import hashlib
import hmac as _hmac
import math
import time
from typing import Optional

import config

_TOKEN_LEN = 20


class NonceManager:

    def __init__(self, secret: Optional[str] = None, lifetime_secs: Optional[int] = None) -> None:
        self._secret   = (secret or config.NONCE_SECRET).encode()
        self._lifetime = lifetime_secs or config.NONCE_LIFETIME_SECS

    def _tick(self, now: Optional[float] = None) -> int:
        now = time.time() if now is None else now
        return math.ceil(now / (self._lifetime / 2))

    def _sign(self, tick: int, action: str, session_id: str) -> str:
        msg = f"{tick}|{action}|{session_id}".encode()
        return _hmac.new(self._secret, msg, hashlib.sha256).hexdigest()[:_TOKEN_LEN]

    def create(self, action: str, session_id: str, now: Optional[float] = None) -> str:
        return self._sign(self._tick(now), action, session_id)

    def verify(self, token: str, action: str, session_id: str, now: Optional[float] = None) -> int:
        """
        Return 1 if token was issued in the current tick, 2 if in the previous
        tick, 0 if it is invalid or expired.
        """
        if not token:
            return 0
        given = token.encode()
        tick = self._tick(now)
        if _hmac.compare_digest(self._sign(tick, action, session_id).encode(), given):
            return 1
        if _hmac.compare_digest(self._sign(tick - 1, action, session_id).encode(), given):
            return 2
        return 0
