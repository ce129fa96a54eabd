# agrichain/services/auth/wallet_auth.py
from __future__ import annotations

import secrets
import threading
import time
from typing import Dict, Tuple

from agrichain.blockchain import normalize_address, recover_signer, signin_message

NONCE_TTL_SECONDS = 300
MAX_PENDING_CHALLENGES = 10_000


class WalletAuthError(Exception):
    pass


class WalletAuthService:
    """
    One-time sign-in challenges for wallet login.

    issue_challenge(wallet) -> message to personal_sign
    verify(wallet, signature) -> checksum wallet, consuming the challenge

    Expired challenges are dropped whenever a challenge is issued or
    verified; past `max_pending` the oldest outstanding challenge goes first.
    """

    def __init__(self, ttl: int = NONCE_TTL_SECONDS, max_pending: int = MAX_PENDING_CHALLENGES):
        self._ttl = ttl
        self._max_pending = max(1, max_pending)
        self._lock = threading.Lock()
        # insertion ordered: oldest challenge first
        self._pending: Dict[str, Tuple[str, float]] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)

    def _purge_expired(self, now: float) -> None:
        # caller holds self._lock
        expired = [addr for addr, (_, expires_at) in self._pending.items() if expires_at <= now]
        for addr in expired:
            del self._pending[addr]

    def issue_challenge(self, wallet: str) -> str:
        try:
            addr = normalize_address(wallet)
        except ValueError as e:
            raise WalletAuthError(str(e))

        nonce = secrets.token_hex(16)
        message = signin_message(addr, nonce)
        now = time.time()
        with self._lock:
            self._purge_expired(now)
            self._pending.pop(addr, None)
            while len(self._pending) >= self._max_pending:
                del self._pending[next(iter(self._pending))]
            self._pending[addr] = (message, now + self._ttl)
        return message

    def verify(self, wallet: str, signature: str) -> str:
        try:
            addr = normalize_address(wallet)
        except ValueError as e:
            raise WalletAuthError(str(e))

        now = time.time()
        with self._lock:
            pending = self._pending.pop(addr, None)
            self._purge_expired(now)
        if pending is None:
            raise WalletAuthError("no pending sign-in challenge for this wallet")

        message, expires_at = pending
        if expires_at <= now:
            raise WalletAuthError("sign-in challenge expired")

        try:
            signer = recover_signer(message, signature)
        except Exception as e:
            raise WalletAuthError(f"bad signature: {e}")

        if signer != addr:
            raise WalletAuthError("signature does not match wallet")
        return addr
