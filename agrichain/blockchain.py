# agrichain/blockchain.py
"""
Thin wrapper around web3 / eth-account so services and routes can use
simple helper functions without touching Web3 directly.

- wallet address normalisation (EIP-55 checksum)
- keccak digests for the hash-chained ledger command log
- sign-in message recovery for wallet login
"""

from __future__ import annotations

import json
from typing import Any, Dict

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_utils import is_address, to_checksum_address
from web3 import Web3

from agrichain.models.ledger.ledger_models import ZERO_ADDRESS

GENESIS_HASH = "0x" + "00" * 32


# -------------------------------------------------------------------
# Addresses
# -------------------------------------------------------------------
def normalize_address(value: Any) -> str:
    """
    Returns the checksum form of a wallet address.
    Raises ValueError for anything that is not a 20-byte hex address.
    """
    s = str(value or "").strip().lower()
    if not s or not is_address(s):
        raise ValueError(f"invalid wallet address: {value!r}")
    return to_checksum_address(s)


def is_zero_address(value: Any) -> bool:
    try:
        return normalize_address(value) == ZERO_ADDRESS
    except ValueError:
        return False


# -------------------------------------------------------------------
# Command log digests
# -------------------------------------------------------------------
def canonical_json(payload: Dict[str, Any]) -> str:
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def ledger_digest(prev_hash: str, payload: Dict[str, Any]) -> str:
    """keccak256(prevHash || canonical JSON payload) as 0x-prefixed hex."""
    return Web3.to_hex(Web3.keccak(text=prev_hash + canonical_json(payload)))


# -------------------------------------------------------------------
# Wallet sign-in
# -------------------------------------------------------------------
def signin_message(wallet: str, nonce: str) -> str:
    return f"Sign in to AgriChain\nWallet: {wallet}\nNonce: {nonce}"


def recover_signer(message: str, signature: str) -> str:
    """Recover the checksum address that produced an EIP-191 personal_sign signature."""
    signable = encode_defunct(text=message)
    return to_checksum_address(Account.recover_message(signable, signature=signature))


__all__ = [
    "GENESIS_HASH",
    "normalize_address",
    "is_zero_address",
    "canonical_json",
    "ledger_digest",
    "signin_message",
    "recover_signer",
]
