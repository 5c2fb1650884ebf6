# epochvote/security.py
import json
import secrets
from typing import List

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_utils import decode_hex, encode_hex, keccak, to_checksum_address


def _canonical_json(obj) -> str:
    return json.dumps(obj, sort_keys=True, separators=(",", ":"))


# The exact text a sender signs for a mutating call
def canonical_call(method: str, args: List[int], sender: str, nonce: str, chain_id: int, ledger: str) -> str:
    return _canonical_json({
        "method": method,
        "args": list(args),
        "sender": sender.lower(),
        "nonce": nonce,
        "chainId": chain_id,
        "ledger": ledger.lower(),
    })


def new_nonce() -> str:
    return secrets.token_hex(16)


# Sign text as an Ethereum personal message, return 0x-prefixed signature
def sign_text(private_key: str, message: str) -> str:
    signed = Account.sign_message(encode_defunct(text=message), private_key=private_key)
    return encode_hex(signed.signature)


# Recover the checksum address that signed ``message``
def recover_signer(message: str, signature: str) -> str:
    return Account.recover_message(encode_defunct(text=message), signature=decode_hex(signature))


def transaction_hash(message: str, signature: str) -> str:
    return encode_hex(keccak(text=f"{message}|{signature.lower()}"))


def ledger_address(authority: str, proposal_names: List[str]) -> str:
    """Deterministic ledger address for a deployer and its proposal list."""
    digest = keccak(text=_canonical_json({"authority": authority.lower(), "proposals": proposal_names}))
    return to_checksum_address(encode_hex(digest[-20:]))
