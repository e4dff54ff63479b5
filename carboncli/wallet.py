import logging
import os
from typing import Any

from eth_account import Account
from eth_account.signers.local import LocalAccount
from hexbytes import HexBytes
from web3 import Web3

logger = logging.getLogger(__name__)

PRIVATE_KEY_ENV = "PRIVATE_KEY"


class MissingPrivateKeyError(RuntimeError):
    pass


class Wallet:
    """Signs and broadcasts transaction descriptors with a local key."""

    def __init__(self, w3: Web3, account: LocalAccount, chain_id: int, receipt_timeout_s: float = 180.0):
        self._w3 = w3
        self._account = account
        self._chain_id = chain_id
        self._receipt_timeout_s = receipt_timeout_s

    @classmethod
    def from_env(cls, w3: Web3, chain_id: int, receipt_timeout_s: float = 180.0) -> "Wallet":
        """Build a wallet from PRIVATE_KEY. Raises before touching the network if unset."""
        private_key = os.environ.get(PRIVATE_KEY_ENV)
        if not private_key:
            raise MissingPrivateKeyError(f"{PRIVATE_KEY_ENV} not found in environment or .env file")
        account: LocalAccount = Account.from_key(private_key)
        return cls(w3, account, chain_id, receipt_timeout_s)

    @property
    def address(self) -> str:
        return self._account.address

    def send(self, tx: dict) -> HexBytes:
        """Fill nonce/gas/fees, sign and broadcast. Returns the tx hash."""
        full = {
            "to": Web3.to_checksum_address(tx["to"]),
            "data": tx.get("data", b""),
            "value": tx.get("value", 0),
            "from": self.address,
            "chainId": self._chain_id,
            "nonce": self._w3.eth.get_transaction_count(self.address),
        }
        full["gas"] = tx["gas"] if "gas" in tx else self._w3.eth.estimate_gas(full)
        full["gasPrice"] = self._w3.eth.gas_price

        signed = self._account.sign_transaction(full)
        return self._w3.eth.send_raw_transaction(signed.raw_transaction)

    def wait(self, tx_hash: HexBytes) -> Any:
        return self._w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self._receipt_timeout_s)
