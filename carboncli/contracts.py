"""Read and compose calls against the Carbon contracts.

Calls are ABI-encoded with eth_abi from plain signatures and executed with
eth_call, so nothing here depends on a particular web3 contract API.
"""

import logging
from typing import Any, Optional

from eth_abi import decode, encode
from hexbytes import HexBytes
from web3 import Web3

from carboncli.config import NATIVE_TOKEN
from carboncli.models import EncodedOrder, EncodedStrategy, TokenPair

logger = logging.getLogger(__name__)

ORDER_TYPE = "(uint128,uint128,uint64,uint64)"
STRATEGY_TYPE = f"(uint256,address,address[2],{ORDER_TYPE}[2])"

PROPOSAL_CREATED_EVENT = "ProposalCreated(uint256,address,address[],uint256[],string[],bytes[],uint256,uint256,string)"
PROPOSAL_CREATED_TYPES = ["uint256", "address", "address[]", "uint256[]", "string[]", "bytes[]", "uint256", "uint256", "string"]


def selector(signature: str) -> bytes:
    return bytes(Web3.keccak(text=signature)[:4])


def encode_call(signature: str, arg_types: list[str], args: list) -> bytes:
    return selector(signature) + encode(arg_types, args)


def _signature(name: str, arg_types: list[str]) -> str:
    return f"{name}({','.join(arg_types)})"


class ContractReader:
    """Read-only access to CarbonController, Multicall3 and ERC-20 metadata."""

    def __init__(self, w3: Web3, controller: str, multicall: str):
        self._w3 = w3
        self._controller = Web3.to_checksum_address(controller)
        self._multicall = Web3.to_checksum_address(multicall)

    def _call(self, to: str, name: str, arg_types: list[str], args: list, output_types: list[str]) -> tuple:
        data = encode_call(_signature(name, arg_types), arg_types, args)
        raw = self._w3.eth.call({"to": to, "data": HexBytes(data)})
        return decode(output_types, bytes(raw))

    def pairs(self) -> list[TokenPair]:
        (raw,) = self._call(self._controller, "pairs", [], [], ["address[2][]"])
        return [TokenPair.from_chain(p) for p in raw]

    def strategies_by_pair(self, token0: str, token1: str) -> list[EncodedStrategy]:
        (raw,) = self._call(
            self._controller,
            "strategiesByPair",
            ["address", "address", "uint256", "uint256"],
            [Web3.to_checksum_address(token0), Web3.to_checksum_address(token1), 0, 0],
            [f"{STRATEGY_TYPE}[]"],
        )
        return [EncodedStrategy.from_chain(s) for s in raw]

    def strategies_by_pairs(self, pairs: list[TokenPair]) -> dict[TokenPair, list[EncodedStrategy]]:
        """Fetch strategies for many pairs in one Multicall3 aggregate3 call.

        Pairs whose sub-call fails are skipped with a warning.
        """
        if not pairs:
            return {}

        arg_types = ["address", "address", "uint256", "uint256"]
        sig = _signature("strategiesByPair", arg_types)
        calls = [
            (
                self._controller,
                True,
                encode_call(
                    sig,
                    arg_types,
                    [Web3.to_checksum_address(p.token0), Web3.to_checksum_address(p.token1), 0, 0],
                ),
            )
            for p in pairs
        ]
        (results,) = self._call(
            self._multicall, "aggregate3", ["(address,bool,bytes)[]"], [calls], ["(bool,bytes)[]"]
        )

        out: dict[TokenPair, list[EncodedStrategy]] = {}
        for pair, (success, data) in zip(pairs, results):
            if not success:
                logger.warning(f"strategiesByPair failed for {pair.token0}-{pair.token1}")
                continue
            (raw,) = decode([f"{STRATEGY_TYPE}[]"], data)
            out[pair] = [EncodedStrategy.from_chain(s) for s in raw]
        return out

    def strategy(self, strategy_id: int) -> EncodedStrategy:
        (raw,) = self._call(self._controller, "strategy", ["uint256"], [int(strategy_id)], [STRATEGY_TYPE])
        return EncodedStrategy.from_chain(raw)

    def decimals(self, token: str) -> int:
        if token.lower() == NATIVE_TOKEN.lower():
            return 18
        (value,) = self._call(Web3.to_checksum_address(token), "decimals", [], [], ["uint8"])
        return int(value)


class ContractComposer:
    """Builds unsigned transaction descriptors: {"to", "data", "value"}."""

    def __init__(self, controller: str, voucher: str):
        self._controller = Web3.to_checksum_address(controller)
        self._voucher = Web3.to_checksum_address(voucher)

    @property
    def controller(self) -> str:
        return self._controller

    def update_strategy(
        self,
        strategy_id: int,
        current: tuple[EncodedOrder, EncodedOrder],
        new: tuple[EncodedOrder, EncodedOrder],
        value: int = 0,
    ) -> dict:
        arg_types = ["uint256", f"{ORDER_TYPE}[2]", f"{ORDER_TYPE}[2]"]
        data = encode_call(
            _signature("updateStrategy", arg_types),
            arg_types,
            [int(strategy_id), [o.to_chain() for o in current], [o.to_chain() for o in new]],
        )
        return {"to": self._controller, "data": HexBytes(data), "value": int(value)}

    def propose(
        self,
        governor: str,
        targets: list[str],
        values: list[int],
        calldatas: list[bytes],
        description: str,
    ) -> dict:
        arg_types = ["address[]", "uint256[]", "bytes[]", "string"]
        data = encode_call(
            _signature("propose", arg_types),
            arg_types,
            [[Web3.to_checksum_address(t) for t in targets], values, [bytes(c) for c in calldatas], description],
        )
        return {"to": Web3.to_checksum_address(governor), "data": HexBytes(data), "value": 0}

    def transfer_voucher(self, owner: str, to: str, strategy_id: int) -> dict:
        arg_types = ["address", "address", "uint256"]
        data = encode_call(
            _signature("transferFrom", arg_types),
            arg_types,
            [Web3.to_checksum_address(owner), Web3.to_checksum_address(to), int(strategy_id)],
        )
        return {"to": self._voucher, "data": HexBytes(data), "value": 0}


class ContractsApi:
    """Reader and composer bound to one Carbon deployment."""

    def __init__(self, w3: Web3, controller: str, multicall: str, voucher: str):
        self.reader = ContractReader(w3, controller, multicall)
        self.composer = ContractComposer(controller, voucher)


def find_proposal_id(receipt: Any) -> Optional[int]:
    """Proposal id from the first ProposalCreated log in a receipt, or None."""
    topic = bytes(Web3.keccak(text=PROPOSAL_CREATED_EVENT))
    for log in receipt.get("logs", []):
        topics = log.get("topics", [])
        if not topics or bytes(HexBytes(topics[0])) != topic:
            continue
        values = decode(PROPOSAL_CREATED_TYPES, bytes(HexBytes(log["data"])))
        return int(values[0])
    return None
