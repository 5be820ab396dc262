# hedrap/chain/base.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from web3 import Web3
from web3.logs import DISCARD

from ..errors import ChainError, HedRapError, NotConfigured, ValidationError
from .abi import load_abi
from .schema import Layout

logger = logging.getLogger(__name__)


def checksum(address: str, field: str = "address") -> str:
    """Shape check only; the contract decides whether the address is acceptable."""
    if not isinstance(address, str) or not Web3.is_address(address):
        raise ValidationError(f"Invalid {field}: {address!r}")
    return Web3.to_checksum_address(address)


class ContractClient:
    """
    Thin wrapper around one deployed contract.

    Writes are submit + wait-for-receipt; reads are plain eth_call. Any failure
    surfaces as ChainError with the provider's message passed through. Nothing
    is retried.
    """

    contract_name = ""
    fallback_abi: List[Dict[str, Any]] = []
    # view function name -> declared return layout
    layouts: Dict[str, Layout] = {}

    def __init__(self, address: str, signer=None):
        if not address:
            raise NotConfigured(f"{self.contract_name} address not configured")
        if signer is None:
            from .signer import get_signer

            signer = get_signer()

        self.signer = signer
        self.w3 = signer.w3
        self.address = Web3.to_checksum_address(address)
        self.abi = load_abi(self.contract_name, self.fallback_abi)
        self._check_layouts()
        self.contract = self.w3.eth.contract(address=self.address, abi=self.abi)

    def _check_layouts(self) -> None:
        by_name = {e.get("name"): e for e in self.abi if e.get("type") == "function"}
        for fn_name, lay in self.layouts.items():
            entry = by_name.get(fn_name)
            if entry is None or not lay.matches_abi(entry.get("outputs", [])):
                raise NotConfigured(
                    f"{self.contract_name}.{fn_name} ABI does not match {lay.label}"
                )

    def _fn(self, fn_name: str, *args):
        return getattr(self.contract.functions, fn_name)(*args)

    def _call(self, fn_name: str, *args) -> Any:
        try:
            result = self._fn(fn_name, *args).call()
        except Exception as e:
            logger.warning("%s.%s%s failed: %s", self.contract_name, fn_name, args, e)
            raise ChainError(str(e)) from e

        lay = self.layouts.get(fn_name)
        return lay.decode(result) if lay else result

    def _transact(self, fn_name: str, *args, gas: int, value: int = 0) -> Tuple[str, Any]:
        try:
            tx = self._fn(fn_name, *args).build_transaction({
                "from": self.signer.address,
                "gas": gas,
                "value": value,
            })
            tx_hash = self.signer.sign_and_send(tx)
        except HedRapError:
            raise
        except Exception as e:
            logger.warning("%s.%s submission failed: %s", self.contract_name, fn_name, e)
            raise ChainError(str(e)) from e

        logger.info("Submitted %s.%s tx=%s", self.contract_name, fn_name, tx_hash)
        receipt = self.signer.wait_for_receipt(tx_hash)
        return tx_hash, receipt

    def _event_args(self, event_name: str, receipt) -> List[Any]:
        try:
            event = getattr(self.contract.events, event_name)
            logs = event().process_receipt(receipt, errors=DISCARD)
        except Exception as e:
            raise ChainError(f"Failed to decode {event_name} event: {e}") from e
        return [log["args"] for log in logs]

    def _first_event_arg(self, event_name: str, arg: str, receipt, tx_hash: str) -> Any:
        events = self._event_args(event_name, receipt)
        if not events:
            raise ChainError(f"Transaction {tx_hash} confirmed but no {event_name} event found")
        return events[0][arg]

    @staticmethod
    def _status(receipt) -> str:
        return "SUCCESS" if receipt["status"] == 1 else "FAILED"


def optional_address(value: Optional[str]) -> Optional[str]:
    if not value or int(value, 16) == 0:
        return None
    return value
