# hedrap/chain/tickets.py
import json
from typing import Any, Dict

from ..config import TICKET_CONTRACT_ADDRESS
from .abi import TICKET_ABI
from .base import ContractClient


class TicketContract(ContractClient):
    """NFT ticket collections; each collection is a token id with serial mints."""

    contract_name = "HedRapTickets"
    fallback_abi = TICKET_ABI

    def __init__(self, address: str = TICKET_CONTRACT_ADDRESS, signer=None):
        super().__init__(address, signer)

    def create_collection(self, name: str, max_supply: int) -> Dict[str, Any]:
        tx_hash, receipt = self._transact("createCollection", name, int(max_supply), gas=800_000)
        token_id = self._first_event_arg("CollectionCreated", "tokenId", receipt, tx_hash)
        return {"tokenId": int(token_id), "transactionId": tx_hash}

    def mint(self, token_id: int, metadata: Dict[str, Any]) -> Dict[str, Any]:
        payload = json.dumps(metadata, separators=(",", ":")).encode("utf-8")
        tx_hash, receipt = self._transact("mint", int(token_id), payload, gas=400_000)
        serials = [str(e["serial"]) for e in self._event_args("TicketMinted", receipt)]
        return {"serialNumbers": serials, "transactionId": tx_hash}
