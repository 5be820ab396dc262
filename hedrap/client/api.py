# hedrap/client/api.py
"""
HTTP client for the HedRap API. One method per route; server errors surface
as ApiError carrying the server's ``error`` text.
"""
from __future__ import annotations

import os
from typing import Any, Dict, List, Optional, Sequence

import requests

API_URL = os.getenv("HEDRAP_API_URL", "http://localhost:3001/api")
HTTP_TIMEOUT = 10


class ApiError(Exception):
    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status


class ApiClient:
    def __init__(self, base_url: str = API_URL, session: Optional[requests.Session] = None,
                 timeout: float = HTTP_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            r = self.session.request(method, self.base_url + path, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise ApiError(f"Request to {path} failed: {e}") from e

        if not r.ok:
            try:
                message = r.json().get("error") or r.reason
            except ValueError:
                message = r.text or r.reason
            raise ApiError(message, r.status_code)

        return r.json()

    def _get(self, path: str, **params) -> Any:
        return self._request("GET", path, params=params or None)

    def _post(self, path: str, body: Optional[Dict[str, Any]] = None) -> Any:
        return self._request("POST", path, json=body or {})

    # ── Battles ──

    def get_battles(self) -> List[Dict[str, Any]]:
        return self._get("/battles")

    def get_active_battles(self) -> List[Dict[str, Any]]:
        return self._get("/battles/active")

    def get_battle(self, battle_id: str) -> Dict[str, Any]:
        return self._get(f"/battles/{battle_id}")

    def get_battle_scores(self, battle_id: str) -> Dict[str, Any]:
        return self._get(f"/battles/{battle_id}/scores")

    def create_battle(self, battle: Dict[str, Any]) -> Dict[str, Any]:
        return self._post("/battles", battle)

    def vote_battle(self, battle_id: str, rapper_choice: int, voter_address: str,
                    payment_tx_id: Optional[str] = None) -> Dict[str, Any]:
        body = {"rapperChoice": rapper_choice, "voterAddress": voter_address}
        if payment_tx_id:
            body["paymentTxId"] = payment_tx_id
        return self._post(f"/battles/{battle_id}/vote", body)

    def check_has_voted(self, battle_id: str, address: str) -> bool:
        return bool(self._get(f"/battles/{battle_id}/check-vote/{address}").get("hasVoted"))

    def end_battle(self, battle_id: str) -> Dict[str, Any]:
        return self._post(f"/battles/{battle_id}/end")

    def withdraw_battle_funds(self, battle_id: str) -> Dict[str, Any]:
        return self._post(f"/battles/{battle_id}/withdraw")

    # ── Judges / fees ──

    def get_judges(self) -> List[str]:
        return self._get("/battles/judges").get("judges", [])

    def check_is_judge(self, address: str) -> bool:
        return bool(self._get(f"/battles/judges/check/{address}").get("isJudge"))

    def add_judge(self, judge_address: str) -> Dict[str, Any]:
        return self._post("/battles/judges/add", {"judgeAddress": judge_address})

    def remove_judge(self, judge_address: str) -> Dict[str, Any]:
        return self._post("/battles/judges/remove", {"judgeAddress": judge_address})

    def get_voting_fee(self) -> float:
        return float(self._get("/battles/voting-fee")["votingFee"])

    def set_voting_fee(self, fee: float) -> Dict[str, Any]:
        return self._post("/battles/voting-fee", {"votingFee": fee})

    # ── Rappers ──

    def get_rappers(self) -> List[Dict[str, Any]]:
        return self._get("/rappers")

    def create_rapper(self, rapper: Dict[str, Any]) -> Dict[str, Any]:
        return self._post("/rappers", rapper)

    # ── Tickets ──

    def get_tickets(self) -> List[Dict[str, Any]]:
        return self._get("/tickets")

    def create_ticket_collection(self, name: str, max_supply: int) -> Dict[str, Any]:
        return self._post("/tickets/create", {"name": name, "maxSupply": max_supply})

    def mint_ticket(self, token_id: int, metadata: Dict[str, Any]) -> Dict[str, Any]:
        return self._post("/tickets/mint", {"tokenId": token_id, "metadata": metadata})

    # ── Governance ──

    def get_proposals(self) -> List[Dict[str, Any]]:
        return self._get("/dao/proposals")

    def get_proposal(self, proposal_id: str) -> Dict[str, Any]:
        return self._get(f"/dao/proposals/{proposal_id}")

    def create_proposal(self, targets: Sequence[str], values: Sequence[int],
                        calldatas: Sequence[str], description: str) -> Dict[str, Any]:
        return self._post("/dao/proposals", {
            "targets": list(targets),
            "values": list(values),
            "calldatas": list(calldatas),
            "description": description,
        })

    def get_proposal_state(self, proposal_id: str) -> Dict[str, Any]:
        return self._get(f"/dao/proposals/{proposal_id}/state")

    def get_proposal_votes(self, proposal_id: str) -> Dict[str, Any]:
        return self._get(f"/dao/proposals/{proposal_id}/votes")

    def vote_proposal(self, proposal_id: str, support: int, voter_address: str,
                      reason: str = "") -> Dict[str, Any]:
        return self._post(f"/dao/proposals/{proposal_id}/vote", {
            "support": support,
            "voterAddress": voter_address,
            "reason": reason,
        })

    def check_has_voted_on_proposal(self, proposal_id: str, address: str) -> bool:
        return bool(self._get(f"/dao/proposals/{proposal_id}/has-voted/{address}").get("hasVoted"))

    def execute_proposal(self, proposal_id: str) -> Dict[str, Any]:
        return self._post(f"/dao/proposals/{proposal_id}/execute")

    def get_voting_power(self, address: str, block_number: Optional[int] = None) -> str:
        params = {"blockNumber": block_number} if block_number is not None else {}
        return str(self._get(f"/dao/voting-power/{address}", **params)["votingPower"])

    def get_dao_config(self) -> Dict[str, Any]:
        return self._get("/dao/config")

    def get_quorum(self, block_number: int) -> Dict[str, Any]:
        return self._get(f"/dao/quorum/{block_number}")

    def calculate_proposal_id(self, targets: Sequence[str], values: Sequence[int],
                              calldatas: Sequence[str], description: str) -> Dict[str, Any]:
        return self._post("/dao/calculate-proposal-id", {
            "targets": list(targets),
            "values": list(values),
            "calldatas": list(calldatas),
            "description": description,
        })

    def propose_judge(self, address: str, name: str, credentials: Optional[str] = None,
                      term_end: Optional[int] = None) -> Dict[str, Any]:
        body: Dict[str, Any] = {"address": address, "name": name}
        if credentials:
            body["credentials"] = credentials
        if term_end is not None:
            body["termEnd"] = term_end
        return self._post("/dao/judges/propose", body)

    def dao_health(self) -> Dict[str, Any]:
        return self._get("/dao/health")

    def health(self) -> Dict[str, Any]:
        return self._get("/health")
