# hedrap/chain/battles.py
from __future__ import annotations

import logging
import time
from decimal import Decimal
from typing import Any, Dict, List

from web3 import Web3

from ..config import BATTLE_CONTRACT_ADDRESS
from ..errors import ValidationError
from .abi import BATTLE_VOTING_ABI
from .base import ContractClient, checksum, optional_address
from .schema import BATTLE, BATTLE_WITH_SCORES

logger = logging.getLogger(__name__)

STATUS_NAMES = {0: "active", 1: "ended", 2: "cancelled"}

# Scores are basis points of 100%: 10000 == 100.00%
SCORE_SCALE = 10000

# The contract stores HBAR in tinybars; the JSON-RPC relay takes tx value in weibars.
TINYBARS_PER_HBAR = 10**8
WEIBARS_PER_TINYBAR = 10**10


def score_to_percentage(score: int) -> float:
    return round(score * 100 / SCORE_SCALE, 2)


def _decorate(battle: Dict[str, Any]) -> Dict[str, Any]:
    battle["winner"] = optional_address(battle.get("winner"))
    battle["status"] = STATUS_NAMES.get(battle.get("status"), "unknown")
    return battle


class BattleContract(ContractClient):
    contract_name = "BattleVoting"
    fallback_abi = BATTLE_VOTING_ABI
    layouts = {
        "getBattle": BATTLE,
        "getBattleWithScores": BATTLE_WITH_SCORES,
    }

    def __init__(self, address: str = BATTLE_CONTRACT_ADDRESS, signer=None):
        super().__init__(address, signer)

    # ------------------------------------------------------------
    # Battles
    # ------------------------------------------------------------

    def create_battle(
        self,
        rapper1_name: str,
        rapper2_name: str,
        rapper1_address: str,
        rapper2_address: str,
        duration_minutes: int,
        video_url: str = "",
    ) -> Dict[str, Any]:
        tx_hash, receipt = self._transact(
            "createBattle",
            rapper1_name,
            rapper2_name,
            checksum(rapper1_address, "rapper1Address"),
            checksum(rapper2_address, "rapper2Address"),
            int(duration_minutes),
            video_url or "",
            gas=1_000_000,
        )
        battle_id = self._first_event_arg("BattleCreated", "battleId", receipt, tx_hash)

        return {
            "battleId": int(battle_id),
            "transactionId": tx_hash,
            "status": self._status(receipt),
            "endTime": int(time.time() * 1000) + int(duration_minutes) * 60 * 1000,
        }

    def vote(self, battle_id: int, rapper_choice: int) -> Dict[str, Any]:
        if rapper_choice not in (1, 2):
            raise ValidationError("Invalid rapper choice (1 or 2)")

        fee_tinybars = int(self._call("votingFee"))
        tx_hash, receipt = self._transact(
            "vote",
            int(battle_id),
            rapper_choice,
            gas=500_000,
            value=fee_tinybars * WEIBARS_PER_TINYBAR,
        )
        return {"transactionId": tx_hash, "status": self._status(receipt)}

    def end_battle(self, battle_id: int) -> Dict[str, Any]:
        tx_hash, receipt = self._transact("endBattle", int(battle_id), gas=500_000)
        battle = self.get_battle(battle_id)
        return {
            "transactionId": tx_hash,
            "status": self._status(receipt),
            "winner": battle["winner"],
        }

    def withdraw_battle_funds(self, battle_id: int) -> Dict[str, Any]:
        """Contract pays 70% to the rappers and 30% to the owner."""
        tx_hash, receipt = self._transact("withdraw", int(battle_id), gas=300_000)
        return {"transactionId": tx_hash, "status": self._status(receipt)}

    def get_battle(self, battle_id: int) -> Dict[str, Any]:
        return _decorate(self._call("getBattle", int(battle_id)))

    def get_battle_with_scores(self, battle_id: int) -> Dict[str, Any]:
        battle = _decorate(self._call("getBattleWithScores", int(battle_id)))
        battle["rapper1Percentage"] = score_to_percentage(battle["rapper1Score"])
        battle["rapper2Percentage"] = score_to_percentage(battle["rapper2Score"])
        return battle

    def check_has_voted(self, battle_id: int, voter_address: str) -> bool:
        return bool(self._call("checkVoted", int(battle_id), checksum(voter_address, "voterAddress")))

    def get_active_battles(self) -> List[int]:
        return [int(b) for b in self._call("getActiveBattles")]

    def get_battle_count(self) -> int:
        return int(self._call("battleCount"))

    # ------------------------------------------------------------
    # Judges
    # ------------------------------------------------------------

    def add_judge(self, judge_address: str) -> Dict[str, Any]:
        tx_hash, receipt = self._transact(
            "addJudge", checksum(judge_address, "judgeAddress"), gas=200_000
        )
        return {"transactionId": tx_hash, "status": self._status(receipt)}

    def remove_judge(self, judge_address: str) -> Dict[str, Any]:
        tx_hash, receipt = self._transact(
            "removeJudge", checksum(judge_address, "judgeAddress"), gas=200_000
        )
        return {"transactionId": tx_hash, "status": self._status(receipt)}

    def get_all_judges(self) -> List[str]:
        return [Web3.to_checksum_address(a) for a in self._call("getAllJudges")]

    def check_is_judge(self, address: str) -> bool:
        return bool(self._call("checkIsJudge", checksum(address)))

    def encode_add_judge(self, judge_address: str) -> str:
        """Calldata for addJudge(address), used in governance proposals."""
        return self.contract.encode_abi("addJudge", args=[checksum(judge_address, "address")])

    # ------------------------------------------------------------
    # Fees
    # ------------------------------------------------------------

    def get_voting_fee(self) -> float:
        return float(Decimal(int(self._call("votingFee"))) / TINYBARS_PER_HBAR)

    def set_voting_fee(self, fee: float) -> Dict[str, Any]:
        fee_tinybars = int(Decimal(str(fee)) * TINYBARS_PER_HBAR)
        tx_hash, receipt = self._transact("setVotingFee", fee_tinybars, gas=100_000)
        return {"transactionId": tx_hash, "status": self._status(receipt)}
