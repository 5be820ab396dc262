# hedrap/chain/dao.py
"""
Governor (OpenZeppelin-style) calls: proposals, votes, execution and the
read-only views the governance routes merge into cached proposals.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Sequence

from web3 import Web3

from ..config import DAO_CONTRACT_ADDRESS
from ..errors import ValidationError
from .abi import GOVERNOR_ABI
from .base import ContractClient, checksum
from .schema import PROPOSAL_VOTES

logger = logging.getLogger(__name__)

PROPOSAL_STATES = [
    "Pending",
    "Active",
    "Canceled",
    "Defeated",
    "Succeeded",
    "Queued",
    "Expired",
    "Executed",
]


def hash_description(description: str) -> str:
    """keccak256 of the description text, as Governor.execute expects."""
    return Web3.to_hex(Web3.keccak(text=description))


def parse_proposal_id(value) -> int:
    """Proposal ids are uint256 values passed around as decimal strings."""
    text = str(value)
    if not (text.isascii() and text.isdigit()):
        raise ValidationError("Invalid proposalId")
    return int(text)


def to_bytes(value: str, field: str = "calldata") -> bytes:
    try:
        return bytes.fromhex(value.removeprefix("0x"))
    except (AttributeError, ValueError) as e:
        raise ValidationError(f"Invalid {field}: {value!r}") from e


def _actions(targets: Sequence[str], values: Sequence[int], calldatas: Sequence[str]):
    return (
        [checksum(t, "target") for t in targets],
        [int(v) for v in values],
        [to_bytes(c) for c in calldatas],
    )


class DaoContract(ContractClient):
    contract_name = "HedRapDAO"
    fallback_abi = GOVERNOR_ABI
    layouts = {"proposalVotes": PROPOSAL_VOTES}

    def __init__(self, address: str = DAO_CONTRACT_ADDRESS, signer=None):
        super().__init__(address, signer)

    # ------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------

    def create_proposal(
        self,
        targets: Sequence[str],
        values: Sequence[int],
        calldatas: Sequence[str],
        description: str,
    ) -> Dict[str, Any]:
        tx_hash, receipt = self._transact(
            "propose", *_actions(targets, values, calldatas), description, gas=1_000_000
        )
        proposal_id = self._first_event_arg("ProposalCreated", "proposalId", receipt, tx_hash)
        return {
            "proposalId": str(proposal_id),
            "transactionId": tx_hash,
            "status": self._status(receipt),
        }

    def cast_vote(self, proposal_id: str, support: int, reason: str = "") -> Dict[str, Any]:
        if reason:
            tx_hash, receipt = self._transact(
                "castVoteWithReason", parse_proposal_id(proposal_id), support, reason, gas=500_000
            )
        else:
            tx_hash, receipt = self._transact(
                "castVote", parse_proposal_id(proposal_id), support, gas=500_000
            )
        return {"transactionId": tx_hash, "status": self._status(receipt)}

    def cast_vote_by_sig(self, proposal_id: str, support: int, v: int, r: str, s: str) -> Dict[str, Any]:
        tx_hash, receipt = self._transact(
            "castVoteBySig",
            parse_proposal_id(proposal_id),
            support,
            int(v),
            to_bytes(r, "r"),
            to_bytes(s, "s"),
            gas=500_000,
        )
        return {"transactionId": tx_hash, "status": self._status(receipt)}

    def execute_proposal(
        self,
        targets: Sequence[str],
        values: Sequence[int],
        calldatas: Sequence[str],
        description_hash: str,
    ) -> Dict[str, Any]:
        tx_hash, receipt = self._transact(
            "execute",
            *_actions(targets, values, calldatas),
            to_bytes(description_hash, "descriptionHash"),
            gas=1_500_000,
        )
        return {"transactionId": tx_hash, "status": self._status(receipt)}

    # ------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------

    def get_proposal_state(self, proposal_id: str) -> Dict[str, Any]:
        value = int(self._call("state", parse_proposal_id(proposal_id)))
        name = PROPOSAL_STATES[value] if 0 <= value < len(PROPOSAL_STATES) else "Unknown"
        return {"state": name, "stateValue": value}

    def get_proposal_votes(self, proposal_id: str) -> Dict[str, str]:
        votes = self._call("proposalVotes", parse_proposal_id(proposal_id))
        return {k: str(v) for k, v in votes.items()}

    def has_voted(self, proposal_id: str, account: str) -> bool:
        return bool(self._call("hasVoted", parse_proposal_id(proposal_id), checksum(account, "voterAddress")))

    def get_proposal_deadline(self, proposal_id: str) -> Dict[str, Any]:
        deadline = int(self._call("proposalDeadline", parse_proposal_id(proposal_id)))
        return {
            "deadline": deadline,
            "deadlineDate": datetime.fromtimestamp(deadline, tz=timezone.utc).isoformat(),
        }

    def get_proposal_snapshot(self, proposal_id: str) -> int:
        return int(self._call("proposalSnapshot", parse_proposal_id(proposal_id)))

    def get_voting_power(self, account: str, block_number: Optional[int] = None) -> str:
        if block_number is None:
            # getVotes only accepts past timepoints
            block_number = int(self._call("clock")) - 1
        return str(self._call("getVotes", checksum(account), int(block_number)))

    def get_proposal_threshold(self) -> str:
        return str(self._call("proposalThreshold"))

    def get_quorum(self, block_number: int) -> str:
        return str(self._call("quorum", int(block_number)))

    def get_voting_delay(self) -> int:
        return int(self._call("votingDelay"))

    def get_voting_period(self) -> int:
        return int(self._call("votingPeriod"))

    def calculate_proposal_id(
        self,
        targets: Sequence[str],
        values: Sequence[int],
        calldatas: Sequence[str],
        description_hash: str,
    ) -> str:
        return str(
            self._call(
                "hashProposal",
                *_actions(targets, values, calldatas),
                to_bytes(description_hash, "descriptionHash"),
            )
        )


def vote_percentages(votes: Dict[str, str]) -> Dict[str, str]:
    against = int(votes["againstVotes"])
    for_ = int(votes["forVotes"])
    abstain = int(votes["abstainVotes"])
    total = against + for_ + abstain

    def pct(n: int) -> str:
        return str(n * 100 // total) if total > 0 else "0"

    return {
        **votes,
        "total": str(total),
        "forPercentage": pct(for_),
        "againstPercentage": pct(against),
        "abstainPercentage": pct(abstain),
    }
