# hedrap/chain/abi.py
"""
ABIs for the battle, governor and ticket contracts.

When ARTIFACTS_DIR points at a compiled build (`<Name>.sol/<Name>.json`),
the artifact ABI is used; otherwise the inline fragments below, which are
generated from the layouts in schema.py.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config import ARTIFACTS_DIR
from .schema import (
    BATTLE,
    BATTLE_WITH_SCORES,
    PROPOSAL_VOTES,
    event_abi,
    function_abi,
    single,
)

logger = logging.getLogger(__name__)


def load_artifact_abi(contract_name: str, artifacts_dir: str = ARTIFACTS_DIR) -> Optional[List[Dict[str, Any]]]:
    if not artifacts_dir:
        return None

    artifact = Path(artifacts_dir) / f"{contract_name}.sol" / f"{contract_name}.json"
    if not artifact.exists():
        logger.warning("ABI artifact not found: %s (using inline ABI)", artifact)
        return None

    with artifact.open() as f:
        data = json.load(f)

    abi = data.get("abi")
    if not abi:
        raise ValueError(f"No 'abi' key in {artifact}")
    return abi


def load_abi(contract_name: str, fallback: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return load_artifact_abi(contract_name) or fallback


BATTLE_VOTING_ABI = [
    function_abi(
        "createBattle",
        [
            ("rapper1Name", "string"),
            ("rapper2Name", "string"),
            ("rapper1Address", "address"),
            ("rapper2Address", "address"),
            ("durationMinutes", "uint256"),
            ("videoUrl", "string"),
        ],
        single("uint256"),
    ),
    function_abi("vote", [("battleId", "uint256"), ("rapperChoice", "uint8")], mutability="payable"),
    function_abi("endBattle", [("battleId", "uint256")]),
    function_abi("withdraw", [("battleId", "uint256")]),
    function_abi("getBattle", [("battleId", "uint256")], BATTLE.abi_outputs(), "view"),
    function_abi(
        "getBattleWithScores", [("battleId", "uint256")], BATTLE_WITH_SCORES.abi_outputs(), "view"
    ),
    function_abi("checkVoted", [("battleId", "uint256"), ("voter", "address")], single("bool"), "view"),
    function_abi("getActiveBattles", [], single("uint256[]"), "view"),
    function_abi("battleCount", [], single("uint256"), "view"),
    function_abi("addJudge", [("judge", "address")]),
    function_abi("removeJudge", [("judge", "address")]),
    function_abi("getAllJudges", [], single("address[]"), "view"),
    function_abi("checkIsJudge", [("account", "address")], single("bool"), "view"),
    function_abi("votingFee", [], single("uint256"), "view"),
    function_abi("setVotingFee", [("newFee", "uint256")]),
    event_abi(
        "BattleCreated",
        ("battleId", "uint256", True),
        ("rapper1", "address", False),
        ("rapper2", "address", False),
        ("endTime", "uint256", False),
    ),
]

_PROPOSAL_ACTIONS = [
    ("targets", "address[]"),
    ("values", "uint256[]"),
    ("calldatas", "bytes[]"),
]

GOVERNOR_ABI = [
    function_abi("propose", _PROPOSAL_ACTIONS + [("description", "string")], single("uint256")),
    function_abi("castVote", [("proposalId", "uint256"), ("support", "uint8")], single("uint256")),
    function_abi(
        "castVoteWithReason",
        [("proposalId", "uint256"), ("support", "uint8"), ("reason", "string")],
        single("uint256"),
    ),
    function_abi(
        "castVoteBySig",
        [
            ("proposalId", "uint256"),
            ("support", "uint8"),
            ("v", "uint8"),
            ("r", "bytes32"),
            ("s", "bytes32"),
        ],
        single("uint256"),
    ),
    function_abi(
        "execute", _PROPOSAL_ACTIONS + [("descriptionHash", "bytes32")], single("uint256"), "payable"
    ),
    function_abi(
        "hashProposal", _PROPOSAL_ACTIONS + [("descriptionHash", "bytes32")], single("uint256"), "pure"
    ),
    function_abi("state", [("proposalId", "uint256")], single("uint8"), "view"),
    function_abi("proposalVotes", [("proposalId", "uint256")], PROPOSAL_VOTES.abi_outputs(), "view"),
    function_abi("hasVoted", [("proposalId", "uint256"), ("account", "address")], single("bool"), "view"),
    function_abi("proposalDeadline", [("proposalId", "uint256")], single("uint256"), "view"),
    function_abi("proposalSnapshot", [("proposalId", "uint256")], single("uint256"), "view"),
    function_abi("getVotes", [("account", "address"), ("timepoint", "uint256")], single("uint256"), "view"),
    function_abi("clock", [], single("uint48"), "view"),
    function_abi("proposalThreshold", [], single("uint256"), "view"),
    function_abi("quorum", [("timepoint", "uint256")], single("uint256"), "view"),
    function_abi("votingDelay", [], single("uint256"), "view"),
    function_abi("votingPeriod", [], single("uint256"), "view"),
    event_abi(
        "ProposalCreated",
        ("proposalId", "uint256", False),
        ("proposer", "address", False),
        ("targets", "address[]", False),
        ("values", "uint256[]", False),
        ("signatures", "string[]", False),
        ("calldatas", "bytes[]", False),
        ("voteStart", "uint256", False),
        ("voteEnd", "uint256", False),
        ("description", "string", False),
    ),
]

TICKET_ABI = [
    function_abi("createCollection", [("name", "string"), ("maxSupply", "uint256")], single("uint256")),
    function_abi("mint", [("tokenId", "uint256"), ("metadata", "bytes")], single("uint256")),
    event_abi(
        "CollectionCreated",
        ("tokenId", "uint256", True),
        ("name", "string", False),
        ("maxSupply", "uint256", False),
    ),
    event_abi(
        "TicketMinted",
        ("tokenId", "uint256", True),
        ("serial", "uint256", True),
        ("to", "address", True),
    ),
]
