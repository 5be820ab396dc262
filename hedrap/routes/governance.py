# hedrap/routes/governance.py
"""
Governor endpoints under /api/dao.

Proposals are created on chain and cached by their decimal proposalId.
Reads merge live state, votes and deadline into the cached record.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import Field

from .. import config
from ..cache_store import PROPOSALS, CacheStore
from ..chain.dao import hash_description, parse_proposal_id, vote_percentages
from ..deps import get_battle_contract, get_cache, get_dao_contract
from ..errors import NotFound, ValidationError
from ..merge import enrich_all, enrich_proposal
from . import CamelModel

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/dao", tags=["dao"])

SUPPORT_KEYS = {0: "against", 1: "for", 2: "abstain"}


class ProposalRequest(CamelModel):
    targets: List[str]
    values: List[int]
    calldatas: List[str]
    description: str = ""


class ProposalVoteRequest(CamelModel):
    support: Optional[int] = None
    voter_address: Optional[str] = None
    reason: str = ""


class JudgeProposalRequest(CamelModel):
    address: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    credentials: Optional[str] = None
    term_end: Optional[int] = None


def _check_actions(req: ProposalRequest) -> None:
    if not req.description.strip():
        raise ValidationError("Missing required fields: targets, values, calldatas, description")
    if not req.targets:
        raise ValidationError("Proposal needs at least one action")
    if not (len(req.targets) == len(req.values) == len(req.calldatas)):
        raise ValidationError("targets, values, and calldatas arrays must have the same length")


def _cached_proposal(cache: CacheStore, proposal_id: str):
    doc = cache.find_one(PROPOSALS, proposalId=proposal_id)
    if doc is None:
        raise NotFound("Proposal not found")
    return doc


def _submit_proposal(req: ProposalRequest, cache: CacheStore, dao):
    _check_actions(req)

    result = dao.create_proposal(req.targets, req.values, req.calldatas, req.description)

    proposal = cache.create(PROPOSALS, {
        "proposalId": result["proposalId"],
        "targets": req.targets,
        "values": [str(v) for v in req.values],
        "calldatas": req.calldatas,
        "description": req.description,
        "transactionId": result["transactionId"],
        "status": "pending",
        "votes": {"for": 0, "against": 0, "abstain": 0},
        "voters": {},
    })
    logger.info("Proposal created: id=%s proposalId=%s", proposal["id"], result["proposalId"])

    return {
        "success": True,
        "transactionId": result["transactionId"],
        "proposal": proposal,
        "contractResult": result,
    }


# ────────────────────────────────────────────────────────────
# Proposals
# ────────────────────────────────────────────────────────────


@router.post("/proposals", status_code=201)
def create_proposal(req: ProposalRequest, cache: CacheStore = Depends(get_cache), dao=Depends(get_dao_contract)):
    return _submit_proposal(req, cache, dao)


@router.get("/proposals")
async def list_proposals(cache: CacheStore = Depends(get_cache), dao=Depends(get_dao_contract)):
    docs = await asyncio.to_thread(cache.list, PROPOSALS)
    return await enrich_all(docs, lambda d: enrich_proposal(d, dao))


@router.get("/proposals/{proposal_id}")
def get_proposal(proposal_id: str, cache: CacheStore = Depends(get_cache), dao=Depends(get_dao_contract)):
    doc = _cached_proposal(cache, proposal_id)
    return enrich_proposal(doc, dao, with_snapshot=True)


@router.get("/proposals/{proposal_id}/state")
def proposal_state(proposal_id: str, dao=Depends(get_dao_contract)):
    parse_proposal_id(proposal_id)
    return dao.get_proposal_state(proposal_id)


@router.get("/proposals/{proposal_id}/votes")
def proposal_votes(proposal_id: str, dao=Depends(get_dao_contract)):
    parse_proposal_id(proposal_id)
    return vote_percentages(dao.get_proposal_votes(proposal_id))


@router.post("/proposals/{proposal_id}/vote")
def vote_proposal(
    proposal_id: str,
    req: ProposalVoteRequest,
    cache: CacheStore = Depends(get_cache),
    dao=Depends(get_dao_contract),
):
    parse_proposal_id(proposal_id)
    if req.support not in SUPPORT_KEYS:
        raise ValidationError("Invalid support value. Must be 0 (Against), 1 (For), or 2 (Abstain)")
    if not req.voter_address:
        raise ValidationError("Voter address is required")

    if dao.has_voted(proposal_id, req.voter_address):
        raise ValidationError("You have already voted on this proposal")

    state = dao.get_proposal_state(proposal_id)
    if state["state"] != "Active":
        raise ValidationError(f"Proposal is not active. Current state: {state['state']}")

    result = dao.cast_vote(proposal_id, req.support, req.reason)

    doc = cache.find_one(PROPOSALS, proposalId=proposal_id)
    if doc is not None:
        cache.increment(PROPOSALS, doc["id"], f"votes.{SUPPORT_KEYS[req.support]}")
        cache.update(PROPOSALS, doc["id"], {
            f"voters.{req.voter_address.lower()}": {
                "support": req.support,
                "reason": req.reason,
                "transactionId": result["transactionId"],
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        })
    else:
        logger.warning("Vote cast on uncached proposal %s", proposal_id)

    return {
        "success": True,
        "transactionId": result["transactionId"],
        "votes": dao.get_proposal_votes(proposal_id),
    }


@router.get("/proposals/{proposal_id}/has-voted/{address}")
def has_voted(proposal_id: str, address: str, dao=Depends(get_dao_contract)):
    parse_proposal_id(proposal_id)
    return {"hasVoted": dao.has_voted(proposal_id, address)}


@router.post("/proposals/{proposal_id}/execute")
def execute_proposal(proposal_id: str, cache: CacheStore = Depends(get_cache), dao=Depends(get_dao_contract)):
    parse_proposal_id(proposal_id)
    doc = _cached_proposal(cache, proposal_id)

    state = dao.get_proposal_state(proposal_id)
    if state["state"] != "Succeeded":
        raise ValidationError(f"Proposal cannot be executed. Current state: {state['state']}")

    result = dao.execute_proposal(
        doc["targets"],
        [int(v) for v in doc["values"]],
        doc["calldatas"],
        hash_description(doc["description"]),
    )

    cache.update(PROPOSALS, doc["id"], {
        "status": "executed",
        "executedAt": datetime.now(timezone.utc).isoformat(),
        "executeTransactionId": result["transactionId"],
    })

    return {"success": True, "transactionId": result["transactionId"]}


# ────────────────────────────────────────────────────────────
# Voting power / settings
# ────────────────────────────────────────────────────────────


@router.get("/voting-power/{address}")
def voting_power(
    address: str,
    block_number: Optional[int] = Query(None, alias="blockNumber"),
    dao=Depends(get_dao_contract),
):
    return {
        "address": address,
        "votingPower": dao.get_voting_power(address, block_number),
        "blockNumber": block_number if block_number is not None else "current",
    }


@router.get("/config")
def dao_config(dao=Depends(get_dao_contract)):
    voting_delay = dao.get_voting_delay()
    voting_period = dao.get_voting_period()
    block_time = config.BLOCK_TIME_SECONDS

    return {
        "proposalThreshold": dao.get_proposal_threshold(),
        "votingDelay": voting_delay,
        "votingDelayHours": f"{voting_delay * block_time / 3600:.1f}",
        "votingPeriod": voting_period,
        "votingPeriodDays": f"{voting_period * block_time / 86400:.1f}",
    }


@router.get("/quorum/{block_number}")
def quorum(block_number: int, dao=Depends(get_dao_contract)):
    return {"quorum": dao.get_quorum(block_number), "blockNumber": block_number}


@router.post("/calculate-proposal-id")
def calculate_proposal_id(req: ProposalRequest, dao=Depends(get_dao_contract)):
    _check_actions(req)
    description_hash = hash_description(req.description)
    proposal_id = dao.calculate_proposal_id(req.targets, req.values, req.calldatas, description_hash)
    return {"proposalId": proposal_id, "descriptionHash": description_hash}


# ────────────────────────────────────────────────────────────
# Judges via governance
# ────────────────────────────────────────────────────────────


@router.post("/judges/propose", status_code=201)
def propose_judge(
    req: JudgeProposalRequest,
    cache: CacheStore = Depends(get_cache),
    dao=Depends(get_dao_contract),
    battles=Depends(get_battle_contract),
):
    description = f"Add {req.name} as certified judge ({req.address})."
    if req.credentials:
        description += f" Credentials: {req.credentials}."
    if req.term_end is not None:
        term_end = datetime.fromtimestamp(req.term_end, tz=timezone.utc).date().isoformat()
        description += f" Term ends: {term_end}."

    proposal = ProposalRequest(
        targets=[battles.address],
        values=[0],
        calldatas=[battles.encode_add_judge(req.address)],
        description=description,
    )
    return _submit_proposal(proposal, cache, dao)


@router.get("/health")
def dao_health():
    return {
        "status": "healthy",
        "daoContract": config.DAO_CONTRACT_ADDRESS or "not configured",
    }
