# hedrap/routes/battles.py
"""
Battle, judge and voting-fee endpoints.

Writes go to the battle contract first (source of truth) and are then mirrored
into the cache keyed by the contract's battleId. Reads start from the cache and
merge live contract state when the chain answers.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import Field

from ..cache_store import BATTLES, CacheStore
from ..deps import get_battle_contract, get_cache
from ..errors import ValidationError
from ..merge import enrich_all, enrich_battle
from . import CamelModel

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/battles", tags=["battles"])


class CreateBattleRequest(CamelModel):
    rapper1_name: str = Field(..., min_length=1)
    rapper2_name: str = Field(..., min_length=1)
    rapper1_address: str = Field(..., min_length=1)
    rapper2_address: str = Field(..., min_length=1)
    duration_minutes: int = Field(..., gt=0)
    video_url: str = ""
    description: str = ""


class VoteRequest(CamelModel):
    rapper_choice: Optional[int] = None
    voter_address: Optional[str] = None
    payment_tx_id: Optional[str] = None


class JudgeRequest(CamelModel):
    judge_address: Optional[str] = None


class VotingFeeRequest(CamelModel):
    voting_fee: float


# ────────────────────────────────────────────────────────────
# Static paths first so they are not captured by /{battle_id}
# ────────────────────────────────────────────────────────────


@router.get("")
async def list_battles(cache: CacheStore = Depends(get_cache), battles=Depends(get_battle_contract)):
    docs = await asyncio.to_thread(cache.list, BATTLES)
    return await enrich_all(docs, lambda d: enrich_battle(d, battles))


@router.get("/active")
async def active_battles(cache: CacheStore = Depends(get_cache), battles=Depends(get_battle_contract)):
    battle_ids = await asyncio.to_thread(battles.get_active_battles)
    cached = await asyncio.to_thread(cache.list, BATTLES)

    by_battle_id = {}
    for doc in cached:
        by_battle_id.setdefault(doc.get("battleId"), doc)

    docs = [by_battle_id.get(battle_id, {"id": None, "battleId": battle_id}) for battle_id in battle_ids]

    return await enrich_all(docs, lambda d: enrich_battle(d, battles))


@router.get("/judges")
def list_judges(battles=Depends(get_battle_contract)):
    return {"judges": battles.get_all_judges()}


@router.get("/judges/check/{address}")
def check_judge(address: str, battles=Depends(get_battle_contract)):
    return {"isJudge": battles.check_is_judge(address)}


@router.post("/judges/add")
def add_judge(req: JudgeRequest, battles=Depends(get_battle_contract)):
    if not req.judge_address:
        raise ValidationError("Judge address is required")
    result = battles.add_judge(req.judge_address)
    return {"success": True, "transactionId": result["transactionId"]}


@router.post("/judges/remove")
def remove_judge(req: JudgeRequest, battles=Depends(get_battle_contract)):
    if not req.judge_address:
        raise ValidationError("Judge address is required")
    result = battles.remove_judge(req.judge_address)
    return {"success": True, "transactionId": result["transactionId"]}


@router.get("/voting-fee")
def get_voting_fee(battles=Depends(get_battle_contract)):
    return {"votingFee": battles.get_voting_fee()}


@router.post("/voting-fee")
def set_voting_fee(req: VotingFeeRequest, battles=Depends(get_battle_contract)):
    if req.voting_fee < 0:
        raise ValidationError("Invalid voting fee")
    result = battles.set_voting_fee(req.voting_fee)
    return {"success": True, "votingFee": req.voting_fee, "transactionId": result["transactionId"]}


# ────────────────────────────────────────────────────────────
# Battles
# ────────────────────────────────────────────────────────────


@router.post("", status_code=201)
def create_battle(
    req: CreateBattleRequest,
    cache: CacheStore = Depends(get_cache),
    battles=Depends(get_battle_contract),
):
    if req.rapper1_address.strip().lower() == req.rapper2_address.strip().lower():
        raise ValidationError("Rapper addresses must be different")

    # 1. Contract first (source of truth)
    result = battles.create_battle(
        rapper1_name=req.rapper1_name,
        rapper2_name=req.rapper2_name,
        rapper1_address=req.rapper1_address,
        rapper2_address=req.rapper2_address,
        duration_minutes=req.duration_minutes,
        video_url=req.video_url,
    )

    # 2. Cache with the contract battleId as join key
    doc = cache.create(BATTLES, {
        "battleId": result["battleId"],
        "rapper1Name": req.rapper1_name,
        "rapper2Name": req.rapper2_name,
        "rapper1Address": req.rapper1_address,
        "rapper2Address": req.rapper2_address,
        "description": req.description,
        "videoUrl": req.video_url,
        "durationMinutes": req.duration_minutes,
        "endTime": result["endTime"],
        "status": "active",
        "winner": None,
        "transactionId": result["transactionId"],
        "votes": {},
    })
    logger.info("Battle created: id=%s battleId=%s", doc["id"], result["battleId"])

    return {
        "success": True,
        **doc,
        "battleId": result["battleId"],
        "transactionId": result["transactionId"],
    }


@router.get("/{battle_id}")
def get_battle(battle_id: str, cache: CacheStore = Depends(get_cache), battles=Depends(get_battle_contract)):
    doc = cache.get(BATTLES, battle_id)
    return enrich_battle(doc, battles)


@router.get("/{battle_id}/scores")
def get_battle_scores(battle_id: str, cache: CacheStore = Depends(get_cache), battles=Depends(get_battle_contract)):
    doc = cache.get(BATTLES, battle_id)
    return battles.get_battle_with_scores(doc["battleId"])


@router.post("/{battle_id}/vote")
def vote(
    battle_id: str,
    req: VoteRequest,
    cache: CacheStore = Depends(get_cache),
    battles=Depends(get_battle_contract),
):
    if not req.voter_address:
        raise ValidationError("Voter address is required")
    if req.rapper_choice not in (1, 2):
        raise ValidationError("Invalid rapper choice (1 or 2)")

    doc = cache.get(BATTLES, battle_id)
    chain_id = doc["battleId"]

    # Check-then-act: the contract rejects a second vote that races past this.
    if battles.check_has_voted(chain_id, req.voter_address):
        raise ValidationError("Already voted on this battle")

    result = battles.vote(chain_id, req.rapper_choice)

    cache.add_vote(battle_id, req.voter_address, req.rapper_choice, req.payment_tx_id)

    return {
        "success": True,
        "transactionId": result["transactionId"],
        "battleId": chain_id,
    }


@router.get("/{battle_id}/check-vote/{address}")
def check_vote(
    battle_id: str,
    address: str,
    cache: CacheStore = Depends(get_cache),
    battles=Depends(get_battle_contract),
):
    doc = cache.get(BATTLES, battle_id)
    return {"hasVoted": battles.check_has_voted(doc["battleId"], address)}


@router.post("/{battle_id}/end")
def end_battle(battle_id: str, cache: CacheStore = Depends(get_cache), battles=Depends(get_battle_contract)):
    doc = cache.get(BATTLES, battle_id)

    current = battles.get_battle(doc["battleId"])
    if current["status"] != "active":
        raise ValidationError(f"Battle is not active. Current status: {current['status']}")

    result = battles.end_battle(doc["battleId"])

    cache.update(BATTLES, battle_id, {
        "status": "ended",
        "winner": result["winner"],
        "endedAt": datetime.now(timezone.utc).isoformat(),
    })

    return {
        "success": True,
        "winner": result["winner"],
        "transactionId": result["transactionId"],
    }


@router.post("/{battle_id}/withdraw")
def withdraw(battle_id: str, cache: CacheStore = Depends(get_cache), battles=Depends(get_battle_contract)):
    doc = cache.get(BATTLES, battle_id)

    current = battles.get_battle(doc["battleId"])
    if current["status"] != "ended":
        raise ValidationError(f"Battle has not ended. Current status: {current['status']}")

    result = battles.withdraw_battle_funds(doc["battleId"])

    cache.update(BATTLES, battle_id, {
        "fundsWithdrawn": True,
        "withdrawTransactionId": result["transactionId"],
    })

    return {
        "success": True,
        "transactionId": result["transactionId"],
        "battleId": doc["battleId"],
    }
