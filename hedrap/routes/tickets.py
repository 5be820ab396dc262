# hedrap/routes/tickets.py
from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends
from pydantic import Field

from ..cache_store import TICKETS, CacheStore
from ..deps import get_cache, get_ticket_contract
from . import CamelModel

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tickets", tags=["tickets"])


class CreateCollectionRequest(CamelModel):
    name: str = Field(..., min_length=1)
    max_supply: int = Field(..., gt=0)


class MintRequest(CamelModel):
    token_id: int
    metadata: Dict[str, Any] = Field(default_factory=dict)


@router.get("")
def list_collections(cache: CacheStore = Depends(get_cache)):
    return cache.list(TICKETS)


@router.post("/create", status_code=201)
def create_collection(
    req: CreateCollectionRequest,
    cache: CacheStore = Depends(get_cache),
    tickets=Depends(get_ticket_contract),
):
    result = tickets.create_collection(req.name, req.max_supply)

    doc = cache.create(TICKETS, {
        "tokenId": result["tokenId"],
        "name": req.name,
        "maxSupply": req.max_supply,
        "serials": [],
        "transactionId": result["transactionId"],
    })

    return {
        "success": True,
        "tokenId": result["tokenId"],
        "transactionId": result["transactionId"],
        "id": doc["id"],
    }


@router.post("/mint")
def mint_ticket(
    req: MintRequest,
    cache: CacheStore = Depends(get_cache),
    tickets=Depends(get_ticket_contract),
):
    result = tickets.mint(req.token_id, req.metadata)

    doc = cache.find_one(TICKETS, tokenId=req.token_id)
    if doc is not None:
        cache.update(TICKETS, doc["id"], {
            "serials": list(doc.get("serials") or []) + result["serialNumbers"],
            "metadata": req.metadata,
        })
    else:
        logger.info("Minted on uncached collection tokenId=%s", req.token_id)

    return {
        "success": True,
        "serialNumbers": result["serialNumbers"],
        "transactionId": result["transactionId"],
    }
