# hedrap/routes/rappers.py
"""Rapper profiles live only in the cache; nothing here touches the chain."""
from __future__ import annotations

from typing import Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import Field

from ..cache_store import RAPPERS, CacheStore
from ..deps import get_cache
from . import CamelModel

router = APIRouter(prefix="/api/rappers", tags=["rappers"])


class RapperRequest(CamelModel):
    name: str = Field(..., min_length=1)
    stage_name: str = ""
    bio: str = ""
    image_url: str = ""
    social_links: Dict[str, str] = Field(default_factory=dict)
    wallet_address: Optional[str] = None


@router.get("")
def list_rappers(cache: CacheStore = Depends(get_cache)):
    return cache.list(RAPPERS)


@router.post("", status_code=201)
def create_rapper(req: RapperRequest, cache: CacheStore = Depends(get_cache)):
    return cache.create(RAPPERS, req.model_dump(by_alias=True))
