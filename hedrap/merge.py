# hedrap/merge.py
"""
Best-effort merge of live chain reads into cached documents.

A failed chain read returns the cached document untouched; callers cannot
tell a live response from a cache-only one except by which fields are present.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, Iterable, List

logger = logging.getLogger(__name__)

Doc = Dict[str, Any]


def merge_battle(doc: Doc, live: Doc) -> Doc:
    merged = {**doc, **live}
    # Cache id drives frontend routing; battleId is the contract join key.
    merged["id"] = doc.get("id")
    merged["battleId"] = doc.get("battleId")
    if "videoUrl" in doc:
        merged["videoUrl"] = doc["videoUrl"]
    return merged


def enrich_battle(doc: Doc, battles) -> Doc:
    try:
        live = battles.get_battle_with_scores(doc["battleId"])
    except Exception as e:
        logger.warning("Battle enrichment failed for battleId=%s: %s", doc.get("battleId"), e)
        return dict(doc)
    return merge_battle(doc, live)


def enrich_proposal(doc: Doc, dao, with_snapshot: bool = False) -> Doc:
    proposal_id = doc["proposalId"]
    try:
        state = dao.get_proposal_state(proposal_id)
        votes = dao.get_proposal_votes(proposal_id)
        deadline = dao.get_proposal_deadline(proposal_id)
        snapshot = dao.get_proposal_snapshot(proposal_id) if with_snapshot else None
    except Exception as e:
        logger.warning("Proposal enrichment failed for proposalId=%s: %s", proposal_id, e)
        return dict(doc)

    merged = {
        **doc,
        "state": state["state"],
        "votes": votes,
        "deadline": deadline["deadlineDate"],
    }
    if with_snapshot:
        merged["snapshot"] = snapshot
    return merged


async def enrich_all(docs: Iterable[Doc], enrich: Callable[[Doc], Doc]) -> List[Doc]:
    """Per-item chain reads run concurrently; each failure falls back to its own doc."""
    docs = list(docs)
    results = await asyncio.gather(
        *(asyncio.to_thread(enrich, d) for d in docs),
        return_exceptions=True,
    )

    out: List[Doc] = []
    for doc, result in zip(docs, results):
        if isinstance(result, BaseException):
            logger.warning("Enrichment raised for %s: %s", doc.get("id"), result)
            out.append(dict(doc))
        else:
            out.append(result)
    return out
