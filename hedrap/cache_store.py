# hedrap/cache_store.py
"""
Document cache for denormalized display data.

Records are plain dicts stored per collection. The chain stays the source of
truth for anything that changes through voting or fund movement; this store
only keeps what the UI needs for fast reads, plus the on-chain id that joins
a document to its contract record.
"""
from __future__ import annotations

import copy
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update as sql_update
from sqlalchemy.orm import Session

from .db import cache_document
from .errors import NotFound

logger = logging.getLogger(__name__)

BATTLES = "battles"
PROPOSALS = "proposals"
RAPPERS = "rappers"
TICKETS = "tickets"

# Join keys to the chain; set once at creation, never overwritten.
IMMUTABLE_KEYS = {
    BATTLES: {"battleId"},
    PROPOSALS: {"proposalId"},
    TICKETS: {"tokenId"},
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _set_dotted(data: Dict[str, Any], dotted_key: str, value: Any) -> None:
    parts = dotted_key.split(".")
    node = data
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[parts[-1]] = value


def _get_dotted(data: Dict[str, Any], dotted_key: str, default: Any = None) -> Any:
    node: Any = data
    for part in dotted_key.split("."):
        if not isinstance(node, dict) or part not in node:
            return default
        node = node[part]
    return node


class CacheStore:
    def __init__(self, db: Session):
        self.db = db

    def _row(self, collection: str, doc_id: str):
        return self.db.execute(
            select(cache_document.c.data).where(
                cache_document.c.id == doc_id,
                cache_document.c.collection == collection,
            )
        ).fetchone()

    def _write(self, doc_id: str, data: Dict[str, Any]) -> None:
        self.db.execute(
            sql_update(cache_document)
            .where(cache_document.c.id == doc_id)
            .values(data=data)
        )
        self.db.commit()

    def create(self, collection: str, record: Dict[str, Any]) -> Dict[str, Any]:
        doc_id = uuid.uuid4().hex
        created = _now()
        data = copy.deepcopy(record)
        data.pop("id", None)
        data["createdAt"] = created.isoformat()

        self.db.execute(
            cache_document.insert().values(
                id=doc_id, collection=collection, data=data, created_at=created
            )
        )
        self.db.commit()
        logger.info("Cached %s document id=%s", collection, doc_id)
        return {"id": doc_id, **data}

    def get(self, collection: str, doc_id: str) -> Dict[str, Any]:
        row = self._row(collection, doc_id)
        if row is None:
            raise NotFound(f"{collection[:-1].capitalize()} not found")
        return {"id": doc_id, **row[0]}

    def update(self, collection: str, doc_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        """
        Partial merge. Last writer wins; there is no concurrency check.
        Dotted keys ("votes.0xabc") set nested map entries.
        """
        row = self._row(collection, doc_id)
        if row is None:
            raise NotFound(f"{collection[:-1].capitalize()} not found")

        data = copy.deepcopy(row[0])
        locked = IMMUTABLE_KEYS.get(collection, set())
        for key, value in patch.items():
            if key == "id":
                continue
            if key in locked and data.get(key) is not None:
                if data[key] != value:
                    logger.warning(
                        "Ignoring change to immutable %s.%s on %s", collection, key, doc_id
                    )
                continue
            _set_dotted(data, key, value)

        self._write(doc_id, data)
        return {"id": doc_id, **data}

    def increment(self, collection: str, doc_id: str, dotted_key: str, by: int = 1) -> Dict[str, Any]:
        current = self.get(collection, doc_id)
        value = _get_dotted(current, dotted_key, 0) or 0
        return self.update(collection, doc_id, {dotted_key: value + by})

    def list(self, collection: str, order: str = "desc", **filters: Any) -> List[Dict[str, Any]]:
        created = cache_document.c.created_at
        stmt = (
            select(cache_document.c.id, cache_document.c.data)
            .where(cache_document.c.collection == collection)
            .order_by(created.desc() if order == "desc" else created.asc())
        )
        docs = [{"id": r[0], **r[1]} for r in self.db.execute(stmt).fetchall()]
        if filters:
            docs = [d for d in docs if all(d.get(k) == v for k, v in filters.items())]
        return docs

    def find_one(self, collection: str, **filters: Any) -> Optional[Dict[str, Any]]:
        docs = self.list(collection, **filters)
        return docs[0] if docs else None

    # ------------------------------------------------------------
    # Battle helpers
    # ------------------------------------------------------------

    def add_vote(
        self,
        battle_doc_id: str,
        voter: str,
        rapper_id: int,
        payment_tx_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Display index only; never consulted for vote legitimacy."""
        entry: Dict[str, Any] = {"rapperId": rapper_id, "timestamp": _now().isoformat()}
        if payment_tx_id:
            entry["paymentTxId"] = payment_tx_id
        return self.update(BATTLES, battle_doc_id, {f"votes.{voter.lower()}": entry})
