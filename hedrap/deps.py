# hedrap/deps.py
"""FastAPI dependencies; tests swap these through app.dependency_overrides."""
from fastapi import Depends
from sqlalchemy.orm import Session

from .cache_store import CacheStore
from .db import get_db

_battle_contract = None
_dao_contract = None
_ticket_contract = None


def get_cache(db: Session = Depends(get_db)) -> CacheStore:
    return CacheStore(db)


def get_battle_contract():
    global _battle_contract
    if _battle_contract is None:
        from .chain import BattleContract

        _battle_contract = BattleContract()
    return _battle_contract


def get_dao_contract():
    global _dao_contract
    if _dao_contract is None:
        from .chain import DaoContract

        _dao_contract = DaoContract()
    return _dao_contract


def get_ticket_contract():
    global _ticket_contract
    if _ticket_contract is None:
        from .chain import TicketContract

        _ticket_contract = TicketContract()
    return _ticket_contract
