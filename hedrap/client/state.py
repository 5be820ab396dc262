# hedrap/client/state.py
"""
Client-side arena state and the pure reducers that produce new states.

Reducers never mutate their input; each returns a fresh ArenaState.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Optional, Tuple

Record = Dict[str, Any]


@dataclass(frozen=True)
class ArenaState:
    # wallet
    address: Optional[str] = None
    is_connected: bool = False
    is_judge: bool = False
    native_balance: float = 0.0
    token_balance: float = 0.0

    # flags
    is_loading: bool = False
    error: Optional[str] = None

    # data
    battles: Tuple[Record, ...] = ()
    active_battles: Tuple[Record, ...] = ()
    rappers: Tuple[Record, ...] = ()
    proposals: Tuple[Record, ...] = ()
    judges: Tuple[str, ...] = ()
    voting_fee: float = 0.1


# ── flags ──

def loading_started(state: ArenaState) -> ArenaState:
    return replace(state, is_loading=True, error=None)


def loading_failed(state: ArenaState, message: str) -> ArenaState:
    return replace(state, is_loading=False, error=message)


def loading_finished(state: ArenaState) -> ArenaState:
    return replace(state, is_loading=False)


def clear_error(state: ArenaState) -> ArenaState:
    return replace(state, error=None)


# ── wallet ──

def wallet_connected(state: ArenaState, address: str, is_judge: bool = False) -> ArenaState:
    return replace(state, address=address, is_connected=True, is_judge=is_judge)


def wallet_disconnected(state: ArenaState) -> ArenaState:
    return replace(
        state,
        address=None,
        is_connected=False,
        is_judge=False,
        native_balance=0.0,
        token_balance=0.0,
    )


def balances_loaded(state: ArenaState, native: float, token: float) -> ArenaState:
    return replace(state, native_balance=native, token_balance=token)


# ── battles ──

def battles_loaded(state: ArenaState, battles) -> ArenaState:
    return replace(state, battles=tuple(battles))


def active_battles_loaded(state: ArenaState, battles) -> ArenaState:
    return replace(state, active_battles=tuple(battles))


def battle_added(state: ArenaState, battle: Record) -> ArenaState:
    return replace(state, battles=(battle,) + state.battles)


def battle_scores_merged(state: ArenaState, battle_id: str, scores: Record) -> ArenaState:
    battles = tuple({**b, **scores} if b.get("id") == battle_id else b for b in state.battles)
    return replace(state, battles=battles)


# ── rappers / proposals / judges ──

def rappers_loaded(state: ArenaState, rappers) -> ArenaState:
    return replace(state, rappers=tuple(rappers))


def rapper_added(state: ArenaState, rapper: Record) -> ArenaState:
    return replace(state, rappers=state.rappers + (rapper,))


def proposals_loaded(state: ArenaState, proposals) -> ArenaState:
    return replace(state, proposals=tuple(proposals))


def proposal_added(state: ArenaState, proposal: Record) -> ArenaState:
    return replace(state, proposals=(proposal,) + state.proposals)


def judges_loaded(state: ArenaState, judges) -> ArenaState:
    return replace(state, judges=tuple(judges))


def judge_status_set(state: ArenaState, is_judge: bool) -> ArenaState:
    return replace(state, is_judge=is_judge)


def voting_fee_loaded(state: ArenaState, fee: float) -> ArenaState:
    return replace(state, voting_fee=fee)
