# hedrap/client/store.py
"""
ArenaStore: client-side actions over an ArenaState.

Each loading action flips ``is_loading`` on, calls the API, applies a
reducer on success, records ``error`` on failure and re-raises. Listeners
receive the new state after every change.
"""
from __future__ import annotations

import logging
import os
from typing import Any, Callable, Dict, List, Optional

from . import state as s
from .api import ApiClient
from .state import ArenaState
from .wallet import WalletAdapter, WalletError

logger = logging.getLogger(__name__)

TOKEN_ADDRESS = os.getenv("HEDRAP_TOKEN_ADDRESS", "")

Listener = Callable[[ArenaState], None]


class ArenaStore:
    def __init__(
        self,
        api: Optional[ApiClient] = None,
        wallet: Optional[WalletAdapter] = None,
        state: Optional[ArenaState] = None,
        token_address: str = TOKEN_ADDRESS,
    ):
        self.api = api or ApiClient()
        self.wallet = wallet or WalletAdapter()
        self.state = state or ArenaState()
        self.token_address = token_address
        self._listeners: List[Listener] = []

        # Account or chain changes reset everything.
        if self.wallet.on_reload is None:
            self.wallet.on_reload = self.reset

    # ------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set(self, new_state: ArenaState) -> None:
        self.state = new_state
        for listener in list(self._listeners):
            listener(new_state)

    def _run(self, call: Callable[[], Any], apply: Optional[Callable[[ArenaState, Any], ArenaState]] = None) -> Any:
        self._set(s.loading_started(self.state))
        try:
            result = call()
            new_state = apply(self.state, result) if apply else self.state
        except Exception as e:
            self._set(s.loading_failed(self.state, str(e)))
            raise
        self._set(s.loading_finished(new_state))
        return result

    def _require_address(self) -> str:
        if not self.state.address:
            raise WalletError("Wallet not connected")
        return self.state.address

    def reset(self) -> None:
        self._set(ArenaState())

    def clear_error(self) -> None:
        self._set(s.clear_error(self.state))

    # ------------------------------------------------------------
    # Wallet
    # ------------------------------------------------------------

    def connect_wallet(self) -> Dict[str, str]:
        def call():
            account = self.wallet.connect()
            return account, self.api.check_is_judge(account["address"])

        account, is_judge = self._run(
            call, lambda st, r: s.wallet_connected(st, r[0]["address"], r[1])
        )
        self.fetch_balances()
        return account

    def disconnect_wallet(self) -> None:
        self.wallet.disconnect()
        self._set(s.wallet_disconnected(self.state))

    def restore_wallet_session(self) -> Optional[Dict[str, str]]:
        account = self.wallet.restore_session()
        if account is None:
            return None
        is_judge = self.check_is_judge(account["address"], update=False)
        self._set(s.wallet_connected(self.state, account["address"], is_judge))
        self.fetch_balances()
        return account

    def fetch_balances(self) -> None:
        if not self.state.address:
            return
        try:
            native = float(self.wallet.get_balance())
            token = float(self.wallet.get_token_balance(self.token_address)) if self.token_address else 0.0
        except Exception as e:
            logger.warning("Failed to fetch balances: %s", e)
            return
        self._set(s.balances_loaded(self.state, native, token))

    # ------------------------------------------------------------
    # Battles
    # ------------------------------------------------------------

    def fetch_battles(self) -> List[Dict[str, Any]]:
        return self._run(self.api.get_battles, s.battles_loaded)

    def fetch_active_battles(self) -> List[Dict[str, Any]]:
        return self._run(self.api.get_active_battles, s.active_battles_loaded)

    def fetch_battle(self, battle_id: str) -> Dict[str, Any]:
        return self._run(lambda: self.api.get_battle(battle_id))

    def fetch_battle_scores(self, battle_id: str) -> Dict[str, Any]:
        scores = self.api.get_battle_scores(battle_id)
        self._set(s.battle_scores_merged(self.state, battle_id, scores))
        return scores

    def create_battle(self, battle: Dict[str, Any]) -> Dict[str, Any]:
        return self._run(lambda: self.api.create_battle(battle), s.battle_added)

    def vote_battle(self, battle_id: str, rapper_choice: int, payment_tx_id: Optional[str] = None) -> Dict[str, Any]:
        address = self._require_address()
        result = self._run(lambda: self.api.vote_battle(battle_id, rapper_choice, address, payment_tx_id))
        self.fetch_battle_scores(battle_id)
        return result

    def check_has_voted(self, battle_id: str) -> bool:
        if not self.state.address:
            return False
        try:
            return self.api.check_has_voted(battle_id, self.state.address)
        except Exception as e:
            logger.warning("Failed to check vote status: %s", e)
            return False

    def end_battle(self, battle_id: str) -> Dict[str, Any]:
        result = self._run(lambda: self.api.end_battle(battle_id))
        self.fetch_battles()
        return result

    def withdraw_battle_funds(self, battle_id: str) -> Dict[str, Any]:
        return self._run(lambda: self.api.withdraw_battle_funds(battle_id))

    # ------------------------------------------------------------
    # Rappers / tickets
    # ------------------------------------------------------------

    def fetch_rappers(self) -> List[Dict[str, Any]]:
        return self._run(self.api.get_rappers, s.rappers_loaded)

    def get_rapper(self, rapper_id: str) -> Optional[Dict[str, Any]]:
        for rapper in self.state.rappers:
            if rapper.get("id") == rapper_id:
                return rapper
        self.fetch_rappers()
        return next((r for r in self.state.rappers if r.get("id") == rapper_id), None)

    def create_rapper(self, rapper: Dict[str, Any]) -> Dict[str, Any]:
        return self._run(lambda: self.api.create_rapper(rapper), s.rapper_added)

    def create_ticket_collection(self, name: str, max_supply: int) -> Dict[str, Any]:
        return self._run(lambda: self.api.create_ticket_collection(name, max_supply))

    def mint_ticket(self, token_id: int, metadata: Dict[str, Any]) -> Dict[str, Any]:
        return self._run(lambda: self.api.mint_ticket(token_id, metadata))

    def fetch_tickets(self) -> List[Dict[str, Any]]:
        return self._run(self.api.get_tickets)

    # ------------------------------------------------------------
    # Governance
    # ------------------------------------------------------------

    def fetch_proposals(self) -> List[Dict[str, Any]]:
        return self._run(self.api.get_proposals, s.proposals_loaded)

    def fetch_proposal(self, proposal_id: str) -> Dict[str, Any]:
        return self._run(lambda: self.api.get_proposal(proposal_id))

    def create_proposal(self, targets, values, calldatas, description: str) -> Dict[str, Any]:
        return self._run(
            lambda: self.api.create_proposal(targets, values, calldatas, description),
            lambda st, r: s.proposal_added(st, r["proposal"]),
        )

    def vote_proposal(self, proposal_id: str, support: int, reason: str = "") -> Dict[str, Any]:
        address = self._require_address()
        result = self._run(lambda: self.api.vote_proposal(proposal_id, support, address, reason))
        self.fetch_proposal(proposal_id)
        return result

    def check_has_voted_on_proposal(self, proposal_id: str) -> bool:
        if not self.state.address:
            return False
        try:
            return self.api.check_has_voted_on_proposal(proposal_id, self.state.address)
        except Exception as e:
            logger.warning("Failed to check proposal vote status: %s", e)
            return False

    def execute_proposal(self, proposal_id: str) -> Dict[str, Any]:
        result = self._run(lambda: self.api.execute_proposal(proposal_id))
        self.fetch_proposals()
        return result

    def get_voting_power(self) -> str:
        if not self.state.address:
            return "0"
        try:
            return self.api.get_voting_power(self.state.address)
        except Exception as e:
            logger.warning("Failed to fetch voting power: %s", e)
            return "0"

    # ------------------------------------------------------------
    # Judges / settings
    # ------------------------------------------------------------

    def fetch_judges(self) -> List[str]:
        return self._run(self.api.get_judges, s.judges_loaded)

    def propose_judge(self, address: str, name: str, credentials: Optional[str] = None,
                      term_end: Optional[int] = None) -> Dict[str, Any]:
        return self._run(
            lambda: self.api.propose_judge(address, name, credentials, term_end),
            lambda st, r: s.proposal_added(st, r["proposal"]),
        )

    def check_is_judge(self, address: Optional[str] = None, update: bool = True) -> bool:
        target = address or self.state.address
        if not target:
            return False
        try:
            is_judge = self.api.check_is_judge(target)
        except Exception as e:
            logger.warning("Failed to check judge status: %s", e)
            return False
        if update and target == self.state.address:
            self._set(s.judge_status_set(self.state, is_judge))
        return is_judge

    def fetch_voting_fee(self) -> float:
        try:
            fee = self.api.get_voting_fee()
        except Exception as e:
            logger.warning("Failed to fetch voting fee: %s", e)
            return 0.1
        self._set(s.voting_fee_loaded(self.state, fee))
        return fee
