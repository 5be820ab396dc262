from dataclasses import FrozenInstanceError
from unittest.mock import MagicMock

import pytest
import requests

from hedrap.client import state as s
from hedrap.client.api import ApiClient, ApiError
from hedrap.client.state import ArenaState
from hedrap.client.store import ArenaStore
from hedrap.client.wallet import WalletAdapter, WalletError

ADDRESS = "0x" + "33" * 20


# ────────────────────────────────────────────────────────────
# Reducers
# ────────────────────────────────────────────────────────────


class TestReducers:
    def test_state_is_frozen(self):
        with pytest.raises(FrozenInstanceError):
            ArenaState().is_loading = True

    def test_defaults(self):
        st = ArenaState()
        assert st.voting_fee == 0.1
        assert st.battles == ()
        assert st.address is None

    def test_reducers_do_not_mutate_input(self):
        before = ArenaState(battles=({"id": "a"},))
        after = s.battle_added(before, {"id": "b"})

        assert [b["id"] for b in after.battles] == ["b", "a"]
        assert [b["id"] for b in before.battles] == ["a"]

    def test_loading_cycle(self):
        st = s.loading_failed(ArenaState(), "old")
        st = s.loading_started(st)
        assert st.is_loading and st.error is None

        st = s.loading_failed(st, "boom")
        assert not st.is_loading and st.error == "boom"
        assert s.clear_error(st).error is None

    def test_rapper_added_appends(self):
        st = s.rappers_loaded(ArenaState(), [{"id": "1"}])
        st = s.rapper_added(st, {"id": "2"})
        assert [r["id"] for r in st.rappers] == ["1", "2"]

    def test_proposal_added_prepends(self):
        st = s.proposals_loaded(ArenaState(), [{"id": "1"}])
        st = s.proposal_added(st, {"id": "2"})
        assert [p["id"] for p in st.proposals] == ["2", "1"]

    def test_battle_scores_merged(self):
        st = s.battles_loaded(ArenaState(), [{"id": "a", "rapper1Score": 0}, {"id": "b"}])
        st = s.battle_scores_merged(st, "a", {"rapper1Score": 6000})
        assert st.battles[0]["rapper1Score"] == 6000
        assert st.battles[1] == {"id": "b"}

    def test_wallet_disconnected_clears_wallet_fields(self):
        st = s.wallet_connected(ArenaState(), ADDRESS, is_judge=True)
        st = s.balances_loaded(st, 5.0, 2.0)
        st = s.wallet_disconnected(st)

        assert st.address is None
        assert not st.is_connected and not st.is_judge
        assert st.native_balance == 0.0


# ────────────────────────────────────────────────────────────
# Store actions
# ────────────────────────────────────────────────────────────


@pytest.fixture
def api():
    return MagicMock(spec=ApiClient)


@pytest.fixture
def wallet():
    w = MagicMock(spec=WalletAdapter)
    w.on_reload = None
    return w


@pytest.fixture
def store(api, wallet):
    return ArenaStore(api=api, wallet=wallet)


def connected(store):
    store.state = s.wallet_connected(store.state, ADDRESS)
    return store


class TestStore:
    def test_fetch_battles_success(self, store, api):
        api.get_battles.return_value = [{"id": "a"}]
        seen = []
        store.subscribe(seen.append)

        assert store.fetch_battles() == [{"id": "a"}]

        assert store.state.battles == ({"id": "a"},)
        assert not store.state.is_loading
        assert seen[0].is_loading is True
        assert seen[-1].is_loading is False

    def test_fetch_failure_sets_error_and_reraises(self, store, api):
        api.get_battles.side_effect = ApiError("Battle not found", 404)

        with pytest.raises(ApiError):
            store.fetch_battles()

        assert store.state.error == "Battle not found"
        assert not store.state.is_loading

    def test_unsubscribe(self, store, api):
        seen = []
        unsubscribe = store.subscribe(seen.append)
        unsubscribe()
        api.get_rappers.return_value = []

        store.fetch_rappers()

        assert seen == []

    def test_vote_requires_wallet(self, store, api):
        with pytest.raises(WalletError, match="Wallet not connected"):
            store.vote_battle("a", 1)
        api.vote_battle.assert_not_called()
        assert not store.state.is_loading

    def test_vote_proposal_requires_wallet(self, store, api):
        with pytest.raises(WalletError):
            store.vote_proposal("1", 1)
        api.vote_proposal.assert_not_called()

    def test_vote_battle_refreshes_scores(self, store, api):
        connected(store)
        store.state = s.battles_loaded(store.state, [{"id": "a"}])
        api.vote_battle.return_value = {"success": True}
        api.get_battle_scores.return_value = {"rapper1Percentage": 100.0}

        store.vote_battle("a", 1)

        api.vote_battle.assert_called_once_with("a", 1, ADDRESS, None)
        assert store.state.battles[0]["rapper1Percentage"] == 100.0

    def test_create_battle_prepends(self, store, api):
        store.state = s.battles_loaded(store.state, [{"id": "old"}])
        api.create_battle.return_value = {"id": "new"}

        store.create_battle({"rapper1Name": "x"})

        assert [b["id"] for b in store.state.battles] == ["new", "old"]

    def test_create_proposal_prepends_cached_record(self, store, api):
        api.create_proposal.return_value = {"success": True, "proposal": {"id": "p1"}}

        store.create_proposal(["0x1"], [0], ["0x"], "desc")

        assert store.state.proposals == ({"id": "p1"},)

    def test_bad_response_shape_clears_loading(self, store, api):
        api.create_proposal.return_value = {"success": True}

        with pytest.raises(KeyError):
            store.create_proposal(["0x1"], [0], ["0x"], "desc")

        assert not store.state.is_loading
        assert store.state.error is not None
        assert store.state.proposals == ()

    def test_soft_reads_return_defaults(self, store, api):
        connected(store)
        api.check_has_voted.side_effect = ApiError("down")
        api.check_is_judge.side_effect = ApiError("down")
        api.get_voting_fee.side_effect = ApiError("down")
        api.get_voting_power.side_effect = ApiError("down")

        assert store.check_has_voted("a") is False
        assert store.check_is_judge() is False
        assert store.fetch_voting_fee() == 0.1
        assert store.get_voting_power() == "0"
        assert store.state.error is None

    def test_soft_reads_without_wallet(self, store, api):
        assert store.check_has_voted("a") is False
        assert store.get_voting_power() == "0"
        api.check_has_voted.assert_not_called()

    def test_fetch_voting_fee_updates_state(self, store, api):
        api.get_voting_fee.return_value = 0.5
        assert store.fetch_voting_fee() == 0.5
        assert store.state.voting_fee == 0.5

    def test_connect_wallet(self, store, api, wallet):
        wallet.connect.return_value = {"address": ADDRESS, "accountId": ADDRESS}
        wallet.get_balance.return_value = "1.5"
        api.check_is_judge.return_value = True

        store.connect_wallet()

        assert store.state.is_connected
        assert store.state.is_judge
        assert store.state.native_balance == 1.5

    def test_connect_wallet_failure(self, store, wallet):
        wallet.connect.side_effect = WalletError("No wallet provider found")

        with pytest.raises(WalletError):
            store.connect_wallet()

        assert store.state.error == "No wallet provider found"
        assert not store.state.is_connected

    def test_reload_resets_state(self, store, wallet):
        connected(store)
        assert wallet.on_reload == store.reset

        wallet.on_reload()

        assert store.state == ArenaState()

    def test_get_rapper_fetches_when_missing(self, store, api):
        api.get_rappers.return_value = [{"id": "r1", "name": "KB"}]

        assert store.get_rapper("r1")["name"] == "KB"
        assert store.get_rapper("r1")["name"] == "KB"
        api.get_rappers.assert_called_once_with()


# ────────────────────────────────────────────────────────────
# ApiClient
# ────────────────────────────────────────────────────────────


def response(status, payload):
    r = MagicMock(spec=requests.Response)
    r.status_code = status
    r.ok = status < 400
    r.reason = "Bad Request" if status >= 400 else "OK"
    r.json.return_value = payload
    return r


class TestApiClient:
    def test_error_text_is_carried(self):
        session = MagicMock()
        session.request.return_value = response(400, {"error": "Already voted on this battle"})
        api = ApiClient("http://api.test/api", session=session)

        with pytest.raises(ApiError) as exc:
            api.vote_battle("a", 1, ADDRESS)

        assert exc.value.message == "Already voted on this battle"
        assert exc.value.status == 400
        session.request.assert_called_once_with(
            "POST",
            "http://api.test/api/battles/a/vote",
            timeout=10,
            json={"rapperChoice": 1, "voterAddress": ADDRESS},
        )

    def test_get_with_params(self):
        session = MagicMock()
        session.request.return_value = response(200, {"votingPower": "9"})
        api = ApiClient("http://api.test/api/", session=session)

        assert api.get_voting_power(ADDRESS, 5) == "9"
        session.request.assert_called_once_with(
            "GET",
            f"http://api.test/api/dao/voting-power/{ADDRESS}",
            timeout=10,
            params={"blockNumber": 5},
        )

    def test_connection_error(self):
        session = MagicMock()
        session.request.side_effect = requests.ConnectionError("refused")
        api = ApiClient("http://api.test/api", session=session)

        with pytest.raises(ApiError, match="refused"):
            api.get_battles()
