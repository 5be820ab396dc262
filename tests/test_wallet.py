from unittest.mock import MagicMock

import pytest
from eth_account import Account
from eth_account.messages import encode_defunct
from web3 import Web3

from hedrap.client.wallet import (
    BALANCE_OF,
    SESSION_ADDRESS,
    SESSION_CONNECTED,
    UNRECOGNIZED_CHAIN,
    LocalAccountProvider,
    ProviderRpcError,
    WalletAdapter,
    WalletError,
    format_units,
)

ADDRESS = "0x" + "44" * 20
OTHER = "0x" + "55" * 20
TOKEN = "0x" + "66" * 20
TEST_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"


class FakeProvider:
    def __init__(self, accounts=None, chain_id=296, switch_error=None):
        self.accounts = [ADDRESS] if accounts is None else accounts
        self.chain_id = chain_id
        self.switch_error = switch_error
        self.calls = []
        self.handlers = {}

    def on(self, event, handler):
        self.handlers.setdefault(event, []).append(handler)

    def emit(self, event, payload=None):
        for handler in self.handlers.get(event, []):
            handler(payload)

    def methods(self):
        return [m for m, _ in self.calls]

    def request(self, method, params=None):
        self.calls.append((method, params))
        if method in ("eth_requestAccounts", "eth_accounts"):
            return list(self.accounts)
        if method == "eth_chainId":
            return hex(self.chain_id)
        if method == "wallet_switchEthereumChain":
            if self.switch_error is not None:
                raise self.switch_error
            self.chain_id = int(params[0]["chainId"], 16)
            return None
        if method == "wallet_addEthereumChain":
            self.chain_id = int(params[0]["chainId"], 16)
            return None
        if method == "eth_getBalance":
            return hex(15 * 10**17)
        if method == "eth_call":
            if params[0]["data"].startswith("0x" + BALANCE_OF):
                return hex(2_500_000)
            return hex(6)
        if method == "personal_sign":
            return "0xsig"
        if method == "eth_sendTransaction":
            return "0xhash"
        raise ProviderRpcError(4200, method)


@pytest.fixture
def reload():
    return MagicMock(name="reload")


def adapter(provider, reload=None, session=None):
    return WalletAdapter(provider, session=session if session is not None else {}, on_reload=reload)


# ────────────────────────────────────────────────────────────
# Connect / session
# ────────────────────────────────────────────────────────────


class TestConnect:
    def test_connect_persists_session_and_listens(self):
        provider = FakeProvider()
        session = {}
        w = adapter(provider, session=session)

        assert w.connect() == {"address": ADDRESS, "accountId": ADDRESS}

        assert session == {SESSION_CONNECTED: "true", SESSION_ADDRESS: ADDRESS}
        assert set(provider.handlers) == {"accountsChanged", "chainChanged"}
        assert "wallet_switchEthereumChain" not in provider.methods()

    def test_no_provider(self):
        with pytest.raises(WalletError):
            WalletAdapter(None).connect()

    def test_wrong_chain_switches(self):
        provider = FakeProvider(chain_id=1)

        adapter(provider).connect()

        assert provider.chain_id == 296
        assert "wallet_addEthereumChain" not in provider.methods()

    def test_unknown_chain_is_added(self):
        provider = FakeProvider(
            chain_id=1, switch_error=ProviderRpcError(UNRECOGNIZED_CHAIN, "Unrecognized chain")
        )

        adapter(provider).connect()

        method, params = provider.calls[-1]
        assert method == "wallet_addEthereumChain"
        assert params[0]["chainId"] == "0x128"
        assert params[0]["chainName"] == "Hedera Testnet"

    def test_switch_rejection_does_not_block_connect(self):
        provider = FakeProvider(chain_id=1, switch_error=ProviderRpcError(4001, "User rejected"))

        assert adapter(provider).connect()["address"] == ADDRESS
        assert "wallet_addEthereumChain" not in provider.methods()

    def test_handlers_registered_once(self):
        provider = FakeProvider()
        w = adapter(provider)
        w.connect()
        w.connect()
        assert len(provider.handlers["accountsChanged"]) == 1

    def test_invalid_network(self):
        with pytest.raises(WalletError):
            WalletAdapter(FakeProvider(), network="devnet")


class TestRestore:
    def test_requires_session_flag(self):
        provider = FakeProvider()
        assert adapter(provider).restore_session() is None
        assert provider.calls == []

    def test_restores_first_account(self):
        provider = FakeProvider()
        w = adapter(provider, session={SESSION_CONNECTED: "true"})

        assert w.restore_session() == {"address": ADDRESS, "accountId": ADDRESS}
        assert provider.methods() == ["eth_accounts"]

    def test_no_accounts(self):
        w = adapter(FakeProvider(accounts=[]), session={SESSION_CONNECTED: "true"})
        assert w.restore_session() is None
        assert not w.is_connected

    def test_provider_error(self):
        provider = MagicMock()
        provider.request.side_effect = ProviderRpcError(-32603, "locked")
        w = adapter(provider, session={SESSION_CONNECTED: "true"})
        assert w.restore_session() is None

    def test_disconnect_clears_session(self):
        session = {}
        w = adapter(FakeProvider(), session=session)
        w.connect()

        w.disconnect()

        assert session == {}
        assert w.address is None


# ────────────────────────────────────────────────────────────
# Provider events
# ────────────────────────────────────────────────────────────


class TestEvents:
    def test_empty_accounts_disconnects_then_reloads(self, reload):
        provider = FakeProvider()
        session = {}
        w = adapter(provider, reload, session)
        w.connect()

        provider.emit("accountsChanged", [])

        assert w.address is None
        assert session == {}
        reload.assert_called_once_with()

    def test_account_switch_reloads(self, reload):
        provider = FakeProvider()
        session = {}
        w = adapter(provider, reload, session)
        w.connect()

        provider.emit("accountsChanged", [OTHER])

        assert w.address == OTHER
        assert session[SESSION_ADDRESS] == OTHER
        reload.assert_called_once_with()

    def test_same_account_does_not_reload(self, reload):
        provider = FakeProvider()
        adapter(provider, reload).connect()

        provider.emit("accountsChanged", [ADDRESS])

        reload.assert_not_called()

    def test_chain_change_reloads(self, reload):
        provider = FakeProvider()
        adapter(provider, reload).connect()

        provider.emit("chainChanged", "0x1")

        reload.assert_called_once_with()


# ────────────────────────────────────────────────────────────
# Balances / signing
# ────────────────────────────────────────────────────────────


class TestBalances:
    def test_requires_connection(self):
        w = adapter(FakeProvider())
        with pytest.raises(WalletError, match="Wallet not connected"):
            w.get_balance()
        with pytest.raises(WalletError):
            w.sign_message("hi")
        with pytest.raises(WalletError):
            w.send_transaction({"to": OTHER})

    def test_native_balance(self):
        w = adapter(FakeProvider())
        w.connect()
        assert w.get_balance() == "1.5"

    def test_token_balance_uses_decimals(self):
        provider = FakeProvider()
        w = adapter(provider)
        w.connect()

        assert w.get_token_balance(TOKEN) == "2.5"
        data = provider.calls[-2][1][0]["data"]
        assert data == "0x" + BALANCE_OF + ADDRESS[2:].rjust(64, "0")

    def test_token_balance_failure_is_zero(self):
        provider = FakeProvider()
        w = adapter(provider)
        w.connect()
        provider.request = MagicMock(side_effect=ProviderRpcError(-32000, "execution reverted"))

        assert w.get_token_balance(TOKEN) == "0"

    def test_sign_and_send(self):
        provider = FakeProvider()
        w = adapter(provider)
        w.connect()

        assert w.sign_message("hi") == "0xsig"
        assert provider.calls[-1] == ("personal_sign", [Web3.to_hex(text="hi"), ADDRESS])

        assert w.send_transaction({"to": OTHER, "value": "0x1"}) == "0xhash"
        assert provider.calls[-1][1][0]["from"] == ADDRESS

    def test_format_units(self):
        assert format_units(0) == "0.0"
        assert format_units(10**18) == "1.0"
        assert format_units(123, 2) == "1.23"


# ────────────────────────────────────────────────────────────
# LocalAccountProvider
# ────────────────────────────────────────────────────────────


class TestLocalAccountProvider:
    def _provider(self):
        w3 = MagicMock()
        w3.eth.chain_id = 296
        return LocalAccountProvider(TEST_KEY, rpc_url="", w3=w3)

    def test_accounts_and_chain(self):
        p = self._provider()
        assert p.request("eth_accounts") == [p.account.address]
        assert p.request("eth_chainId") == "0x128"

    def test_switch_to_other_chain_is_unrecognized(self):
        p = self._provider()
        with pytest.raises(ProviderRpcError) as exc:
            p.request("wallet_switchEthereumChain", [{"chainId": "0x127"}])
        assert exc.value.code == UNRECOGNIZED_CHAIN

    def test_personal_sign_recovers(self):
        p = self._provider()
        sig = p.request("personal_sign", [Web3.to_hex(text="hello"), p.account.address])
        recovered = Account.recover_message(encode_defunct(text="hello"), signature=sig)
        assert recovered == p.account.address

    def test_drives_wallet_adapter(self):
        p = self._provider()
        w = WalletAdapter(p)
        assert w.connect()["address"] == p.account.address

        reloads = []
        w.on_reload = lambda: reloads.append(True)
        p.emit("chainChanged", "0x127")
        assert reloads == [True]

    def test_unsupported_method(self):
        with pytest.raises(ProviderRpcError):
            self._provider().request("eth_subscribe", [])
