# hedrap/client/wallet.py
"""
Wallet adapter over an injected EIP-1193 style provider.

The provider exposes ``request(method, params)`` and ``on(event, handler)``.
Browser wallets fill that role in the web app; LocalAccountProvider fills it
for scripts and tests with an eth_account key and a JSON-RPC endpoint.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Callable, Dict, List, MutableMapping, Optional

from eth_account import Account
from eth_account.messages import encode_defunct
from web3 import Web3
from web3.middleware import ExtraDataToPOAMiddleware

logger = logging.getLogger(__name__)

HEDERA_NETWORKS = {
    "testnet": {
        "chainId": 296,
        "chainName": "Hedera Testnet",
        "nativeCurrency": {"name": "HBAR", "symbol": "HBAR", "decimals": 18},
        "rpcUrls": ["https://testnet.hashio.io/api"],
        "blockExplorerUrls": ["https://hashscan.io/testnet"],
    },
    "mainnet": {
        "chainId": 295,
        "chainName": "Hedera Mainnet",
        "nativeCurrency": {"name": "HBAR", "symbol": "HBAR", "decimals": 18},
        "rpcUrls": ["https://mainnet.hashio.io/api"],
        "blockExplorerUrls": ["https://hashscan.io/mainnet"],
    },
}

# EIP-1193 / EIP-3085 codes
UNRECOGNIZED_CHAIN = 4902
UNSUPPORTED_METHOD = 4200

SESSION_CONNECTED = "walletConnected"
SESSION_ADDRESS = "walletAddress"

BALANCE_OF = bytes(Web3.keccak(text="balanceOf(address)")[:4]).hex()
DECIMALS = bytes(Web3.keccak(text="decimals()")[:4]).hex()


class WalletError(Exception):
    pass


class ProviderRpcError(Exception):
    def __init__(self, code: int, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


def format_units(value: int, decimals: int = 18) -> str:
    """Integer base units to a decimal string, keeping at least one fractional digit."""
    amount = Decimal(int(value)).scaleb(-int(decimals))
    text = f"{amount:f}"
    if "." in text:
        text = text.rstrip("0")
        if text.endswith("."):
            text += "0"
    else:
        text += ".0"
    return text


def _hex_to_int(value: Any) -> int:
    if isinstance(value, int):
        return value
    if not value or value == "0x":
        return 0
    return int(value, 16)


class WalletAdapter:
    def __init__(
        self,
        provider=None,
        network: str = "testnet",
        session: Optional[MutableMapping[str, str]] = None,
        on_reload: Optional[Callable[[], None]] = None,
    ):
        if network not in HEDERA_NETWORKS:
            raise WalletError("Invalid network. Use 'testnet' or 'mainnet'")
        self.provider = provider
        self.network = network
        self.session = session if session is not None else {}
        self.on_reload = on_reload
        self.address: Optional[str] = None
        self._listening = False

    @property
    def is_connected(self) -> bool:
        return self.address is not None

    def _require_provider(self):
        if self.provider is None:
            raise WalletError("No wallet provider found. Please install a wallet extension.")
        return self.provider

    def _require_connected(self) -> str:
        if self.provider is None or self.address is None:
            raise WalletError("Wallet not connected")
        return self.address

    # ------------------------------------------------------------
    # Session
    # ------------------------------------------------------------

    def connect(self) -> Dict[str, str]:
        provider = self._require_provider()

        accounts = provider.request("eth_requestAccounts", [])
        if not accounts:
            raise WalletError("Wallet returned no accounts")
        self.address = accounts[0]

        self._ensure_network()

        self.session[SESSION_CONNECTED] = "true"
        self.session[SESSION_ADDRESS] = self.address
        self._listen()

        logger.info("Wallet connected: %s", self.address)
        return {"address": self.address, "accountId": self.address}

    def restore_session(self) -> Optional[Dict[str, str]]:
        if self.session.get(SESSION_CONNECTED) != "true" or self.provider is None:
            return None
        try:
            accounts = self.provider.request("eth_accounts", [])
        except Exception as e:
            logger.warning("Wallet session restore failed: %s", e)
            return None
        if not accounts:
            return None

        self.address = accounts[0]
        self._listen()
        return {"address": self.address, "accountId": self.address}

    def disconnect(self) -> None:
        self.address = None
        self.session.pop(SESSION_CONNECTED, None)
        self.session.pop(SESSION_ADDRESS, None)

    # ------------------------------------------------------------
    # Network
    # ------------------------------------------------------------

    def _chain_hex(self) -> str:
        return hex(HEDERA_NETWORKS[self.network]["chainId"])

    def _ensure_network(self) -> None:
        try:
            current = _hex_to_int(self.provider.request("eth_chainId", []))
            if current != HEDERA_NETWORKS[self.network]["chainId"]:
                self._switch_network()
        except Exception as e:
            # The user may stay on the wrong chain; writes will fail later.
            logger.warning("Could not switch wallet to Hedera %s: %s", self.network, e)

    def _switch_network(self) -> None:
        try:
            self.provider.request("wallet_switchEthereumChain", [{"chainId": self._chain_hex()}])
        except Exception as e:
            if getattr(e, "code", None) != UNRECOGNIZED_CHAIN:
                raise
            cfg = HEDERA_NETWORKS[self.network]
            self.provider.request("wallet_addEthereumChain", [{
                "chainId": self._chain_hex(),
                "chainName": cfg["chainName"],
                "nativeCurrency": cfg["nativeCurrency"],
                "rpcUrls": cfg["rpcUrls"],
                "blockExplorerUrls": cfg["blockExplorerUrls"],
            }])

    # ------------------------------------------------------------
    # Provider events: any change resets client state via reload
    # ------------------------------------------------------------

    def _listen(self) -> None:
        if self._listening:
            return
        self.provider.on("accountsChanged", self.handle_accounts_changed)
        self.provider.on("chainChanged", self.handle_chain_changed)
        self._listening = True

    def _reload(self) -> None:
        if self.on_reload is not None:
            self.on_reload()

    def handle_accounts_changed(self, accounts: List[str]) -> None:
        if not accounts:
            self.disconnect()
            self._reload()
        elif accounts[0] != self.address:
            self.address = accounts[0]
            self.session[SESSION_ADDRESS] = self.address
            self._reload()

    def handle_chain_changed(self, _chain_id: Any = None) -> None:
        self._reload()

    # ------------------------------------------------------------
    # Balances / signing
    # ------------------------------------------------------------

    def get_balance(self) -> str:
        address = self._require_connected()
        wei = _hex_to_int(self.provider.request("eth_getBalance", [address, "latest"]))
        return format_units(wei, 18)

    def get_token_balance(self, token_address: str) -> str:
        address = self._require_connected()
        try:
            owner = address.lower().removeprefix("0x").rjust(64, "0")
            raw = self.provider.request(
                "eth_call", [{"to": token_address, "data": "0x" + BALANCE_OF + owner}, "latest"]
            )
            decimals = self.provider.request(
                "eth_call", [{"to": token_address, "data": "0x" + DECIMALS}, "latest"]
            )
            return format_units(_hex_to_int(raw), _hex_to_int(decimals))
        except Exception as e:
            logger.warning("Token balance read failed for %s: %s", token_address, e)
            return "0"

    def sign_message(self, message: str) -> str:
        address = self._require_connected()
        return self.provider.request("personal_sign", [Web3.to_hex(text=message), address])

    def send_transaction(self, tx: Dict[str, Any]) -> str:
        address = self._require_connected()
        return self.provider.request("eth_sendTransaction", [{"from": address, **tx}])


class LocalAccountProvider:
    """EIP-1193 provider backed by a local private key and a JSON-RPC endpoint."""

    def __init__(self, private_key: str, rpc_url: str, w3: Optional[Web3] = None):
        self.account = Account.from_key(private_key)
        if w3 is None:
            w3 = Web3(Web3.HTTPProvider(rpc_url))
            w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
        self.w3 = w3
        self._handlers: Dict[str, List[Callable]] = {}

    def on(self, event: str, handler: Callable) -> None:
        self._handlers.setdefault(event, []).append(handler)

    def emit(self, event: str, payload: Any) -> None:
        for handler in list(self._handlers.get(event, [])):
            handler(payload)

    def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        params = params or []

        if method in ("eth_requestAccounts", "eth_accounts"):
            return [self.account.address]
        if method == "eth_chainId":
            return hex(self.w3.eth.chain_id)
        if method == "wallet_switchEthereumChain":
            if _hex_to_int(params[0]["chainId"]) != self.w3.eth.chain_id:
                raise ProviderRpcError(UNRECOGNIZED_CHAIN, "Unrecognized chain ID")
            return None
        if method == "wallet_addEthereumChain":
            raise ProviderRpcError(UNSUPPORTED_METHOD, "Local provider is bound to one RPC endpoint")
        if method == "eth_getBalance":
            return hex(self.w3.eth.get_balance(Web3.to_checksum_address(params[0])))
        if method == "eth_call":
            call = dict(params[0])
            call["to"] = Web3.to_checksum_address(call["to"])
            return Web3.to_hex(self.w3.eth.call(call))
        if method == "personal_sign":
            signed = self.account.sign_message(encode_defunct(hexstr=params[0]))
            return Web3.to_hex(signed.signature)
        if method == "eth_sendTransaction":
            return self._send(params[0])

        raise ProviderRpcError(UNSUPPORTED_METHOD, f"Unsupported method: {method}")

    def _send(self, tx: Dict[str, Any]) -> str:
        tx = dict(tx)
        tx.pop("from", None)
        tx["to"] = Web3.to_checksum_address(tx["to"])
        tx.setdefault("value", 0)
        tx["value"] = _hex_to_int(tx["value"])
        tx.setdefault("chainId", self.w3.eth.chain_id)
        tx.setdefault("nonce", self.w3.eth.get_transaction_count(self.account.address, "pending"))
        tx.setdefault("gasPrice", self.w3.eth.gas_price)
        if "gas" not in tx:
            tx["gas"] = self.w3.eth.estimate_gas({**tx, "from": self.account.address})

        signed = self.account.sign_transaction(tx)
        tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
        return Web3.to_hex(tx_hash)
