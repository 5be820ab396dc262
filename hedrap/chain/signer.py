# hedrap/chain/signer.py
import logging

from eth_account import Account
from web3 import Web3
from web3.middleware import ExtraDataToPOAMiddleware

from ..config import OPERATOR_ADDRESS, OPERATOR_PRIVATE_KEY, RECEIPT_TIMEOUT, RPC_URL
from ..errors import ChainError, NotConfigured

logger = logging.getLogger(__name__)

DEFAULT_GAS = 250_000


class OperatorSigner:
    """Operator account that signs and submits every state-changing call."""

    def __init__(
        self,
        rpc_url: str = RPC_URL,
        private_key: str = OPERATOR_PRIVATE_KEY,
        expected_address: str = OPERATOR_ADDRESS,
        receipt_timeout: int = RECEIPT_TIMEOUT,
    ):
        if not rpc_url:
            raise NotConfigured("RPC_URL not set")
        if not private_key:
            raise NotConfigured("OPERATOR_PRIVATE_KEY not set")

        self.w3 = Web3(Web3.HTTPProvider(rpc_url))
        # Hedera JSON-RPC relays return POA-style extraData
        self.w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)

        self.account = Account.from_key(private_key)
        if expected_address and self.account.address.lower() != expected_address.lower():
            raise NotConfigured("OPERATOR_PRIVATE_KEY does not match OPERATOR_ADDRESS")

        self.receipt_timeout = receipt_timeout

    @property
    def address(self) -> str:
        return self.account.address

    def sign_and_send(self, tx: dict) -> str:
        w3 = self.w3
        tx = dict(tx)
        tx.pop("gasPrice", None)

        try:
            base_fee = w3.eth.get_block("latest").baseFeePerGas
            priority = w3.eth.max_priority_fee * 150 // 100
            tx["type"] = 2
            tx["maxFeePerGas"] = base_fee + priority
            tx["maxPriorityFeePerGas"] = priority
        except Exception as e:
            logger.debug("EIP-1559 fee fetch failed, using legacy gasPrice: %s", e)
            tx.pop("type", None)
            tx.pop("maxFeePerGas", None)
            tx.pop("maxPriorityFeePerGas", None)
            tx["gasPrice"] = w3.eth.gas_price * 120 // 100

        tx["nonce"] = w3.eth.get_transaction_count(self.account.address, "pending")
        tx["chainId"] = w3.eth.chain_id

        if "gas" not in tx:
            try:
                tx["gas"] = w3.eth.estimate_gas(tx)
            except Exception as e:
                logger.debug("Gas estimate failed, using default %s: %s", DEFAULT_GAS, e)
                tx["gas"] = DEFAULT_GAS

        signed = self.account.sign_transaction(tx)
        tx_hash = w3.eth.send_raw_transaction(signed.raw_transaction)
        return Web3.to_hex(tx_hash)

    def wait_for_receipt(self, tx_hash: str):
        try:
            receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)
        except Exception as e:
            logger.warning("Receipt timeout for %s: %s", tx_hash, e)
            raise ChainError(
                f"Transaction submitted ({tx_hash}) but could not confirm: {e}"
            ) from e

        if receipt["status"] == 0:
            logger.warning("Transaction REVERTED: tx=%s gasUsed=%s", tx_hash, receipt.get("gasUsed"))
            raise ChainError(f"Transaction {tx_hash} reverted on-chain")

        logger.info("Transaction confirmed: tx=%s gasUsed=%s", tx_hash, receipt.get("gasUsed"))
        return receipt


_signer = None


def get_signer() -> OperatorSigner:
    global _signer
    if _signer is None:
        _signer = OperatorSigner()
    return _signer
