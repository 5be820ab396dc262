# hedrap/config.py
from dotenv import load_dotenv
import logging
import os

from .errors import NotConfigured

load_dotenv()

logger = logging.getLogger(__name__)

# ------------------------------------------------------------
# Network
# ------------------------------------------------------------
NETWORKS = {
    "testnet": {"chain_id": 296, "rpc_url": "https://testnet.hashio.io/api"},
    "mainnet": {"chain_id": 295, "rpc_url": "https://mainnet.hashio.io/api"},
}

HEDERA_NETWORK = os.getenv("HEDERA_NETWORK", "testnet").lower()

_network = NETWORKS.get(HEDERA_NETWORK, {})

RPC_URL = os.getenv("RPC_URL") or _network.get("rpc_url", "")
CHAIN_ID = int(os.getenv("CHAIN_ID") or _network.get("chain_id", 0))

# ------------------------------------------------------------
# Operator account (signs every state-changing call)
# ------------------------------------------------------------
OPERATOR_PRIVATE_KEY = os.getenv("OPERATOR_PRIVATE_KEY", "")
OPERATOR_ADDRESS = os.getenv("OPERATOR_ADDRESS", "")

# ------------------------------------------------------------
# Contracts
# ------------------------------------------------------------
BATTLE_CONTRACT_ADDRESS = os.getenv("BATTLE_CONTRACT_ADDRESS", "")
DAO_CONTRACT_ADDRESS = os.getenv("DAO_CONTRACT_ADDRESS", "")
TICKET_CONTRACT_ADDRESS = os.getenv("TICKET_CONTRACT_ADDRESS", "")

ARTIFACTS_DIR = os.getenv("ARTIFACTS_DIR", "")

RECEIPT_TIMEOUT = int(os.getenv("RECEIPT_TIMEOUT", "60"))
BLOCK_TIME_SECONDS = float(os.getenv("BLOCK_TIME_SECONDS", "2"))

# ------------------------------------------------------------
# App / DB
# ------------------------------------------------------------
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./hedrap.db")
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

_REQUIRED = (
    "RPC_URL",
    "OPERATOR_PRIVATE_KEY",
    "BATTLE_CONTRACT_ADDRESS",
    "DAO_CONTRACT_ADDRESS",
)


def validate_chain_config() -> None:
    """
    Fail fast when credentials or contract addresses are missing.
    Called once from the application lifespan.
    """
    if HEDERA_NETWORK not in NETWORKS:
        raise NotConfigured(
            f"Invalid HEDERA_NETWORK value: {HEDERA_NETWORK!r} "
            f"(expected one of {', '.join(NETWORKS)})"
        )

    missing = [name for name in _REQUIRED if not globals().get(name)]
    if missing:
        raise NotConfigured(f"Missing required settings: {', '.join(missing)}")


def log_config() -> None:
    logger.info("Config loaded:")
    logger.info("  HEDERA_NETWORK: %s (chain %s)", HEDERA_NETWORK, CHAIN_ID)
    logger.info("  RPC_URL: %s", RPC_URL[:48] + ("…" if len(RPC_URL) > 48 else ""))
    logger.info("  BATTLE_CONTRACT: %s", BATTLE_CONTRACT_ADDRESS or "<missing>")
    logger.info("  DAO_CONTRACT: %s", DAO_CONTRACT_ADDRESS or "<missing>")
    logger.info("  TICKET_CONTRACT: %s", TICKET_CONTRACT_ADDRESS or "<missing>")
    logger.info("  OPERATOR_PRIVATE_KEY: %s", "<set>" if OPERATOR_PRIVATE_KEY else "<missing>")
