from .api import ApiClient, ApiError
from .state import ArenaState
from .store import ArenaStore
from .wallet import LocalAccountProvider, WalletAdapter, WalletError

__all__ = [
    "ApiClient",
    "ApiError",
    "ArenaState",
    "ArenaStore",
    "LocalAccountProvider",
    "WalletAdapter",
    "WalletError",
]
