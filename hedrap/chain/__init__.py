from .battles import BattleContract
from .dao import DaoContract
from .tickets import TicketContract

__all__ = ["BattleContract", "DaoContract", "TicketContract"]
