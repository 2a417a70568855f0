"""Service layer helpers"""

from .balances import BalanceReader, get_balance_reader
from .history import InMemorySwapHistoryStore, SwapHistoryStore, get_history_store
from .token_resolution import TokenResolver, get_token_resolver
from .units import from_base_units, parse_decimal_amount, to_base_units

__all__ = [
    "BalanceReader",
    "get_balance_reader",
    "SwapHistoryStore",
    "InMemorySwapHistoryStore",
    "get_history_store",
    "TokenResolver",
    "get_token_resolver",
    "parse_decimal_amount",
    "to_base_units",
    "from_base_units",
]
