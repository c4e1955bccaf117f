"""Estate Ledger services"""
from .context import AdminRole, LedgerContext
from .ledger import Ledger
from .token_ledger import TokenLedger
from .faucet import Faucet
from .wrapped_token import WrappedToken
from .parameters import ParameterService, split_fee
from .property_registry import PropertyRegistry
from .order_book import OrderBook
from .income import IncomeDistributor, Distribution, pro_rata
from .governance import GovernanceService, tally
from .disaster_registry import DisasterRegistry
from .pools import PoolService
from .event_log import EventRecorder

__all__ = [
    "AdminRole",
    "LedgerContext",
    "Ledger",
    "TokenLedger",
    "Faucet",
    "WrappedToken",
    "ParameterService",
    "split_fee",
    "PropertyRegistry",
    "OrderBook",
    "IncomeDistributor",
    "Distribution",
    "pro_rata",
    "GovernanceService",
    "tally",
    "DisasterRegistry",
    "PoolService",
    "EventRecorder",
]
