# agrichain/services/ledger/__init__.py

from agrichain.services.ledger.errors import *  # noqa: F401,F403
from agrichain.services.ledger.ledger_service import LedgerService, get_ledger, init_ledger  # noqa: F401
