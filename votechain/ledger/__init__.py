'''Access to the election ledger.

The :mod:`core` module defines the interface and the failures every ledger
may raise; :mod:`memory` provides an in-process ledger and :mod:`contract` an
adapter over the EVM voting contract.
'''

from votechain.ledger.core import (  # noqa: F401
    Ledger,
    LedgerError,
    LedgerUnavailable,
    LedgerRejection,
    AlreadyVoted,
    classify_rejection,
)
from votechain.ledger.memory import InMemoryLedger  # noqa: F401
