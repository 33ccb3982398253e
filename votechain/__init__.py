"""Votechain - the decision core of a client for ledger-based elections.

Elections are created and voted in on an external ledger (usually a smart
contract); this library contains the rules the client applies on top of it:

-   Whether an election accepts votes at a given moment. This is derived from
    the election record and an explicit current time by the ``election``
    module.
-   How votes are summed into totals, percentages and winners, with ties kept
    as co-winners. This is the task of the ``tally`` module.
-   Which elections exist and which of them are running. The ``catalog``
    module loads them from the ledger and keeps the latest snapshot.
-   What may be submitted. The ``validate`` module checks new elections and
    vote attempts locally; the ``service`` module forwards valid ones to the
    ledger.

The ledger itself is accessed through the interface in the ``ledger``
subpackage, with an in-memory implementation and a web3 contract adapter.
"""
