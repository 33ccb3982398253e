'''The ledger interface and its failure taxonomy.

The ledger is the external, authoritative store of elections and votes. All
its operations are coroutines that may fail or succeed once per call;
timeouts and retries are the business of the concrete implementation.
'''

from __future__ import annotations

import abc
from typing import Any, Dict, Optional, Sequence

ALREADY_VOTED_MARKERS = ('already voted',)


class LedgerError(Exception):
    '''An operation on the ledger failed.'''
    pass


class LedgerUnavailable(LedgerError):
    '''The ledger could not be reached or answered garbage.'''
    pass


class LedgerRejection(LedgerError):
    '''The ledger refused the operation.

    :param reason: The refusal reason reported by the ledger.
    '''
    message = 'The ledger refused the operation'

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f'rejected by ledger: {reason}')


class AlreadyVoted(LedgerRejection):
    '''The account has already cast its vote in the election.'''
    message = 'You have already voted in this election'


def classify_rejection(reason: Any) -> LedgerRejection:
    '''Turn a raw ledger refusal reason into a typed rejection.

    The ledger does not report refusals in a structured form, so this is the
    only place where the reason text is inspected.

    :param reason: Refusal reason, usually an error message.
    :returns: :class:`AlreadyVoted` for duplicate votes, a generic
        :class:`LedgerRejection` otherwise.
    '''
    text = str(reason)
    if any(marker in text.lower() for marker in ALREADY_VOTED_MARKERS):
        return AlreadyVoted(text)
    return LedgerRejection(text)


class Ledger(metaclass=abc.ABCMeta):
    '''Operations of the election ledger.

    Election details are returned as a mapping with the keys ``title``,
    ``description``, ``candidates``, ``voteCounts``, ``endTime`` and
    ``active``, in the shape the voting contract returns them.
    '''
    @abc.abstractmethod
    async def get_election_count(self) -> int:
        raise NotImplementedError

    @abc.abstractmethod
    async def get_election_details(self, election_id: int) -> Dict[str, Any]:
        raise NotImplementedError

    @abc.abstractmethod
    async def create_election(self,
                              title: str,
                              description: str,
                              candidates: Sequence[str],
                              duration_seconds: int,
                              sender: Optional[str] = None,
                              ) -> Any:
        '''Create an election and wait for the ledger to confirm it.'''
        raise NotImplementedError

    @abc.abstractmethod
    async def vote(self,
                   election_id: int,
                   candidate_index: int,
                   sender: Optional[str] = None,
                   ) -> Any:
        '''Cast a vote and wait for the ledger to confirm it.

        :raises LedgerRejection: If the ledger refuses the vote, e.g. because
            the sender already voted.
        '''
        raise NotImplementedError
