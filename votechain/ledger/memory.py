'''An in-process ledger behaving like the voting contract.

Useful for tests and local experiments; its state can be stored in and
loaded from a JSON file.
'''

from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Sequence, TextIO

from votechain.ledger.core import Ledger, LedgerRejection

logger = logging.getLogger(__name__)


class InMemoryLedger(Ledger):
    '''A ledger keeping elections in memory.

    Follows the voting contract rules: election ids are assigned sequentially
    from zero, each sender may vote once per election, and votes are refused
    once the election ended or was closed.

    :param clock: Returns the current Unix time in seconds.
    :param elections: Initial election states, as produced by
        :meth:`to_dict`.
    '''
    def __init__(self,
                 clock: Callable[[], float] = time.time,
                 elections: Optional[List[Dict[str, Any]]] = None,
                 ):
        self.clock = clock
        self._elections: List[Dict[str, Any]] = []
        for election in elections or []:
            self._elections.append({
                'title': election['title'],
                'description': election['description'],
                'candidates': list(election['candidates']),
                'voteCounts': list(election['voteCounts']),
                'endTime': election['endTime'],
                'active': election['active'],
                'voters': set(election.get('voters', [])),
            })

    async def get_election_count(self) -> int:
        return len(self._elections)

    async def get_election_details(self, election_id: int) -> Dict[str, Any]:
        election = self._get(election_id)
        return {
            'title': election['title'],
            'description': election['description'],
            'candidates': list(election['candidates']),
            'voteCounts': list(election['voteCounts']),
            'endTime': election['endTime'],
            'active': election['active'],
        }

    async def create_election(self,
                              title: str,
                              description: str,
                              candidates: Sequence[str],
                              duration_seconds: int,
                              sender: Optional[str] = None,
                              ) -> int:
        if len(candidates) < 2:
            raise LedgerRejection('At least 2 candidates required')
        election_id = len(self._elections)
        self._elections.append({
            'title': title,
            'description': description,
            'candidates': list(candidates),
            'voteCounts': [0] * len(candidates),
            'endTime': int(self.clock()) + duration_seconds,
            'active': True,
            'voters': set(),
        })
        logger.info('election %d created by %s', election_id, sender)
        return election_id

    async def vote(self,
                   election_id: int,
                   candidate_index: int,
                   sender: Optional[str] = None,
                   ) -> None:
        election = self._get(election_id)
        if not election['active'] or self.clock() >= election['endTime']:
            raise LedgerRejection('Election has ended')
        if not 0 <= candidate_index < len(election['candidates']):
            raise LedgerRejection('Invalid candidate')
        voter = (sender or '').lower()
        if voter in election['voters']:
            raise LedgerRejection('You have already voted in this election')
        election['voters'].add(voter)
        election['voteCounts'][candidate_index] += 1
        logger.debug('vote in election %d for candidate %d',
                     election_id, candidate_index)

    def close_election(self, election_id: int) -> None:
        '''Close an election administratively before its end time.'''
        self._get(election_id)['active'] = False

    def to_dict(self) -> Dict[str, Any]:
        return {'elections': [
            dict(election, voters=sorted(election['voters']))
            for election in self._elections
        ]}

    def dump(self, file: TextIO) -> None:
        json.dump(self.to_dict(), file, indent=2)

    @classmethod
    def load(cls,
             file: TextIO,
             clock: Callable[[], float] = time.time,
             ) -> InMemoryLedger:
        return cls(clock=clock, elections=json.load(file)['elections'])

    def _get(self, election_id: int) -> Dict[str, Any]:
        if not 0 <= election_id < len(self._elections):
            raise LedgerRejection('Election does not exist')
        return self._elections[election_id]
