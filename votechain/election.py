'''Election records as read from the ledger and their point-in-time status.

An :class:`ElectionRecord` is an immutable snapshot of one election. Whether
the election accepts votes is never stored: it is derived by
:func:`resolve_status` from the record and an explicitly given current time,
because the wall clock keeps moving between two observations of the same
record.
'''

from __future__ import annotations

import dataclasses
from numbers import Real
from typing import Any, Mapping, Tuple

from votechain.persist import simple_serialization


class MalformedRecord(Exception):
    '''The ledger returned election data of an unexpected shape.

    :param election_id: Identifier of the election that was being read.
    :param problem: Description of what is wrong with the data.
    '''
    def __init__(self, election_id: Any, problem: str):
        self.election_id = election_id
        self.problem = problem
        super().__init__(f'malformed election record {election_id}: {problem}')


DETAIL_FIELDS: Tuple[str, ...] = (
    'title', 'description', 'candidates', 'voteCounts', 'endTime', 'active'
)


@simple_serialization
@dataclasses.dataclass(frozen=True)
class ElectionRecord:
    '''A snapshot of one election as stored on the ledger.

    Candidates are identified by their position; ``vote_counts[i]`` belongs
    to ``candidates[i]``. The record does not enforce the count invariants
    itself so that a single corrupted election can be flagged by the tally
    functions instead of failing the whole catalog.

    :param id: Ledger-assigned identifier, never reused.
    :param title: Election title.
    :param description: Election description.
    :param candidates: Candidate display names in ballot order.
    :param vote_counts: Votes received, aligned with candidates.
    :param end_time: Unix time (seconds) when voting closes.
    :param raw_active: Ledger flag; false once the election was closed
        administratively.
    '''
    id: int
    title: str
    description: str
    candidates: Tuple[str, ...]
    vote_counts: Tuple[int, ...]
    end_time: int
    raw_active: bool

    def __post_init__(self):
        # deserialized and ledger-provided sequences arrive as lists
        object.__setattr__(self, 'candidates', tuple(self.candidates))
        object.__setattr__(self, 'vote_counts', tuple(self.vote_counts))

    @classmethod
    def from_details(cls,
                     election_id: int,
                     details: Mapping[str, Any],
                     ) -> ElectionRecord:
        '''Build a record from the raw election details of the ledger.

        :param election_id: Identifier under which the details were read.
        :param details: Mapping with the keys listed in ``DETAIL_FIELDS``.
        :raises MalformedRecord: If a key is missing or has a wrong type.
        '''
        if not isinstance(details, Mapping):
            raise MalformedRecord(election_id, 'details are not a mapping')
        missing = [key for key in DETAIL_FIELDS if key not in details]
        if missing:
            raise MalformedRecord(election_id, 'missing ' + ', '.join(missing))
        for key in ('title', 'description'):
            if not isinstance(details[key], str):
                raise MalformedRecord(election_id, f'{key} is not text')
        candidates = details['candidates']
        if not isinstance(candidates, (list, tuple)) or not all(
            isinstance(cand, str) for cand in candidates
        ):
            raise MalformedRecord(election_id, 'candidates must be names')
        counts = details['voteCounts']
        if not isinstance(counts, (list, tuple)) or not all(
            _is_integer(count) for count in counts
        ):
            raise MalformedRecord(election_id, 'vote counts must be integers')
        if not _is_integer(details['endTime']):
            raise MalformedRecord(election_id, 'end time must be an integer')
        if not isinstance(details['active'], bool):
            raise MalformedRecord(election_id, 'active flag must be boolean')
        return cls(
            id=election_id,
            title=details['title'],
            description=details['description'],
            candidates=tuple(candidates),
            vote_counts=tuple(int(count) for count in counts),
            end_time=int(details['endTime']),
            raw_active=details['active'],
        )

    @classmethod
    def from_dict(cls, params: Mapping[str, Any]) -> ElectionRecord:
        return cls(**params)


@dataclasses.dataclass(frozen=True)
class ElectionStatus:
    '''Whether an election accepts votes at one particular moment.

    :param election_id: Identifier of the election.
    :param active: True if votes are accepted.
    :param n_candidates: Number of candidates on the ballot.
    '''
    election_id: int
    active: bool
    n_candidates: int


def is_active(record: ElectionRecord, now: Real) -> bool:
    '''Return True if the election accepts votes at the time ``now``.

    The end time itself already counts as ended.
    '''
    return record.raw_active and now < record.end_time


def resolve_status(record: ElectionRecord, now: Real) -> ElectionStatus:
    '''Derive the activity status of an election at the given time.

    :param record: The election snapshot.
    :param now: Current Unix time in seconds, supplied by the caller.
    '''
    return ElectionStatus(
        election_id=record.id,
        active=is_active(record, now),
        n_candidates=len(record.candidates),
    )


def _is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
