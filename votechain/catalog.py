'''Loading elections from the ledger and sorting them by activity.

The catalog only reads from the ledger. Every load produces fresh immutable
records; the partition into active and ended elections is recomputed against
the current time on each refresh.
'''

from __future__ import annotations

import dataclasses
import enum
import logging
import time
from numbers import Real
from typing import Any, Callable, List, Optional, Tuple

from votechain.election import (
    ElectionRecord, ElectionStatus, MalformedRecord, resolve_status
)
from votechain.ledger.core import Ledger, LedgerError
from votechain.tally import InvalidTally, TallyView, aggregate

logger = logging.getLogger(__name__)


class CatalogLoadError(Exception):
    '''Elections could not be loaded from the ledger.'''
    pass


class ElectionNotFound(CatalogLoadError):
    '''The requested election does not exist on the ledger.

    :param election_id: Identifier that was requested.
    :param count: Number of elections on the ledger.
    '''
    def __init__(self, election_id: int, count: int):
        self.election_id = election_id
        self.count = count
        super().__init__(
            f'election {election_id} not found, {count} elections exist'
        )


class CatalogState(enum.Enum):
    '''What the presentation layer should show for the catalog.'''
    LOADING = 'loading'
    READY = 'ready'
    EMPTY = 'empty'
    ERROR = 'error'


@dataclasses.dataclass(frozen=True)
class CatalogEntry:
    '''A loaded election with its status and tally at the time of loading.'''
    record: ElectionRecord
    status: ElectionStatus
    tally: TallyView


@dataclasses.dataclass(frozen=True)
class CatalogSnapshot:
    '''Elections partitioned by activity, in ledger order.

    :param active: Elections accepting votes.
    :param ended: Elections that ended or were closed.
    :param flagged: Records whose vote counts are corrupted; they are kept
        out of both other lists.
    :param observed_at: Time the partition was computed for.
    '''
    active: Tuple[CatalogEntry, ...]
    ended: Tuple[CatalogEntry, ...]
    flagged: Tuple[ElectionRecord, ...]
    observed_at: Real

    def __len__(self) -> int:
        return len(self.active) + len(self.ended) + len(self.flagged)

    @property
    def is_empty(self) -> bool:
        return len(self) == 0


class ElectionCatalog:
    '''All elections on a ledger.

    :param ledger: The ledger to read from.
    :param clock: Returns the current Unix time in seconds; used when no
        explicit time is given.
    '''
    def __init__(self,
                 ledger: Ledger,
                 clock: Callable[[], float] = time.time,
                 ):
        self.ledger = ledger
        self.clock = clock
        self.snapshot: Optional[CatalogSnapshot] = None
        self.last_error: Optional[CatalogLoadError] = None
        self._requested = 0
        self._settled = 0

    @property
    def state(self) -> CatalogState:
        if self._settled < self._requested and self.snapshot is None:
            return CatalogState.LOADING
        elif self.last_error is not None:
            return CatalogState.ERROR
        elif self.snapshot is None:
            return CatalogState.LOADING
        elif self.snapshot.is_empty:
            return CatalogState.EMPTY
        else:
            return CatalogState.READY

    async def load_all(self) -> List[ElectionRecord]:
        '''Read every election from the ledger, in order of creation.

        :raises CatalogLoadError: If the ledger fails or returns a malformed
            record.
        '''
        try:
            count = await self.ledger.get_election_count()
            _check_count(count)
            records = []
            for election_id in range(count):
                details = await self.ledger.get_election_details(election_id)
                records.append(
                    ElectionRecord.from_details(election_id, details)
                )
        except (LedgerError, MalformedRecord) as exc:
            raise CatalogLoadError(f'failed to load elections: {exc}') from exc
        logger.debug('loaded %d elections', len(records))
        return records

    async def load_one(self, election_id: int) -> ElectionRecord:
        '''Read a single election from the ledger.

        :raises ElectionNotFound: If no such election exists.
        :raises CatalogLoadError: If the ledger fails or returns a malformed
            record.
        '''
        try:
            count = await self.ledger.get_election_count()
            _check_count(count)
            if not 0 <= election_id < count:
                raise ElectionNotFound(election_id, count)
            details = await self.ledger.get_election_details(election_id)
            return ElectionRecord.from_details(election_id, details)
        except (LedgerError, MalformedRecord) as exc:
            raise CatalogLoadError(
                f'failed to load election {election_id}: {exc}'
            ) from exc

    def partition(self,
                  records: List[ElectionRecord],
                  now: Real,
                  ) -> CatalogSnapshot:
        '''Split records into active, ended and flagged elections.

        Ordering within each group follows the input.
        '''
        active, ended, flagged = [], [], []
        for record in records:
            try:
                tally = record_tally(record)
            except InvalidTally as exc:
                logger.warning('hiding election %d: %s', record.id, exc)
                flagged.append(record)
                continue
            status = resolve_status(record, now)
            entry = CatalogEntry(record, status, tally)
            (active if status.active else ended).append(entry)
        return CatalogSnapshot(
            active=tuple(active),
            ended=tuple(ended),
            flagged=tuple(flagged),
            observed_at=now,
        )

    async def refresh(self, now: Optional[Real] = None) -> Optional[CatalogSnapshot]:
        '''Reload all elections and store the new partition.

        If another refresh was started while this one waited for the ledger,
        the result of this one is stale and is dropped; the current snapshot
        is returned instead.

        :param now: Time to partition for; defaults to the clock after the
            load completes.
        :raises CatalogLoadError: If this is the latest refresh and it fails.
        '''
        self._requested += 1
        request = self._requested
        try:
            records = await self.load_all()
        except CatalogLoadError as exc:
            if request != self._requested:
                logger.debug('dropping failure of stale refresh %d', request)
                return self.snapshot
            self._settled = request
            self.last_error = exc
            raise
        if request != self._requested:
            logger.debug('dropping stale refresh %d', request)
            return self.snapshot
        self._settled = request
        self.last_error = None
        self.snapshot = self.partition(
            records, self.clock() if now is None else now
        )
        return self.snapshot


def record_tally(record: ElectionRecord) -> TallyView:
    '''Tally a record, checking that counts match the candidates.

    :raises InvalidTally: If the counts are corrupted.
    '''
    if len(record.vote_counts) != len(record.candidates):
        raise InvalidTally(
            record.vote_counts,
            f'{len(record.vote_counts)} counts for'
            f' {len(record.candidates)} candidates'
        )
    return aggregate(record.vote_counts)


def _check_count(count: Any) -> None:
    if isinstance(count, bool) or not isinstance(count, int) or count < 0:
        raise CatalogLoadError(f'invalid election count: {count!r}')
