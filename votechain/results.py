'''Election results for display, and their periodic refreshing.'''

from __future__ import annotations

import asyncio
import dataclasses
import enum
import logging
from numbers import Real
from typing import Awaitable, Callable, Optional, Union

from votechain.catalog import CatalogLoadError, ElectionCatalog, record_tally
from votechain.election import ElectionRecord, ElectionStatus, resolve_status
from votechain.tally import (
    InvalidTally, TallyView, WinnerSet, resolve_winners
)

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 10.0

LIVE_LABEL = 'Live Results'
FINAL_LABEL = 'Final Results'


class ZeroVotePolicy(enum.Enum):
    '''How to present winners of an election in which nobody voted.

    ``SHOW`` presents all candidates as tied winners, ``SUPPRESS`` presents
    no winners at all.
    '''
    SHOW = 'show'
    SUPPRESS = 'suppress'


@dataclasses.dataclass(frozen=True)
class ResultsView:
    '''Everything the results page shows for one election.

    :param record: The election snapshot.
    :param status: Its status at the time of observation.
    :param tally: Total votes and percentages.
    :param winners: Candidates with the most votes (computed even for
        running elections).
    :param show_winners: Whether the winners should be announced.
    '''
    record: ElectionRecord
    status: ElectionStatus
    tally: TallyView
    winners: WinnerSet
    show_winners: bool

    @property
    def label(self) -> str:
        return LIVE_LABEL if self.status.active else FINAL_LABEL

    @property
    def max_votes(self) -> int:
        return self.winners.max_votes


def build_results(record: ElectionRecord,
                  now: Real,
                  zero_vote_policy: ZeroVotePolicy = ZeroVotePolicy.SHOW,
                  ) -> ResultsView:
    '''Compute the results view of an election at the given time.

    Winners are announced only once the election has ended.

    :raises InvalidTally: If the vote counts of the record are corrupted.
    '''
    tally = record_tally(record)
    status = resolve_status(record, now)
    winners = resolve_winners(record.candidates, record.vote_counts)
    show = not status.active and len(winners) > 0
    if tally.total_votes == 0 and zero_vote_policy is ZeroVotePolicy.SUPPRESS:
        show = False
    return ResultsView(record, status, tally, winners, show)


def format_votes(n_votes: int) -> str:
    '''Return a vote count with the noun in the right number.'''
    return f'{n_votes} vote' + ('' if n_votes == 1 else 's')


def format_winners(view: ResultsView) -> str:
    '''Return the winner announcement line, e.g. ``A, B - 3 votes``.

    Winners are listed in ballot order.
    '''
    names = [cand for cand in view.record.candidates if cand in view.winners]
    return ', '.join(names) + ' - ' + format_votes(view.max_votes)


ResultsCallback = Callable[[ResultsView], Union[None, Awaitable[None]]]
ErrorCallback = Callable[[Exception], Union[None, Awaitable[None]]]


class ResultsPoller:
    '''Reload the results of one election at a fixed interval.

    The poller runs as an asyncio task between :meth:`start` and
    :meth:`stop`; it can also be used as an async context manager. Only the
    most recently requested load may deliver a result, so a slow response
    never overwrites a newer one.

    :param catalog: Catalog to load the election through.
    :param election_id: Election to watch.
    :param on_update: Called with each new results view.
    :param on_error: Called with load failures; polling continues after
        them.
    :param interval: Seconds between loads.
    :param zero_vote_policy: Winner presentation policy for elections without
        votes.
    '''
    def __init__(self,
                 catalog: ElectionCatalog,
                 election_id: int,
                 on_update: ResultsCallback,
                 on_error: Optional[ErrorCallback] = None,
                 interval: float = DEFAULT_POLL_INTERVAL,
                 zero_vote_policy: ZeroVotePolicy = ZeroVotePolicy.SHOW,
                 ):
        if interval <= 0:
            raise ValueError(f'invalid polling interval: {interval}')
        self.catalog = catalog
        self.election_id = election_id
        self.on_update = on_update
        self.on_error = on_error
        self.interval = interval
        self.zero_vote_policy = zero_vote_policy
        self.latest: Optional[ResultsView] = None
        self._requested = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        '''Start polling in the running event loop.'''
        if self.running:
            return self._task
        self._task = asyncio.get_running_loop().create_task(self._run())
        return self._task

    async def stop(self) -> None:
        '''Stop polling and wait for the task to finish.'''
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug('stopped polling election %d', self.election_id)

    async def refresh(self) -> Optional[ResultsView]:
        '''Load the results now.

        :returns: The view from this load, or the latest view if a newer load
            was requested meanwhile.
        :raises CatalogLoadError: If the load fails and no newer load was
            requested.
        :raises InvalidTally: If the election's vote counts are corrupted.
        '''
        self._requested += 1
        request = self._requested
        try:
            record = await self.catalog.load_one(self.election_id)
        except CatalogLoadError:
            if request != self._requested:
                return self.latest
            raise
        if request != self._requested:
            logger.debug('dropping stale results load %d', request)
            return self.latest
        view = build_results(record, self.catalog.clock(),
                             self.zero_vote_policy)
        self.latest = view
        await _maybe_await(self.on_update(view))
        return view

    async def _run(self) -> None:
        while True:
            try:
                await self.refresh()
            except (CatalogLoadError, InvalidTally) as exc:
                logger.warning('failed to load results of election %d: %s',
                               self.election_id, exc)
                if self.on_error is not None:
                    await _maybe_await(self.on_error(exc))
            await asyncio.sleep(self.interval)

    async def __aenter__(self) -> ResultsPoller:
        self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()


async def _maybe_await(result: Union[None, Awaitable[None]]) -> None:
    if result is not None and hasattr(result, '__await__'):
        await result
