'''Vote tallies and winner resolution for single-choice elections.

Vote counts are positional: ``vote_counts[i]`` is the number of votes cast for
the ``i``-th candidate. Totals are exact Python integers; percentages are only
a display aid and are rounded per candidate, so they need not add up to
exactly 100.
'''

from __future__ import annotations

import dataclasses
import decimal
import logging
from decimal import Decimal
from typing import Any, Sequence, Tuple

logger = logging.getLogger(__name__)

PERCENT_PLACES = Decimal('0.1')


class InvalidTally(Exception):
    '''Vote counts cannot be tallied.

    This signals corrupted data coming from the ledger, not a user error.

    :param counts: The offending vote counts.
    :param problem: What is wrong with them.
    '''
    def __init__(self, counts: Any, problem: str):
        self.counts = counts
        self.problem = problem
        super().__init__(f'invalid tally {counts!r}: {problem}')


@dataclasses.dataclass(frozen=True)
class TallyView:
    '''Aggregated votes of one election.

    :param total_votes: Sum of all vote counts.
    :param percentages: Share of each candidate in percent, rounded to one
        decimal place; all zero when no votes were cast.
    '''
    total_votes: int
    percentages: Tuple[float, ...]


class WinnerSet(frozenset):
    '''Candidates sharing the highest vote count.

    More than one member means the candidates are co-winners; ties are never
    broken. ``max_votes`` holds the winning vote count.
    '''
    max_votes: int = 0

    def __new__(cls, candidates=(), max_votes: int = 0):
        winners = super().__new__(cls, candidates)
        winners.max_votes = max_votes
        return winners

    def __repr__(self) -> str:
        return f'WinnerSet({sorted(self)!r}, max_votes={self.max_votes})'

    @property
    def is_tie(self) -> bool:
        return len(self) > 1


def check_counts(vote_counts: Sequence[int]) -> None:
    '''Check that vote counts are a non-empty sequence of natural numbers.

    :raises InvalidTally: If they are not.
    '''
    if len(vote_counts) == 0:
        raise InvalidTally(vote_counts, 'no vote counts')
    for count in vote_counts:
        if isinstance(count, bool) or not isinstance(count, int):
            raise InvalidTally(vote_counts, f'non-integer count {count!r}')
        if count < 0:
            raise InvalidTally(vote_counts, f'negative count {count}')


def percentage(votes: int, total: int) -> float:
    '''Return the share of votes in total, in percent to one decimal place.

    Halves are rounded away from zero. Zero is returned for a zero total.
    '''
    if total == 0:
        return 0.0
    with decimal.localcontext() as ctx:
        # enough digits to keep ledger-sized integers exact
        ctx.prec = max(28, len(str(total)) + len(str(votes)) + 4)
        share = Decimal(votes * 100) / Decimal(total)
        return float(share.quantize(PERCENT_PLACES, decimal.ROUND_HALF_UP))


def aggregate(vote_counts: Sequence[int]) -> TallyView:
    '''Sum vote counts into a total and per-candidate percentages.

    :param vote_counts: Votes per candidate.
    :raises InvalidTally: If the counts are empty or contain a negative or
        non-integer value.
    '''
    check_counts(vote_counts)
    total = sum(vote_counts)
    return TallyView(
        total_votes=total,
        percentages=tuple(percentage(count, total) for count in vote_counts),
    )


def resolve_winners(candidates: Sequence[str],
                    vote_counts: Sequence[int],
                    ) -> WinnerSet:
    '''Return all candidates with the maximum number of votes.

    With no votes cast at all, every candidate is tied at zero and returned;
    whether to present that as a win is up to the caller.

    :param candidates: Candidate names in ballot order.
    :param vote_counts: Votes per candidate, aligned with candidates.
    :raises InvalidTally: If the counts are invalid or do not match the
        candidates.
    '''
    check_counts(vote_counts)
    if len(candidates) != len(vote_counts):
        raise InvalidTally(
            vote_counts,
            f'{len(vote_counts)} counts for {len(candidates)} candidates'
        )
    max_votes = max(vote_counts)
    winners = WinnerSet(
        [cand for cand, count in zip(candidates, vote_counts)
         if count == max_votes],
        max_votes=max_votes,
    )
    if winners.is_tie:
        logger.debug('%d candidates tied at %d votes', len(winners), max_votes)
    return winners
