'''Local validation of new elections (drafts) and of vote attempts.

Nothing that fails here is ever sent to the ledger. Draft validation reports
all rule violations at once through a single :class:`DraftValidationError`,
so that a form can show them together; vote validation stops at the first
reason why the vote cannot be cast, raising a subclass of
:class:`VoteRejection`.
'''

from __future__ import annotations

import abc
import dataclasses
from numbers import Real
from typing import Any, List, Optional, Sequence, Tuple

from votechain.election import ElectionStatus
from votechain.persist import simple_serialization

IntBoundsTupleType = Tuple[Optional[int], Optional[int]]

SECONDS_PER_HOUR = 3600


class ValidationError(Exception, metaclass=abc.ABCMeta):
    '''User input does not satisfy the local rules.'''
    pass


class DraftError(ValidationError):
    '''A single rule violated by an election draft.'''
    pass


class LengthError(DraftError):
    '''A text field of the draft is too short or too long.

    :param field: Name of the field.
    :param length: Length of the submitted text.
    :param min_value: Minimum permissible length.
    :param max_value: Maximum permissible length.
    '''
    def __init__(self,
                 field: str,
                 length: int,
                 min_value: Optional[int] = None,
                 max_value: Optional[int] = None,
                 ):
        self.field = field
        self.length = length
        self.min_value = min_value
        self.max_value = max_value
        super().__init__(_bounds_message(
            f'invalid {field} length: {length}', min_value, max_value
        ))


class DurationError(DraftError):
    '''The requested election duration is out of bounds.

    :param hours: The duration requested, in hours.
    :param min_value: Minimum number of hours.
    :param max_value: Maximum number of hours.
    '''
    def __init__(self,
                 hours: Any,
                 min_value: Optional[int] = None,
                 max_value: Optional[int] = None,
                 ):
        self.hours = hours
        self.min_value = min_value
        self.max_value = max_value
        super().__init__(_bounds_message(
            f'invalid duration: {hours} hours', min_value, max_value
        ))


class CandidateCountError(DraftError):
    '''Too few candidates remain after dropping blank entries.

    :param count: Number of non-blank candidates.
    :param minimum: Number of candidates required.
    '''
    def __init__(self, count: int, minimum: int):
        self.count = count
        self.minimum = minimum
        super().__init__(
            f'at least {minimum} candidates are required, got {count}'
        )


class DuplicateCandidateError(DraftError):
    '''Some candidate names appear more than once.

    :param names: The repeated names.
    '''
    def __init__(self, names: Sequence[str]):
        self.names = list(names)
        super().__init__('duplicate candidates: ' + ', '.join(self.names))


class CandidateNameError(DraftError):
    '''A candidate name is too long.

    :param name: The offending name.
    :param max_length: Maximum name length.
    '''
    def __init__(self, name: str, max_length: int):
        self.name = name
        self.max_length = max_length
        super().__init__(
            f'candidate name too long ({len(name)} > {max_length}): {name}'
        )


class DraftValidationError(ValidationError):
    '''An election draft violates one or more rules.

    :param violations: All rules the draft violates.
    '''
    def __init__(self, violations: List[DraftError]):
        self.violations = violations
        super().__init__(
            'invalid election draft: '
            + '; '.join(str(violation) for violation in violations)
        )


class VoteRejection(ValidationError):
    '''A vote cannot be cast.'''
    message: str = 'the vote cannot be cast'

    def __init__(self, election_id: Optional[int] = None):
        self.election_id = election_id
        super().__init__(self.message)


class NoWallet(VoteRejection):
    '''No account is connected to cast the vote from.'''
    message = 'connect your wallet first'


class ElectionClosed(VoteRejection):
    '''The election no longer accepts votes.'''
    message = 'this election has ended'


class NoSelection(VoteRejection):
    '''No candidate was chosen.'''
    message = 'select a candidate to vote for'


class InvalidSelection(VoteRejection):
    '''The chosen candidate index is not on the ballot.'''
    message = 'the selected candidate does not exist'


class BoundsChecker:
    '''A helper class to check if a value is in a specified range.

    :param bounds: A tuple with lower and upper bounds (inclusive) for the
        value to be checked. None means the respective bound is not checked.
    '''
    def __init__(self, bounds: IntBoundsTupleType = (None, None)):
        self.min_value, self.max_value = bounds

    def is_valid(self, value: Real) -> bool:
        '''Return True if the value is within the given range.'''
        return (
            (self.min_value is None or value >= self.min_value)
            and (self.max_value is None or value <= self.max_value)
        )


@dataclasses.dataclass(frozen=True)
class ValidDraft:
    '''An election draft that passed validation, ready for the ledger.

    :param title: Election title, stripped of surrounding whitespace.
    :param description: Election description, stripped likewise.
    :param candidates: Non-blank candidate names in the order entered.
    :param duration_hours: Requested election duration in hours.
    '''
    title: str
    description: str
    candidates: Tuple[str, ...]
    duration_hours: Real

    @property
    def duration_seconds(self) -> int:
        return int(self.duration_hours * SECONDS_PER_HOUR)


@dataclasses.dataclass(frozen=True)
class VoteRequest:
    '''A vote that passed local checks, ready for the ledger.'''
    election_id: int
    candidate_index: int


@simple_serialization
class DraftValidator:
    '''Validate a new election before it is submitted to the ledger.

    Text lengths are measured after stripping surrounding whitespace. Blank
    candidate entries are dropped silently before counting.

    :param title_length_bounds: Minimum and maximum title length.
    :param description_length_bounds: Minimum and maximum description length.
    :param min_candidates: Minimum number of non-blank candidates.
    :param max_candidate_length: Maximum length of a single candidate name.
        None means unlimited.
    :param duration_hours_bounds: Minimum and maximum election duration in
        hours.
    '''
    def __init__(self,
                 title_length_bounds: IntBoundsTupleType = (3, 100),
                 description_length_bounds: IntBoundsTupleType = (10, 500),
                 min_candidates: int = 2,
                 max_candidate_length: Optional[int] = 100,
                 duration_hours_bounds: IntBoundsTupleType = (1, 720),
                 ):
        self.title_length_bounds = tuple(title_length_bounds)
        self.description_length_bounds = tuple(description_length_bounds)
        self.min_candidates = min_candidates
        self.max_candidate_length = max_candidate_length
        self.duration_hours_bounds = tuple(duration_hours_bounds)
        self._title_checker = BoundsChecker(self.title_length_bounds)
        self._description_checker = BoundsChecker(
            self.description_length_bounds
        )
        self._duration_checker = BoundsChecker(self.duration_hours_bounds)

    @classmethod
    def from_limits(cls, limits: Any) -> DraftValidator:
        '''Create a validator from configured draft limits.

        :param limits: A :class:`votechain.config.DraftLimits` object.
        '''
        return cls(
            title_length_bounds=(limits.title_min, limits.title_max),
            description_length_bounds=(
                limits.description_min, limits.description_max
            ),
            min_candidates=limits.min_candidates,
            max_candidate_length=limits.max_candidate_length,
            duration_hours_bounds=(limits.duration_min, limits.duration_max),
        )

    def validate(self,
                 title: str,
                 description: str,
                 candidates: Sequence[str],
                 duration_hours: Real,
                 ) -> ValidDraft:
        '''Check the draft against all rules.

        :returns: The cleaned draft.
        :raises DraftValidationError: Listing every violated rule.
        '''
        violations: List[DraftError] = []
        title = title.strip()
        description = description.strip()
        if not self._title_checker.is_valid(len(title)):
            violations.append(LengthError('title', len(title),
                                          *self.title_length_bounds))
        if not self._description_checker.is_valid(len(description)):
            violations.append(LengthError('description', len(description),
                                          *self.description_length_bounds))
        names = [cand.strip() for cand in candidates if cand.strip()]
        violations.extend(self._check_candidates(names))
        if not _is_hours(duration_hours) or not self._duration_checker.is_valid(
            duration_hours
        ):
            violations.append(DurationError(duration_hours,
                                            *self.duration_hours_bounds))
        if violations:
            raise DraftValidationError(violations)
        return ValidDraft(
            title=title,
            description=description,
            candidates=tuple(names),
            duration_hours=duration_hours,
        )

    def _check_candidates(self, names: List[str]) -> List[DraftError]:
        violations = []
        if len(names) < self.min_candidates:
            violations.append(
                CandidateCountError(len(names), self.min_candidates)
            )
        duplicates = []
        for i, name in enumerate(names):
            if name in names[:i] and name not in duplicates:
                duplicates.append(name)
        if duplicates:
            violations.append(DuplicateCandidateError(duplicates))
        if self.max_candidate_length is not None:
            for name in names:
                if len(name) > self.max_candidate_length:
                    violations.append(
                        CandidateNameError(name, self.max_candidate_length)
                    )
        return violations


DEFAULT_DRAFT_VALIDATOR = DraftValidator()


def validate_draft(title: str,
                   description: str,
                   candidates: Sequence[str],
                   duration_hours: Real,
                   ) -> ValidDraft:
    '''Validate a draft under the default rules.

    See :meth:`DraftValidator.validate`.
    '''
    return DEFAULT_DRAFT_VALIDATOR.validate(
        title, description, candidates, duration_hours
    )


def validate_vote(status: ElectionStatus,
                  selected_index: Optional[int],
                  has_wallet: bool,
                  ) -> VoteRequest:
    '''Check that a vote can be submitted to the ledger.

    Whether the account already voted is only known to the ledger and is
    not checked here.

    :param status: Current status of the election voted in.
    :param selected_index: Position of the chosen candidate, None if no
        candidate was chosen.
    :param has_wallet: Whether an account is connected.
    :raises NoWallet: If no account is connected.
    :raises ElectionClosed: If the election does not accept votes.
    :raises NoSelection: If no candidate was chosen.
    :raises InvalidSelection: If the index is not on the ballot.
    '''
    if not has_wallet:
        raise NoWallet(status.election_id)
    if not status.active:
        raise ElectionClosed(status.election_id)
    if selected_index is None:
        raise NoSelection(status.election_id)
    if (
        isinstance(selected_index, bool)
        or not isinstance(selected_index, int)
        or selected_index < 0
        or selected_index >= status.n_candidates
    ):
        raise InvalidSelection(status.election_id)
    return VoteRequest(status.election_id, selected_index)


def _is_hours(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def _bounds_message(message: str,
                    min_value: Optional[int],
                    max_value: Optional[int],
                    ) -> str:
    parts = []
    if min_value is not None:
        parts.append(f'>={min_value}')
    if max_value is not None:
        parts.append(f'<={max_value}')
    if parts:
        message += ', must be ' + ' and '.join(parts)
    return message
