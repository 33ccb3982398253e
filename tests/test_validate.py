import sys
import os

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))
import votechain.validate
from votechain.election import ElectionStatus
from votechain.validate import (
    CandidateCountError,
    CandidateNameError,
    DraftValidationError,
    DuplicateCandidateError,
    DurationError,
    ElectionClosed,
    InvalidSelection,
    LengthError,
    NoSelection,
    NoWallet,
    ValidationError,
    VoteRejection,
)

TITLE = 'Valid Title'
DESCRIPTION = 'A sufficiently long description.'


def violation_types(excinfo):
    return [type(violation) for violation in excinfo.value.violations]


def test_draft_title_too_short():
    with pytest.raises(DraftValidationError) as excinfo:
        votechain.validate.validate_draft('Hi', 'short desc', ['A', 'B'], 10)
    assert violation_types(excinfo) == [LengthError]
    assert excinfo.value.violations[0].field == 'title'


def test_draft_blank_candidates_dropped():
    draft = votechain.validate.validate_draft(
        TITLE, DESCRIPTION, ['A', 'B', ''], 24
    )
    assert draft.candidates == ('A', 'B')
    assert draft.duration_seconds == 24 * 3600


def test_draft_candidates_trimmed():
    draft = votechain.validate.validate_draft(
        TITLE, DESCRIPTION, ['  A ', '\tB', '   '], 1
    )
    assert draft.candidates == ('A', 'B')


def test_draft_text_stripped():
    draft = votechain.validate.validate_draft(
        '  ' + TITLE + '  ', DESCRIPTION + '\n', ['A', 'B'], 1
    )
    assert draft.title == TITLE
    assert draft.description == DESCRIPTION


@pytest.mark.parametrize(('title', 'valid'), [
    ('abc', True),
    ('ab', False),
    ('   ab   ', False),
    ('x' * 100, True),
    ('x' * 101, False),
])
def test_draft_title_bounds(title, valid):
    if valid:
        votechain.validate.validate_draft(title, DESCRIPTION, ['A', 'B'], 1)
    else:
        with pytest.raises(DraftValidationError):
            votechain.validate.validate_draft(title, DESCRIPTION, ['A', 'B'], 1)


@pytest.mark.parametrize(('description', 'valid'), [
    ('x' * 10, True),
    ('x' * 9, False),
    ('x' * 500, True),
    ('x' * 501, False),
])
def test_draft_description_bounds(description, valid):
    if valid:
        votechain.validate.validate_draft(TITLE, description, ['A', 'B'], 1)
    else:
        with pytest.raises(DraftValidationError):
            votechain.validate.validate_draft(TITLE, description, ['A', 'B'], 1)


@pytest.mark.parametrize(('hours', 'valid'), [
    (1, True),
    (720, True),
    (0, False),
    (721, False),
    (-5, False),
    (1.5, True),
    (True, False),
    ('24', False),
])
def test_draft_duration_bounds(hours, valid):
    if valid:
        draft = votechain.validate.validate_draft(
            TITLE, DESCRIPTION, ['A', 'B'], hours
        )
        assert draft.duration_seconds == int(hours * 3600)
    else:
        with pytest.raises(DraftValidationError) as excinfo:
            votechain.validate.validate_draft(
                TITLE, DESCRIPTION, ['A', 'B'], hours
            )
        assert violation_types(excinfo) == [DurationError]


@pytest.mark.parametrize('candidates', [
    [],
    ['A'],
    ['A', ''],
    ['A', '  ', '\n'],
])
def test_draft_too_few_candidates(candidates):
    with pytest.raises(DraftValidationError) as excinfo:
        votechain.validate.validate_draft(TITLE, DESCRIPTION, candidates, 24)
    assert violation_types(excinfo) == [CandidateCountError]


def test_draft_duplicate_candidates():
    with pytest.raises(DraftValidationError) as excinfo:
        votechain.validate.validate_draft(
            TITLE, DESCRIPTION, ['A', 'B', ' A', 'B', 'C'], 24
        )
    assert violation_types(excinfo) == [DuplicateCandidateError]
    assert excinfo.value.violations[0].names == ['A', 'B']


def test_draft_candidate_name_too_long():
    with pytest.raises(DraftValidationError) as excinfo:
        votechain.validate.validate_draft(
            TITLE, DESCRIPTION, ['A', 'B' * 101], 24
        )
    assert violation_types(excinfo) == [CandidateNameError]


def test_draft_reports_all_violations():
    with pytest.raises(DraftValidationError) as excinfo:
        votechain.validate.validate_draft('Hi', 'short', ['A', ''], 1000)
    assert violation_types(excinfo) == [
        LengthError, LengthError, CandidateCountError, DurationError,
    ]
    assert isinstance(excinfo.value, ValidationError)
    assert 'title' in str(excinfo.value)


def test_custom_validator():
    validator = votechain.validate.DraftValidator(
        title_length_bounds=(1, None),
        min_candidates=3,
        max_candidate_length=None,
        duration_hours_bounds=(1, 168),
    )
    validator.validate('X', DESCRIPTION, ['A', 'B', 'C' * 500], 168)
    with pytest.raises(DraftValidationError) as excinfo:
        validator.validate('X', DESCRIPTION, ['A', 'B'], 169)
    assert violation_types(excinfo) == [CandidateCountError, DurationError]


def test_length_error_message():
    error = LengthError('title', 2, 3, 100)
    assert str(error) == 'invalid title length: 2, must be >=3 and <=100'


ACTIVE = ElectionStatus(election_id=7, active=True, n_candidates=3)
CLOSED = ElectionStatus(election_id=7, active=False, n_candidates=3)


def test_vote_closed():
    with pytest.raises(ElectionClosed):
        votechain.validate.validate_vote(CLOSED, 0, True)


def test_vote_no_selection():
    with pytest.raises(NoSelection):
        votechain.validate.validate_vote(ACTIVE, None, True)


def test_vote_no_wallet_checked_first():
    with pytest.raises(NoWallet):
        votechain.validate.validate_vote(CLOSED, None, False)


def test_vote_closed_before_selection():
    with pytest.raises(ElectionClosed):
        votechain.validate.validate_vote(CLOSED, None, True)


@pytest.mark.parametrize('index', [-1, 3, True, '1'])
def test_vote_invalid_selection(index):
    with pytest.raises(InvalidSelection):
        votechain.validate.validate_vote(ACTIVE, index, True)


def test_vote_index_past_ballot():
    status = ElectionStatus(election_id=1, active=True, n_candidates=2)
    assert votechain.validate.validate_vote(status, 1, True).candidate_index == 1
    with pytest.raises(InvalidSelection):
        votechain.validate.validate_vote(status, 2, True)


def test_status_requires_candidate_count():
    with pytest.raises(TypeError):
        ElectionStatus(election_id=1, active=True)


def test_vote_ok():
    request = votechain.validate.validate_vote(ACTIVE, 2, True)
    assert request == votechain.validate.VoteRequest(7, 2)


def test_vote_rejection_message():
    error = NoSelection(7)
    assert isinstance(error, VoteRejection)
    assert error.election_id == 7
    assert str(error) == NoSelection.message
