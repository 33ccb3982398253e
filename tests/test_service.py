import sys
import os
import asyncio

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))
from votechain.election import ElectionStatus
from votechain.ledger.core import AlreadyVoted, LedgerRejection
from votechain.ledger.memory import InMemoryLedger
from votechain.service import ElectionService
from votechain.validate import (
    DraftValidationError, DraftValidator, ElectionClosed, NoSelection,
    NoWallet, VoteRequest
)

NOW = 1_700_000_000
TITLE = 'Valid Title'
DESCRIPTION = 'A sufficiently long description.'


class RecordingLedger(InMemoryLedger):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.calls = []

    async def create_election(self, *args, **kwargs):
        self.calls.append(('create_election', args, kwargs))
        return await super().create_election(*args, **kwargs)

    async def vote(self, *args, **kwargs):
        self.calls.append(('vote', args, kwargs))
        return await super().vote(*args, **kwargs)


def make_service():
    ledger = RecordingLedger(clock=lambda: NOW)
    service = ElectionService(ledger)
    asyncio.run(service.submit_draft(
        TITLE, DESCRIPTION, ['A', '', 'B'], 24, account='0xcreator'
    ))
    ledger.calls.clear()
    return ledger, service


ACTIVE = ElectionStatus(election_id=0, active=True, n_candidates=2)


def test_submit_draft_creates_election():
    ledger, _ = make_service()
    details = asyncio.run(ledger.get_election_details(0))
    assert details['candidates'] == ['A', 'B']
    assert details['endTime'] == NOW + 24 * 3600


def test_submit_draft_passes_seconds():
    ledger = RecordingLedger(clock=lambda: NOW)
    service = ElectionService(ledger)
    asyncio.run(service.submit_draft(
        TITLE, DESCRIPTION, ['A', 'B'], 2, account='0xcreator'
    ))
    assert ledger.calls == [(
        'create_election',
        (TITLE, DESCRIPTION, ['A', 'B'], 7200),
        {'sender': '0xcreator'},
    )]


def test_invalid_draft_never_reaches_ledger():
    ledger, service = make_service()
    with pytest.raises(DraftValidationError):
        asyncio.run(service.submit_draft(
            'Hi', 'short desc', ['A', 'B'], 10, account='0xcreator'
        ))
    assert ledger.calls == []


def test_draft_needs_account():
    ledger, service = make_service()
    with pytest.raises(NoWallet):
        asyncio.run(service.submit_draft(
            TITLE, DESCRIPTION, ['A', 'B'], 10, account=None
        ))
    assert ledger.calls == []


def test_custom_draft_validator():
    ledger = RecordingLedger(clock=lambda: NOW)
    service = ElectionService(
        ledger, DraftValidator(duration_hours_bounds=(1, 24))
    )
    with pytest.raises(DraftValidationError):
        asyncio.run(service.submit_draft(
            TITLE, DESCRIPTION, ['A', 'B'], 48, account='0xcreator'
        ))


def test_submit_vote():
    ledger, service = make_service()
    request = asyncio.run(service.submit_vote(ACTIVE, 1, '0xvoter'))
    assert request == VoteRequest(0, 1)
    assert asyncio.run(ledger.get_election_details(0))['voteCounts'] == [0, 1]


def test_second_vote_already_voted():
    ledger, service = make_service()
    asyncio.run(service.submit_vote(ACTIVE, 1, '0xvoter'))
    with pytest.raises(AlreadyVoted) as excinfo:
        asyncio.run(service.submit_vote(ACTIVE, 0, '0xvoter'))
    assert excinfo.value.message == 'You have already voted in this election'
    assert isinstance(excinfo.value, LedgerRejection)


def test_other_rejection_passes_through():
    ledger, service = make_service()
    ledger.close_election(0)
    with pytest.raises(LedgerRejection) as excinfo:
        asyncio.run(service.submit_vote(ACTIVE, 1, '0xvoter'))
    assert not isinstance(excinfo.value, AlreadyVoted)


@pytest.mark.parametrize(('status', 'index', 'account', 'error'), [
    (ACTIVE, 0, None, NoWallet),
    (ACTIVE, 0, '', NoWallet),
    (ElectionStatus(0, False, 2), 0, '0xvoter', ElectionClosed),
    (ACTIVE, None, '0xvoter', NoSelection),
])
def test_invalid_vote_never_reaches_ledger(status, index, account, error):
    ledger, service = make_service()
    with pytest.raises(error):
        asyncio.run(service.submit_vote(status, index, account))
    assert ledger.calls == []
