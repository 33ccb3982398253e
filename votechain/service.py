'''The write path: creating elections and casting votes.

Input is validated locally first; only valid requests reach the ledger.
'''

from __future__ import annotations

import logging
from numbers import Real
from typing import Any, Optional, Sequence

from votechain.election import ElectionStatus
from votechain.ledger.core import (
    AlreadyVoted, Ledger, LedgerRejection, classify_rejection
)
from votechain.validate import (
    DEFAULT_DRAFT_VALIDATOR, DraftValidator, NoWallet, ValidDraft,
    VoteRequest, validate_vote
)

logger = logging.getLogger(__name__)


class ElectionService:
    '''Submit new elections and votes to a ledger.

    :param ledger: The ledger to write to.
    :param draft_validator: Rules for new elections.
    '''
    def __init__(self,
                 ledger: Ledger,
                 draft_validator: DraftValidator = DEFAULT_DRAFT_VALIDATOR,
                 ):
        self.ledger = ledger
        self.draft_validator = draft_validator

    async def submit_draft(self,
                           title: str,
                           description: str,
                           candidates: Sequence[str],
                           duration_hours: Real,
                           account: Optional[str],
                           ) -> Any:
        '''Validate a new election and create it on the ledger.

        :returns: Whatever the ledger confirms the creation with.
        :raises NoWallet: If no account is given.
        :raises DraftValidationError: If the draft breaks any rule.
        :raises LedgerError: If the ledger fails or refuses.
        '''
        if not account:
            raise NoWallet()
        draft = self.draft_validator.validate(
            title, description, candidates, duration_hours
        )
        return await self.create(draft, account)

    async def create(self, draft: ValidDraft, account: str) -> Any:
        logger.info('creating election %r with %d candidates for %d hours',
                    draft.title, len(draft.candidates), draft.duration_hours)
        return await self.ledger.create_election(
            draft.title,
            draft.description,
            list(draft.candidates),
            draft.duration_seconds,
            sender=account,
        )

    async def submit_vote(self,
                          status: ElectionStatus,
                          selected_index: Optional[int],
                          account: Optional[str],
                          ) -> VoteRequest:
        '''Check a vote and cast it on the ledger.

        :returns: The vote request that the ledger accepted.
        :raises VoteRejection: If the vote fails the local checks.
        :raises AlreadyVoted: If the ledger reports a repeated vote.
        :raises LedgerError: If the ledger fails or refuses otherwise.
        '''
        request = validate_vote(status, selected_index, bool(account))
        await self.cast(request, account)
        return request

    async def cast(self, request: VoteRequest, account: str) -> Any:
        logger.info('casting vote in election %d for candidate %d',
                    request.election_id, request.candidate_index)
        try:
            return await self.ledger.vote(
                request.election_id, request.candidate_index, sender=account
            )
        except AlreadyVoted:
            logger.warning('%s already voted in election %d',
                           account, request.election_id)
            raise
        except LedgerRejection as exc:
            rejection = classify_rejection(exc.reason)
            if isinstance(rejection, AlreadyVoted):
                logger.warning('%s already voted in election %d',
                               account, request.election_id)
                raise rejection from exc
            raise
