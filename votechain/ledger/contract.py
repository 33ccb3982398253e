'''Ledger adapter over the EVM voting contract, using web3.

Transactions are sent from an account unlocked on the node (or its wallet
middleware); this module never touches private keys.
'''

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional, Sequence

from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.exceptions import ContractLogicError, Web3Exception

from votechain.election import DETAIL_FIELDS
from votechain.ledger.core import (
    Ledger, LedgerRejection, LedgerUnavailable, classify_rejection
)

logger = logging.getLogger(__name__)

REVERT_PREFIX = 'execution reverted:'

VOTING_CONTRACT_ABI = [
    {
        'inputs': [],
        'name': 'getElectionCount',
        'outputs': [{'internalType': 'uint256', 'name': '', 'type': 'uint256'}],
        'stateMutability': 'view',
        'type': 'function',
    },
    {
        'inputs': [
            {'internalType': 'uint256', 'name': '_electionId', 'type': 'uint256'},
        ],
        'name': 'getElectionDetails',
        'outputs': [
            {'internalType': 'string', 'name': 'title', 'type': 'string'},
            {'internalType': 'string', 'name': 'description', 'type': 'string'},
            {'internalType': 'string[]', 'name': 'candidates', 'type': 'string[]'},
            {'internalType': 'uint256[]', 'name': 'voteCounts', 'type': 'uint256[]'},
            {'internalType': 'uint256', 'name': 'endTime', 'type': 'uint256'},
            {'internalType': 'bool', 'name': 'active', 'type': 'bool'},
        ],
        'stateMutability': 'view',
        'type': 'function',
    },
    {
        'inputs': [
            {'internalType': 'string', 'name': '_title', 'type': 'string'},
            {'internalType': 'string', 'name': '_description', 'type': 'string'},
            {'internalType': 'string[]', 'name': '_candidates', 'type': 'string[]'},
            {'internalType': 'uint256', 'name': '_duration', 'type': 'uint256'},
        ],
        'name': 'createElection',
        'outputs': [],
        'stateMutability': 'nonpayable',
        'type': 'function',
    },
    {
        'inputs': [
            {'internalType': 'uint256', 'name': '_electionId', 'type': 'uint256'},
            {'internalType': 'uint256', 'name': '_candidateIndex', 'type': 'uint256'},
        ],
        'name': 'vote',
        'outputs': [],
        'stateMutability': 'nonpayable',
        'type': 'function',
    },
]

# web3 6 raises JSON-RPC error responses as plain ValueError
TRANSPORT_ERRORS = (Web3Exception, ValueError, OSError, asyncio.TimeoutError)


class ContractLedger(Ledger):
    '''The voting contract as a ledger.

    :param w3: Connected web3 client.
    :param contract: Contract object bound to the voting contract address.
    :param default_sender: Account to send transactions from when the caller
        does not name one.
    '''
    def __init__(self,
                 w3: AsyncWeb3,
                 contract: Any,
                 default_sender: Optional[str] = None,
                 ):
        self.w3 = w3
        self.contract = contract
        self.default_sender = default_sender

    @classmethod
    def connect(cls,
                rpc_url: str,
                contract_address: str,
                default_sender: Optional[str] = None,
                ) -> ContractLedger:
        '''Create a ledger talking to a JSON-RPC node over HTTP.'''
        w3 = AsyncWeb3(AsyncHTTPProvider(rpc_url))
        contract = w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(contract_address),
            abi=VOTING_CONTRACT_ABI,
        )
        return cls(w3, contract, default_sender)

    async def get_election_count(self) -> int:
        return await self._call(self.contract.functions.getElectionCount())

    async def get_election_details(self, election_id: int) -> Dict[str, Any]:
        result = await self._call(
            self.contract.functions.getElectionDetails(election_id)
        )
        return dict(zip(DETAIL_FIELDS, result))

    async def create_election(self,
                              title: str,
                              description: str,
                              candidates: Sequence[str],
                              duration_seconds: int,
                              sender: Optional[str] = None,
                              ) -> Any:
        return await self._transact(
            self.contract.functions.createElection(
                title, description, list(candidates), duration_seconds
            ),
            sender,
        )

    async def vote(self,
                   election_id: int,
                   candidate_index: int,
                   sender: Optional[str] = None,
                   ) -> Any:
        return await self._transact(
            self.contract.functions.vote(election_id, candidate_index),
            sender,
        )

    async def _call(self, function: Any) -> Any:
        try:
            return await function.call()
        except ContractLogicError as exc:
            raise classify_rejection(revert_reason(exc)) from exc
        except TRANSPORT_ERRORS as exc:
            raise LedgerUnavailable(f'contract call failed: {exc}') from exc

    async def _transact(self, function: Any, sender: Optional[str]) -> Any:
        tx_params = {}
        sender = sender or self.default_sender
        if sender is not None:
            tx_params['from'] = sender
        try:
            tx_hash = await function.transact(tx_params)
            logger.info('transaction %s submitted', _hex(tx_hash))
            receipt = await self.w3.eth.wait_for_transaction_receipt(tx_hash)
        except ContractLogicError as exc:
            raise classify_rejection(revert_reason(exc)) from exc
        except TRANSPORT_ERRORS as exc:
            raise LedgerUnavailable(f'transaction failed: {exc}') from exc
        if receipt['status'] == 0:
            raise LedgerRejection(f'transaction {_hex(tx_hash)} reverted')
        return receipt


def revert_reason(exc: ContractLogicError) -> str:
    '''Extract the reason string from a contract revert.'''
    message = getattr(exc, 'message', None) or str(exc)
    if message.startswith(REVERT_PREFIX):
        message = message[len(REVERT_PREFIX):]
    return message.strip()


def _hex(tx_hash: Any) -> str:
    return tx_hash.hex() if hasattr(tx_hash, 'hex') else str(tx_hash)
