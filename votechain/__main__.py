"""A commandline client for browsing elections, voting and creating elections.

Works either on a local JSON ledger file or on a voting contract reachable
through a JSON-RPC node.
"""

import argparse
import asyncio
import json
import logging
import os
import sys
import time
from typing import Any, Dict, List, Optional, TextIO

import votechain.persist
from votechain.catalog import (
    CatalogLoadError, CatalogState, ElectionCatalog
)
from votechain.config import ConfigError, VotechainSettings, load_settings
from votechain.election import resolve_status
from votechain.ledger.core import AlreadyVoted, Ledger, LedgerError
from votechain.ledger.memory import InMemoryLedger
from votechain.results import (
    ResultsPoller, ResultsView, build_results, format_votes, format_winners
)
from votechain.service import ElectionService
from votechain.tally import InvalidTally
from votechain.validate import (
    DraftValidationError, DraftValidator, ValidationError
)

logger = logging.getLogger(__name__)

argparser = argparse.ArgumentParser(
    prog='votechain',
    description=__doc__,
    formatter_class=argparse.ArgumentDefaultsHelpFormatter,
)
argparser.add_argument(
    '-l', '--ledger-file',
    help='JSON file holding a local ledger (created when missing)',
)
argparser.add_argument(
    '--rpc-url',
    help='JSON-RPC node URL of the chain with the voting contract',
)
argparser.add_argument(
    '--contract-address',
    help='address of the voting contract',
)
argparser.add_argument(
    '-a', '--account',
    help='account to create elections and vote from',
)
argparser.add_argument(
    '-v', '--verbose',
    action='store_true',
    help='show all log messages',
)
argparser.add_argument(
    '-q', '--quiet',
    action='store_true',
    help='show only warnings and errors',
)
subparsers = argparser.add_subparsers(dest='command', required=True)

list_parser = subparsers.add_parser('list', help='list active and ended elections')
list_parser.add_argument(
    '--json',
    action='store_true',
    help='print the loaded election records as JSON',
)

results_parser = subparsers.add_parser('results', help='show election results')
results_parser.add_argument('election_id', type=int)
results_parser.add_argument(
    '-w', '--watch',
    action='store_true',
    help='keep reloading the results until interrupted',
)

vote_parser = subparsers.add_parser('vote', help='vote in an election')
vote_parser.add_argument('election_id', type=int)
vote_parser.add_argument(
    'candidate_index',
    type=int,
    nargs='?',
    help='zero-based position of the chosen candidate',
)

create_parser = subparsers.add_parser('create', help='create an election')
create_parser.add_argument('-t', '--title', required=True)
create_parser.add_argument('-d', '--description', required=True)
create_parser.add_argument(
    '-c', '--candidate',
    action='append',
    default=[],
    help='candidate name; repeat for every candidate',
)
create_parser.add_argument(
    '-H', '--hours',
    type=float,
    default=24,
    help='election duration in hours',
)
create_parser.add_argument(
    '-r', '--rules',
    type=argparse.FileType('r', encoding='utf8'),
    help='JSON file with draft rules as printed by the rules command',
)

subparsers.add_parser(
    'rules',
    help='print the configured draft rules as JSON',
)


def main(argv: Optional[List[str]] = None) -> int:
    args = argparser.parse_args(argv)
    try:
        settings = load_settings(**_overrides(args))
    except ConfigError as e:
        print(e, file=sys.stderr)
        return 2
    logging.basicConfig(
        level=(
            logging.DEBUG if args.verbose
            else (logging.WARNING if args.quiet else settings.log_level)
        ),
        format='%(levelname)-10s %(message)s'
    )
    ledger = open_ledger(settings, args.ledger_file)
    try:
        code = asyncio.run(COMMANDS[args.command](ledger, settings, args))
    except KeyboardInterrupt:
        code = 130
    if isinstance(ledger, InMemoryLedger) and args.ledger_file:
        with open(args.ledger_file, 'w', encoding='utf8') as outfile:
            ledger.dump(outfile)
    return code


def open_ledger(settings: VotechainSettings,
                ledger_file: Optional[str] = None,
                ) -> Ledger:
    """Open the ledger selected by the settings or the local file."""
    if settings.rpc_url is not None:
        from votechain.ledger.contract import ContractLedger
        return ContractLedger.connect(
            str(settings.rpc_url), settings.contract_address, settings.account
        )
    elif ledger_file and os.path.exists(ledger_file):
        with open(ledger_file, encoding='utf8') as infile:
            return InMemoryLedger.load(infile)
    else:
        return InMemoryLedger()


async def run_list(ledger: Ledger,
                   settings: VotechainSettings,
                   args: argparse.Namespace,
                   ) -> int:
    catalog = ElectionCatalog(ledger)
    try:
        snapshot = await catalog.refresh()
    except CatalogLoadError as e:
        print(f'Failed to load elections: {e}', file=sys.stderr)
        return 1
    if args.json:
        print(json.dumps([
            votechain.persist.to_dict(entry.record)
            for entry in snapshot.active + snapshot.ended
        ], indent=2))
        return 0
    if catalog.state is CatalogState.EMPTY:
        print('No elections yet')
        return 0
    for heading, entries in (('Active elections', snapshot.active),
                             ('Ended elections', snapshot.ended)):
        if not entries:
            continue
        print(heading)
        for entry in entries:
            record = entry.record
            print(f'{record.id:>6}  {record.title}'
                  f'  ({format_votes(entry.tally.total_votes)},'
                  f' ends {_format_time(record.end_time)})')
    if snapshot.flagged:
        print(f'{len(snapshot.flagged)} elections hidden due to corrupted'
              ' vote counts', file=sys.stderr)
    return 0


async def run_results(ledger: Ledger,
                      settings: VotechainSettings,
                      args: argparse.Namespace,
                      ) -> int:
    catalog = ElectionCatalog(ledger)
    if args.watch:
        poller = ResultsPoller(
            catalog,
            args.election_id,
            on_update=show_results,
            on_error=lambda e: print(f'Failed to load results: {e}',
                                     file=sys.stderr),
            interval=settings.poll_interval_seconds,
            zero_vote_policy=settings.zero_vote_winners,
        )
        async with poller:
            while True:
                await asyncio.sleep(3600)
    try:
        record = await catalog.load_one(args.election_id)
        view = build_results(record, catalog.clock(),
                             settings.zero_vote_winners)
    except (CatalogLoadError, InvalidTally) as e:
        print(f'Failed to load election results: {e}', file=sys.stderr)
        return 1
    show_results(view)
    return 0


def show_results(view: ResultsView) -> None:
    print()
    print(f'{view.record.title} [{view.label}]')
    print(view.record.description)
    if view.show_winners:
        label = 'Winners' if view.winners.is_tie else 'Winner'
        print(f'{label}: {format_winners(view)}')
    n_just_chars = len(max(view.record.candidates, key=len))
    for i, cand in enumerate(view.record.candidates):
        votes = view.record.vote_counts[i]
        print(f'{i:>3}  {cand.ljust(n_just_chars)}  {format_votes(votes)}'
              f' ({view.tally.percentages[i]}%)')
    print(f'Total: {format_votes(view.tally.total_votes)}')


async def run_vote(ledger: Ledger,
                   settings: VotechainSettings,
                   args: argparse.Namespace,
                   ) -> int:
    catalog = ElectionCatalog(ledger)
    service = ElectionService(ledger)
    try:
        record = await catalog.load_one(args.election_id)
    except CatalogLoadError as e:
        print(f'Failed to load election details: {e}', file=sys.stderr)
        return 1
    status = resolve_status(record, catalog.clock())
    try:
        await service.submit_vote(status, args.candidate_index,
                                  settings.account)
    except ValidationError as e:
        print(f'Cannot vote: {e}', file=sys.stderr)
        return 1
    except AlreadyVoted as e:
        print(e.message, file=sys.stderr)
        return 1
    except LedgerError as e:
        logger.debug('vote failed', exc_info=True)
        print(f'Failed to cast vote: {e}', file=sys.stderr)
        return 1
    print('Vote cast successfully!')
    return 0


async def run_create(ledger: Ledger,
                     settings: VotechainSettings,
                     args: argparse.Namespace,
                     ) -> int:
    if args.rules is None:
        validator = DraftValidator.from_limits(settings.draft)
    else:
        try:
            with args.rules:
                validator = load_rules(args.rules)
        except ValueError as e:
            print(f'Invalid draft rules: {e}', file=sys.stderr)
            return 2
    service = ElectionService(ledger, validator)
    try:
        await service.submit_draft(args.title, args.description,
                                   args.candidate, _hours(args.hours),
                                   settings.account)
    except DraftValidationError as e:
        print('Invalid election:', file=sys.stderr)
        for violation in e.violations:
            print(f'  {violation}', file=sys.stderr)
        return 1
    except ValidationError as e:
        print(f'Cannot create election: {e}', file=sys.stderr)
        return 1
    except LedgerError as e:
        print(f'Failed to create election: {e}', file=sys.stderr)
        return 1
    print('Election created')
    return 0


async def run_rules(ledger: Ledger,
                    settings: VotechainSettings,
                    args: argparse.Namespace,
                    ) -> int:
    validator = DraftValidator.from_limits(settings.draft)
    print(json.dumps(votechain.persist.to_dict(validator), indent=2))
    return 0


def load_rules(infile: TextIO) -> DraftValidator:
    """Load a draft validator stored by the rules command.

    :raises ValueError: If the file does not define a draft validator.
    """
    definition = json.load(infile)
    if (not isinstance(definition, dict)
            or definition.get('class') != DRAFT_VALIDATOR_CLASS):
        raise ValueError(f'expected a {DRAFT_VALIDATOR_CLASS} definition')
    try:
        return votechain.persist.from_dict(definition)
    except TypeError as e:
        raise ValueError(str(e)) from e


DRAFT_VALIDATOR_CLASS = 'votechain.validate.DraftValidator'

COMMANDS = {
    'list': run_list,
    'results': run_results,
    'vote': run_vote,
    'create': run_create,
    'rules': run_rules,
}


def _overrides(args: argparse.Namespace) -> Dict[str, Any]:
    overrides = {
        'rpc_url': args.rpc_url,
        'contract_address': args.contract_address,
        'account': args.account,
    }
    return {key: val for key, val in overrides.items() if val is not None}


def _hours(value: float) -> Any:
    return int(value) if value.is_integer() else value


def _format_time(timestamp: int) -> str:
    return time.strftime('%Y-%m-%d %H:%M', time.localtime(timestamp))


if __name__ == '__main__':
    sys.exit(main())
