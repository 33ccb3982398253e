import sys
import os

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))
import votechain.config
from votechain.config import ConfigError
from votechain.results import ZeroVotePolicy
from votechain.validate import DraftValidationError, DraftValidator

ADDRESS = '0x' + '12' * 20


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for key in list(os.environ):
        if key.startswith('VOTECHAIN_'):
            monkeypatch.delenv(key)


def test_defaults():
    settings = votechain.config.load_settings()
    assert settings.rpc_url is None
    assert settings.poll_interval_seconds == 10
    assert settings.zero_vote_winners is ZeroVotePolicy.SHOW
    assert settings.draft.title_min == 3
    assert settings.draft.duration_max == 720


def test_environment(monkeypatch):
    monkeypatch.setenv('VOTECHAIN_RPC_URL', 'http://127.0.0.1:8545')
    monkeypatch.setenv('VOTECHAIN_CONTRACT_ADDRESS', ADDRESS)
    monkeypatch.setenv('VOTECHAIN_POLL_INTERVAL_SECONDS', '2.5')
    monkeypatch.setenv('VOTECHAIN_ZERO_VOTE_WINNERS', 'suppress')
    monkeypatch.setenv('VOTECHAIN_DRAFT__DURATION_MAX', '168')
    settings = votechain.config.load_settings()
    assert str(settings.rpc_url).startswith('http://127.0.0.1:8545')
    assert settings.contract_address == ADDRESS
    assert settings.poll_interval_seconds == 2.5
    assert settings.zero_vote_winners is ZeroVotePolicy.SUPPRESS
    assert settings.draft.duration_max == 168


def test_dotenv_file(tmp_path):
    (tmp_path / '.env').write_text('VOTECHAIN_ACCOUNT=0xfromfile\n')
    assert votechain.config.load_settings().account == '0xfromfile'


def test_overrides_win(monkeypatch):
    monkeypatch.setenv('VOTECHAIN_ACCOUNT', '0xenv')
    settings = votechain.config.load_settings(account='0xarg')
    assert settings.account == '0xarg'


@pytest.mark.parametrize('overrides', [
    {'poll_interval_seconds': 0},
    {'contract_address': '0x1234'},
    {'rpc_url': 'http://127.0.0.1:8545'},
    {'rpc_url': 'not a url', 'contract_address': ADDRESS},
    {'zero_vote_winners': 'maybe'},
    {'draft': {'title_min': 50, 'title_max': 10}},
    {'draft': {'min_candidates': 1}},
])
def test_invalid(overrides):
    with pytest.raises(ConfigError):
        votechain.config.load_settings(**overrides)


def test_validator_from_limits():
    settings = votechain.config.load_settings(
        draft={'duration_max': 48, 'min_candidates': 3}
    )
    validator = DraftValidator.from_limits(settings.draft)
    assert validator.duration_hours_bounds == (1, 48)
    with pytest.raises(DraftValidationError):
        validator.validate('Title', 'A long enough text.', ['A', 'B'], 24)
