'''Validated votechain settings.

Settings are read from ``VOTECHAIN_*`` environment variables and an optional
``.env`` file; nested values use ``__`` as delimiter, e.g.
``VOTECHAIN_DRAFT__DURATION_MAX=168``.
'''

from __future__ import annotations

from typing import Any, Optional

from pydantic import (
    AnyHttpUrl, BaseModel, Field, ValidationError, model_validator
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from votechain.results import DEFAULT_POLL_INTERVAL, ZeroVotePolicy


class ConfigError(ValueError):
    '''The settings are invalid.'''
    pass


class DraftLimits(BaseModel):
    '''Bounds applied to new elections before they are submitted.'''

    title_min: int = Field(3, ge=1)
    title_max: int = Field(100, ge=1)
    description_min: int = Field(10, ge=0)
    description_max: int = Field(500, ge=1)
    min_candidates: int = Field(2, ge=2)
    max_candidate_length: Optional[int] = Field(100, ge=1)
    duration_min: int = Field(1, ge=1)
    duration_max: int = Field(720, ge=1)

    @model_validator(mode='after')
    def _check_ranges(self) -> DraftLimits:
        for name in ('title', 'description', 'duration'):
            low = getattr(self, f'{name}_min')
            high = getattr(self, f'{name}_max')
            if low > high:
                raise ValueError(f'{name} minimum {low} exceeds maximum {high}')
        return self


class VotechainSettings(BaseSettings):
    '''Settings of a votechain client.'''

    model_config = SettingsConfigDict(
        env_prefix='VOTECHAIN_',
        env_file='.env',
        env_file_encoding='utf-8',
        env_nested_delimiter='__',
        extra='ignore',
    )

    rpc_url: Optional[AnyHttpUrl] = None
    contract_address: Optional[str] = Field(
        None, pattern=r'^0x[0-9a-fA-F]{40}$'
    )
    account: Optional[str] = None
    poll_interval_seconds: float = Field(DEFAULT_POLL_INTERVAL, gt=0)
    zero_vote_winners: ZeroVotePolicy = ZeroVotePolicy.SHOW
    log_level: str = 'INFO'
    draft: DraftLimits = DraftLimits()

    @model_validator(mode='after')
    def _check_contract(self) -> VotechainSettings:
        if self.rpc_url is not None and self.contract_address is None:
            raise ValueError('contract_address is required with rpc_url')
        return self


def load_settings(**overrides: Any) -> VotechainSettings:
    '''Load and validate the settings.

    :param overrides: Values taking precedence over the environment.
    :raises ConfigError: With pydantic's description of every problem.
    '''
    try:
        return VotechainSettings(**overrides)
    except ValidationError as exc:
        raise ConfigError(f'invalid configuration: {exc}') from exc
