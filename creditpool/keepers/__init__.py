"""
keepers - Quota rate keepers

RateKeeper is the shared capability; GaugeRateKeeper (votes backed by a
StakingLedger) and TumblerRateKeeper (configured rates) implement it.
"""

from .base import RateKeeper, epoch_elapsed
from .staking import StakingLedger, UserStake, WITHDRAWAL_DELAY_EPOCHS
from .gauge import GaugeRateKeeper, QuotaRateParams, UserVotes
from .tumbler import TumblerRateKeeper

__all__ = [
    'RateKeeper', 'epoch_elapsed',
    'StakingLedger', 'UserStake', 'WITHDRAWAL_DELAY_EPOCHS',
    'GaugeRateKeeper', 'QuotaRateParams', 'UserVotes',
    'TumblerRateKeeper',
]
