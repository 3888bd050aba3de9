"""Contextual-bandit protocol: context, policy clients and reward."""

from vibeshift.bandit.base import BasePolicyClient
from vibeshift.bandit.context import build_context, genre_cluster_from_seeds
from vibeshift.bandit.http import HttpPolicyClient
from vibeshift.bandit.local import NudgePolicy
from vibeshift.bandit.reward import DEFAULT_REWARD_WEIGHTS, RewardWeights, reward_from_session

__all__ = [
    "DEFAULT_REWARD_WEIGHTS",
    "BasePolicyClient",
    "HttpPolicyClient",
    "NudgePolicy",
    "RewardWeights",
    "build_context",
    "genre_cluster_from_seeds",
    "reward_from_session",
]
