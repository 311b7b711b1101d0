from fastapi import Request

from gitboard.services.contributions import ContributionAggregator
from gitboard.services.leaderboard import LeaderboardAssembler
from gitboard.services.storage import ContributionStore
from gitboard.settings import Settings


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> ContributionStore:
    return request.app.state.store


def get_aggregator(request: Request) -> ContributionAggregator:
    return request.app.state.aggregator


def get_assembler(request: Request) -> LeaderboardAssembler:
    return request.app.state.assembler
