"""Request-scoped access to the objects built by the app factory."""

from fastapi import Request

from ..access import ResourceAccessBroker
from ..credentials import CredentialStore
from ..preferences import PreferencesStore
from ..services.aggregator import VMAggregator


def get_aggregator(request: Request) -> VMAggregator:
    return request.app.state.aggregator


def get_credentials(request: Request) -> CredentialStore:
    return request.app.state.credentials


def get_preferences(request: Request) -> PreferencesStore:
    return request.app.state.preferences


def get_broker(request: Request) -> ResourceAccessBroker:
    return request.app.state.broker


def get_prompts(request: Request):
    return request.app.state.prompts
