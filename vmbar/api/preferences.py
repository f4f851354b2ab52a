"""Preferences API endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from ..credentials import CredentialStore
from ..models.preferences import (
    ConnectionTestRequest,
    ConnectionTestResult,
    Preferences,
    PreferencesUpdate,
)
from ..preferences import InvalidPreferences, PreferencesStore, check_connection
from ..services.aggregator import VMAggregator
from .deps import get_aggregator, get_credentials, get_preferences

router = APIRouter(prefix="/preferences", tags=["preferences"])


@router.get("", response_model=Preferences)
async def read_preferences(store: PreferencesStore = Depends(get_preferences)):
    return store.load()


@router.put("", response_model=Preferences)
async def update_preferences(
    req: PreferencesUpdate,
    store: PreferencesStore = Depends(get_preferences),
    aggregator: VMAggregator = Depends(get_aggregator),
):
    try:
        prefs = store.update(req)
    except InvalidPreferences as e:
        raise HTTPException(status_code=400, detail=e.errors)
    aggregator.trigger_refresh()
    return prefs


@router.post("/test-connection", response_model=ConnectionTestResult)
async def test_connection(
    req: ConnectionTestRequest,
    credentials: CredentialStore = Depends(get_credentials),
    aggregator: VMAggregator = Depends(get_aggregator),
):
    try:
        return await check_connection(req, aggregator.client_factory, credentials)
    except InvalidPreferences as e:
        raise HTTPException(status_code=400, detail=e.errors)
