"""Credential API endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from ..credentials import CredentialStore
from ..models.preferences import CredentialsRequest
from ..preferences import INVALID_PASSWORD, INVALID_USERNAME
from ..services.aggregator import VMAggregator
from ..utils.validation import validate_password, validate_username
from .deps import get_aggregator, get_credentials

router = APIRouter(prefix="/credentials", tags=["credentials"])


@router.get("")
async def get_credentials_status(store: CredentialStore = Depends(get_credentials)):
    creds = store.get()
    # Never hand the password back out
    return {"configured": creds is not None, "username": creds.username if creds else None}


@router.put("")
async def save_credentials(
    req: CredentialsRequest,
    store: CredentialStore = Depends(get_credentials),
    aggregator: VMAggregator = Depends(get_aggregator),
):
    errors = []
    if not validate_username(req.username):
        errors.append(INVALID_USERNAME)
    if not validate_password(req.password):
        errors.append(INVALID_PASSWORD)
    if errors:
        raise HTTPException(status_code=400, detail=errors)

    if not store.save(req.username.strip(), req.password):
        raise HTTPException(status_code=500, detail="Failed to save credentials")
    aggregator.trigger_refresh()
    return {"configured": True, "username": req.username.strip()}


@router.delete("")
async def delete_credentials(
    store: CredentialStore = Depends(get_credentials),
    aggregator: VMAggregator = Depends(get_aggregator),
):
    if not store.delete():
        raise HTTPException(status_code=500, detail="Failed to delete credentials")
    aggregator.trigger_refresh()
    return {"configured": False}
