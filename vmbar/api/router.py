"""Aggregate all API sub-routers."""

from fastapi import APIRouter

from . import snapshot, vms, grants, credentials, preferences, ws

api_router = APIRouter()

api_router.include_router(snapshot.router)
api_router.include_router(vms.router)
api_router.include_router(grants.router)
api_router.include_router(credentials.router)
api_router.include_router(preferences.router)
api_router.include_router(ws.router)
