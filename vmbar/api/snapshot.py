"""Snapshot and menu API endpoints."""

from fastapi import APIRouter, Depends

from ..models.menu import Menu
from ..models.snapshot import RefreshSnapshot
from ..services.aggregator import VMAggregator
from ..services.menu_builder import build_menu
from .deps import get_aggregator

router = APIRouter(tags=["snapshot"])


@router.get("/snapshot", response_model=RefreshSnapshot)
async def get_snapshot(aggregator: VMAggregator = Depends(get_aggregator)):
    return await aggregator.current()


@router.post("/refresh", response_model=RefreshSnapshot)
async def refresh(aggregator: VMAggregator = Depends(get_aggregator)):
    """Run a new cycle, as opening the menu does, and return its VM list."""
    return await aggregator.refresh()


@router.get("/menu", response_model=Menu)
async def get_menu(aggregator: VMAggregator = Depends(get_aggregator)):
    return build_menu(await aggregator.current())
