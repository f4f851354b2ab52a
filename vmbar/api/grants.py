"""Access grant API endpoints."""

from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..access import PendingPromptQueue, ResourceAccessBroker
from ..models.access import GrantKind
from ..services.aggregator import VMAggregator
from .deps import get_aggregator, get_broker, get_prompts

router = APIRouter(prefix="/grants", tags=["grants"])


class PromptAnswer(BaseModel):
    path: str


def _queue(prompts) -> PendingPromptQueue:
    if not isinstance(prompts, PendingPromptQueue):
        raise HTTPException(status_code=409, detail="Prompts are not answered over HTTP")
    return prompts


@router.get("")
async def list_grants(broker: ResourceAccessBroker = Depends(get_broker)):
    grants = {}
    for kind in GrantKind:
        grant = broker.grants.load(kind)
        grants[kind.value] = None if grant is None else {
            "root": str(grant.root),
            "is_stale": grant.is_stale,
        }
    return grants


@router.get("/prompts")
async def list_prompts(prompts=Depends(get_prompts)):
    return _queue(prompts).pending()


@router.post("/prompts/{kind}")
async def answer_prompt(kind: GrantKind, req: PromptAnswer, prompts=Depends(get_prompts)):
    if not _queue(prompts).answer(kind, Path(req.path)):
        raise HTTPException(status_code=404, detail=f"No pending '{kind.value}' prompt")
    return {"answered": True}


@router.delete("/prompts/{kind}")
async def decline_prompt(kind: GrantKind, prompts=Depends(get_prompts)):
    if not _queue(prompts).decline(kind):
        raise HTTPException(status_code=404, detail=f"No pending '{kind.value}' prompt")
    return {"declined": True}


@router.post("/{kind}/request")
async def request_grant(
    kind: GrantKind,
    hint: Optional[str] = None,
    wait: bool = False,
    aggregator: VMAggregator = Depends(get_aggregator),
):
    """Ask the user for a grant. Returns at once unless ``wait`` is set."""
    if not wait:
        aggregator.schedule_grant_request(kind, hint)
        return {"requested": True}

    grant = await aggregator.request_grant(kind, hint)
    return {"requested": True, "granted": grant is not None, "root": str(grant.root) if grant else None}


@router.delete("/{kind}")
async def revoke_grant(
    kind: GrantKind,
    broker: ResourceAccessBroker = Depends(get_broker),
    aggregator: VMAggregator = Depends(get_aggregator),
):
    broker.grants.discard(kind)
    aggregator.trigger_refresh()
    return {"revoked": True}
