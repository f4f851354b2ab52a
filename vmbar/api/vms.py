"""VM power and disk API endpoints."""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..models.disk import DiskMode
from ..models.snapshot import DiskLoadState
from ..models.vm import PowerAction
from ..services.aggregator import ActionFailed, VMAggregator
from .deps import get_aggregator

router = APIRouter(prefix="/vms", tags=["vms"])

RESUME = "resume"


class DiskModeRequest(BaseModel):
    mode: DiskMode


def _action_failed(e: ActionFailed) -> HTTPException:
    return HTTPException(status_code=502, detail={"title": e.title, "message": e.message})


@router.post("/{vm_id}/power/{action}")
async def power(vm_id: str, action: str, aggregator: VMAggregator = Depends(get_aggregator)):
    try:
        if action == RESUME:
            state = await aggregator.resume(vm_id)
        else:
            try:
                power_action = PowerAction(action)
            except ValueError:
                raise HTTPException(status_code=400, detail=f"Unknown power action: {action}")
            state = await aggregator.power(vm_id, power_action)
    except ActionFailed as e:
        raise _action_failed(e)
    return {"vm_id": vm_id, "action": action, "power_state": state.power_state if state else None}


@router.post("/{vm_id}/disks/load", response_model=DiskLoadState)
async def load_disks(vm_id: str, aggregator: VMAggregator = Depends(get_aggregator)):
    try:
        return await aggregator.load_disks(vm_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="VM not found in current snapshot")


async def _set_disk_mode(aggregator: VMAggregator, vm_id: str, disk_key: str, mode: DiskMode):
    if mode == DiskMode.UNKNOWN:
        raise HTTPException(status_code=400, detail="Mode must be persistent or nonpersistent")
    try:
        await aggregator.set_disk_mode(vm_id, disk_key, persistent=mode == DiskMode.PERSISTENT)
    except ActionFailed as e:
        raise _action_failed(e)
    return {"vm_id": vm_id, "disk": disk_key, "mode": mode}


@router.put("/{vm_id}/disks/{disk_key}/mode")
async def set_disk_mode(
    vm_id: str,
    disk_key: str,
    req: DiskModeRequest,
    aggregator: VMAggregator = Depends(get_aggregator),
):
    return await _set_disk_mode(aggregator, vm_id, disk_key, req.mode)


# Menu entries carry the mode in the path
@router.post("/{vm_id}/disks/{disk_key}/mode/{mode}")
async def choose_disk_mode(
    vm_id: str,
    disk_key: str,
    mode: DiskMode,
    aggregator: VMAggregator = Depends(get_aggregator),
):
    return await _set_disk_mode(aggregator, vm_id, disk_key, mode)
