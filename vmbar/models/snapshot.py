"""Refresh snapshot models."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from .disk import DiskRecord
from .vm import VirtualMachine


class DiskLoadStatus(str, Enum):
    LOADING = "loading"
    NEEDS_TOOL_GRANT = "needs_tool_grant"
    NEEDS_FOLDER_GRANT = "needs_folder_grant"
    LOADED = "loaded"
    FAILED = "failed"


class DiskLoadState(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: DiskLoadStatus = DiskLoadStatus.LOADING
    disks: tuple[DiskRecord, ...] = ()
    reason: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status != DiskLoadStatus.LOADING

    @classmethod
    def loading(cls) -> "DiskLoadState":
        return cls()

    @classmethod
    def needs_tool_grant(cls) -> "DiskLoadState":
        return cls(status=DiskLoadStatus.NEEDS_TOOL_GRANT)

    @classmethod
    def needs_folder_grant(cls) -> "DiskLoadState":
        return cls(status=DiskLoadStatus.NEEDS_FOLDER_GRANT)

    @classmethod
    def loaded(cls, disks: list[DiskRecord]) -> "DiskLoadState":
        return cls(status=DiskLoadStatus.LOADED, disks=tuple(disks))

    @classmethod
    def failed(cls, reason: str) -> "DiskLoadState":
        return cls(status=DiskLoadStatus.FAILED, reason=reason)


class SnapshotStatus(str, Enum):
    CREDENTIALS_MISSING = "credentials_missing"
    EMPTY = "empty"
    READY = "ready"


class EmptyReason(str, Enum):
    NONE = "none"
    FETCH_FAILED = "fetch_failed"


class RefreshSnapshot(BaseModel):
    """Result of one refresh cycle, the only thing handed to rendering.

    Disk states are filled in after the VM list is joined; each update
    produces a new snapshot with the same cycle number.
    """

    model_config = ConfigDict(frozen=True)

    cycle: int = 0
    status: SnapshotStatus
    reason: Optional[EmptyReason] = None
    vms: tuple[VirtualMachine, ...] = ()
    disk_states: dict[str, DiskLoadState] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=lambda: datetime.now(tz=timezone.utc))

    @classmethod
    def credentials_missing(cls, cycle: int = 0) -> "RefreshSnapshot":
        return cls(cycle=cycle, status=SnapshotStatus.CREDENTIALS_MISSING)

    @classmethod
    def empty(cls, reason: EmptyReason, cycle: int = 0) -> "RefreshSnapshot":
        return cls(cycle=cycle, status=SnapshotStatus.EMPTY, reason=reason)

    @classmethod
    def ready(cls, vms: list[VirtualMachine], cycle: int = 0) -> "RefreshSnapshot":
        return cls(
            cycle=cycle,
            status=SnapshotStatus.READY,
            vms=tuple(vms),
            disk_states={vm.id: DiskLoadState.loading() for vm in vms},
        )

    def get_vm(self, vm_id: str) -> Optional[VirtualMachine]:
        for vm in self.vms:
            if vm.id == vm_id:
                return vm
        return None

    def with_disk_state(self, vm_id: str, state: DiskLoadState) -> "RefreshSnapshot":
        current = self.disk_states.get(vm_id)
        if current is None:
            raise KeyError(vm_id)
        if current.is_terminal:
            raise ValueError(f"Disk state for {vm_id} is already {current.status.value}")
        return self.model_copy(update={"disk_states": {**self.disk_states, vm_id: state}})
