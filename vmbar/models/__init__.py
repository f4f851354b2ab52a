"""Data models."""

from .access import AccessGrant, GrantKind, PendingPrompt
from .common import EmptyResponse, VMRestErrorResponse
from .disk import DiskMode, DiskRecord, normalized_mode
from .menu import Menu, MenuEntry
from .preferences import Preferences
from .snapshot import (
    DiskLoadState,
    DiskLoadStatus,
    EmptyReason,
    RefreshSnapshot,
    SnapshotStatus,
)
from .vm import PowerAction, PowerState, VirtualMachine, VMParameter, VMPowerState, VMSummary

__all__ = [
    "AccessGrant",
    "GrantKind",
    "PendingPrompt",
    "EmptyResponse",
    "VMRestErrorResponse",
    "DiskMode",
    "DiskRecord",
    "normalized_mode",
    "Menu",
    "MenuEntry",
    "Preferences",
    "DiskLoadState",
    "DiskLoadStatus",
    "EmptyReason",
    "RefreshSnapshot",
    "SnapshotStatus",
    "PowerAction",
    "PowerState",
    "VirtualMachine",
    "VMParameter",
    "VMPowerState",
    "VMSummary",
]
