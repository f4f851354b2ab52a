"""Derive the status menu from a refresh snapshot."""

from urllib.parse import quote

from ..models.access import GrantKind
from ..models.disk import DiskMode, DiskRecord
from ..models.menu import Menu, MenuEntry
from ..models.snapshot import DiskLoadState, DiskLoadStatus, RefreshSnapshot, SnapshotStatus
from ..models.vm import PowerState, VirtualMachine

POWER_STATE_ICONS = {
    PowerState.POWERED_ON: "green",
    PowerState.POWERED_OFF: "red",
    PowerState.SUSPENDED: "orange",
    PowerState.PAUSED: "yellow",
}
UNKNOWN_ICON = "gray"


def _vm_action(vm: VirtualMachine, *parts: str) -> str:
    return "/".join(("vms", quote(vm.id, safe=""), *parts))


def separator() -> MenuEntry:
    return MenuEntry(title="", separator=True, enabled=False)


def static_entries() -> list[MenuEntry]:
    return [
        separator(),
        MenuEntry(title="Preferences…", action="preferences"),
        MenuEntry(title="Quit", action="quit"),
    ]


def power_entries(vm: VirtualMachine) -> list[MenuEntry]:
    entries = [
        MenuEntry(title="Power On", action=_vm_action(vm, "power", "on"), enabled=vm.can_power_on),
        MenuEntry(title="Power Off", action=_vm_action(vm, "power", "off"), enabled=vm.can_power_off),
    ]
    if vm.can_suspend:
        entries.append(MenuEntry(title="Suspend", action=_vm_action(vm, "power", "suspend")))
    elif vm.can_resume:
        entries.append(MenuEntry(title="Resume", action=_vm_action(vm, "power", "resume")))
    return entries


def disk_entry(vm: VirtualMachine, disk: DiskRecord) -> MenuEntry:
    # Anything not recognisably non-persistent is shown as persistent
    nonpersistent = disk.normalized_mode == DiskMode.NONPERSISTENT
    key = quote(disk.key, safe=":")
    return MenuEntry(
        title=disk.title,
        children=[
            MenuEntry(
                title="Persistent",
                action=_vm_action(vm, "disks", key, "mode", "persistent"),
                checked=not nonpersistent,
            ),
            MenuEntry(
                title="Non-Persistent",
                action=_vm_action(vm, "disks", key, "mode", "nonpersistent"),
                checked=nonpersistent,
            ),
        ],
    )


def disk_entries(vm: VirtualMachine, state: DiskLoadState) -> list[MenuEntry]:
    if state.status == DiskLoadStatus.LOADING:
        return [MenuEntry(title="Loading…", enabled=False)]
    if state.status == DiskLoadStatus.NEEDS_TOOL_GRANT:
        return [MenuEntry(title="Grant access to vmcli…", action=f"grants/{GrantKind.TOOL.value}/request")]
    if state.status == DiskLoadStatus.NEEDS_FOLDER_GRANT:
        return [MenuEntry(
            title="Grant access to VM folder…",
            action=f"grants/{GrantKind.VM_FOLDER.value}/request?hint={quote(vm.config_path, safe='')}",
        )]
    if state.status == DiskLoadStatus.FAILED:
        return [MenuEntry(title=f"Failed to load disks: {state.reason}", enabled=False)]
    if not state.disks:
        return [MenuEntry(title="No disks found", enabled=False)]
    return [disk_entry(vm, disk) for disk in state.disks]


def vm_entry(vm: VirtualMachine, state: DiskLoadState) -> MenuEntry:
    children = power_entries(vm)
    children.append(separator())
    children.append(MenuEntry(
        title="Disks",
        action=_vm_action(vm, "disks", "load"),
        children=disk_entries(vm, state),
    ))
    return MenuEntry(
        title=vm.display_name,
        icon=POWER_STATE_ICONS.get(vm.power_state, UNKNOWN_ICON),
        children=children,
    )


def build_menu(snapshot: RefreshSnapshot) -> Menu:
    if snapshot.status == SnapshotStatus.CREDENTIALS_MISSING:
        entries = [MenuEntry(title="No credentials set", enabled=False)]
    elif snapshot.status == SnapshotStatus.EMPTY:
        entries = [MenuEntry(title="No VMs found", enabled=False)]
    else:
        entries = [
            vm_entry(vm, snapshot.disk_states.get(vm.id, DiskLoadState.loading()))
            for vm in snapshot.vms
        ]
    return Menu(cycle=snapshot.cycle, entries=entries + static_entries())
