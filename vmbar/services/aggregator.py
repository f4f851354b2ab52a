"""Refresh cycle orchestration: VM list, per-VM name and power, and disks."""

import asyncio
import logging
from functools import partial
from pathlib import Path
from typing import Awaitable, Callable, Optional

from ..access.broker import ResourceAccessBroker
from ..access.paths import resolve_tool_path
from ..config import Settings, settings as default_settings
from ..credentials import CredentialStore, Credentials
from ..models.access import AccessGrant, GrantKind
from ..models.disk import NONPERSISTENT_MODE_VALUE, PERSISTENT_MODE_VALUE
from ..models.snapshot import DiskLoadState, EmptyReason, RefreshSnapshot, SnapshotStatus
from ..models.vm import PowerAction, PowerState, VirtualMachine, VMParameter, VMPowerState, VMSummary
from ..preferences import PreferencesStore
from ..utils import config_parser
from ..utils.vmcli import VMCLIError, run_config_params_query
from ..vmrest.client import VMRestClient
from ..vmrest.errors import VMRestError

logger = logging.getLogger(__name__)

DISPLAY_NAME_PARAM = "displayName"

ClientFactory = Callable[[str, str, str], VMRestClient]
ToolRunner = Callable[[str, Path], Awaitable[str]]


class ActionFailed(Exception):
    """A user-triggered action did not go through. The snapshot is unchanged."""

    def __init__(self, title: str, message: str):
        super().__init__(message)
        self.title = title
        self.message = message


class VMAggregator:
    """Builds and publishes :class:`RefreshSnapshot` objects.

    Only the newest cycle may publish. Triggering a refresh cancels the
    cycle in flight along with its disk loads.
    """

    def __init__(
        self,
        credentials: CredentialStore,
        broker: ResourceAccessBroker,
        preferences: PreferencesStore,
        client_factory: Optional[ClientFactory] = None,
        tool_runner: Optional[ToolRunner] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or default_settings
        self.credentials = credentials
        self.broker = broker
        self.preferences = preferences
        self.client_factory = client_factory or partial(
            VMRestClient, timeout=self.settings.request_timeout
        )
        self.tool_runner = tool_runner or partial(
            run_config_params_query, timeout=self.settings.tool_timeout
        )

        self._cycle = 0
        self._snapshot: Optional[RefreshSnapshot] = None
        self._cycle_task: Optional[asyncio.Task] = None
        self._disk_tasks: dict[str, asyncio.Task] = {}
        self._grant_tasks: set[asyncio.Task] = set()
        self._listeners: list[Callable] = []

    # --- Listeners --- #

    def add_listener(self, callback: Callable) -> None:
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    async def _notify(self, snapshot: RefreshSnapshot) -> None:
        for cb in list(self._listeners):
            try:
                await cb(snapshot)
            except Exception as e:
                logger.warning(f"Snapshot listener failed: {e}")

    async def _publish(self, snapshot: RefreshSnapshot) -> bool:
        if snapshot.cycle != self._cycle:
            logger.debug(f"Dropping snapshot from superseded cycle {snapshot.cycle}")
            return False
        self._snapshot = snapshot
        await self._notify(snapshot)
        return True

    @property
    def snapshot(self) -> Optional[RefreshSnapshot]:
        return self._snapshot

    @property
    def cycle(self) -> int:
        return self._cycle

    # --- Refresh cycle --- #

    def trigger_refresh(self) -> asyncio.Task:
        """Start a new cycle, cancelling whatever the previous one was doing."""
        self._cancel_in_flight()
        self._cycle += 1
        self._cycle_task = asyncio.create_task(self._run_cycle(self._cycle))
        return self._cycle_task

    async def refresh(self) -> RefreshSnapshot:
        """Trigger a cycle and wait for its VM list to be published.

        If the cycle gets superseded meanwhile, wait for the newer one.
        """
        task = self.trigger_refresh()
        while True:
            try:
                # Shielded so a caller giving up does not cancel the cycle
                return await asyncio.shield(task)
            except asyncio.CancelledError:
                if not task.cancelled() or self._cycle_task is task:
                    raise
                task = self._cycle_task

    async def current(self) -> RefreshSnapshot:
        """The latest snapshot, running a first cycle if there is none yet."""
        if self._snapshot is not None:
            return self._snapshot
        if self._cycle_task is not None and not self._cycle_task.done():
            await asyncio.wait({self._cycle_task})
            if self._snapshot is not None:
                return self._snapshot
        return await self.refresh()

    def _cancel_in_flight(self) -> None:
        if self._cycle_task is not None and not self._cycle_task.done():
            self._cycle_task.cancel()
        for task in self._disk_tasks.values():
            if not task.done():
                task.cancel()
        self._disk_tasks = {}

    async def close(self) -> None:
        self._cancel_in_flight()
        for task in self._grant_tasks:
            task.cancel()
        self._listeners.clear()

    async def _run_cycle(self, cycle: int) -> RefreshSnapshot:
        snapshot = await self._build_snapshot(cycle)
        await self._publish(snapshot)
        logger.info(
            f"Cycle {cycle}: {snapshot.status.value}"
            + (f" ({len(snapshot.vms)} VMs)" if snapshot.status == SnapshotStatus.READY else "")
        )
        if snapshot.status == SnapshotStatus.READY and self.settings.eager_disk_loading:
            for vm in snapshot.vms:
                self._schedule_disk_load(vm, cycle)
        return snapshot

    def _client(self, credentials: Credentials) -> VMRestClient:
        base_url = self.preferences.load().base_url
        return self.client_factory(base_url, credentials.username, credentials.password)

    async def _build_snapshot(self, cycle: int) -> RefreshSnapshot:
        credentials = self.credentials.get()
        if credentials is None:
            return RefreshSnapshot.credentials_missing(cycle)

        try:
            async with self._client(credentials) as client:
                try:
                    summaries = await client.list_vms()
                except VMRestError as e:
                    logger.warning(f"Failed to fetch VMs: {e}")
                    return RefreshSnapshot.empty(EmptyReason.FETCH_FAILED, cycle)
                if not summaries:
                    return RefreshSnapshot.empty(EmptyReason.NONE, cycle)

                vms = await asyncio.gather(*(self._resolve_vm(client, s) for s in summaries))
        except VMRestError as e:
            # Client could not even be built, e.g. a bad endpoint
            logger.warning(f"Failed to fetch VMs: {e}")
            return RefreshSnapshot.empty(EmptyReason.FETCH_FAILED, cycle)

        vms = sorted(vms, key=lambda vm: vm.display_name.casefold())
        return RefreshSnapshot.ready(vms, cycle)

    async def _resolve_vm(self, client: VMRestClient, summary: VMSummary) -> VirtualMachine:
        """Display name, then power state. Falls back instead of raising."""
        try:
            param = await client.get_vm_param(summary.id, DISPLAY_NAME_PARAM)
            display_name = param.value or summary.title
        except VMRestError as e:
            logger.debug(f"No display name for {summary.id}: {e}")
            display_name = summary.title

        try:
            power_state = (await client.get_power_state(summary.id)).state
        except VMRestError as e:
            logger.warning(f"Failed to fetch power state for {summary.id}: {e}")
            power_state = PowerState.UNKNOWN

        return VirtualMachine(
            id=summary.id,
            config_path=summary.path,
            display_name=display_name,
            power_state=power_state,
        )

    # --- Disks --- #

    async def run_disk_branch(self, vm: VirtualMachine) -> DiskLoadState:
        """Work out the disk state of one VM. Leaves the snapshot alone."""
        async with self.broker.access(GrantKind.TOOL) as tool_root:
            if tool_root is None:
                return DiskLoadState.needs_tool_grant()
            async with self.broker.access(GrantKind.VM_FOLDER, hint=vm.config_path) as folder_root:
                if folder_root is None:
                    return DiskLoadState.needs_folder_grant()

                tool_path = resolve_tool_path(tool_root)
                if tool_path is None:
                    return DiskLoadState.failed(f"vmcli not found under {tool_root}")

                try:
                    output = await self.tool_runner(vm.config_path, tool_path)
                except (VMCLIError, OSError) as e:
                    logger.warning(f"vmcli failed for {vm.id}: {e}")
                    return DiskLoadState.failed(str(e))

                return DiskLoadState.loaded(config_parser.disks(config_parser.parse(output)))

    def _schedule_disk_load(self, vm: VirtualMachine, cycle: int) -> asyncio.Task:
        task = self._disk_tasks.get(vm.id)
        if task is None or task.done():
            task = asyncio.create_task(self._load_and_apply(vm, cycle))
            self._disk_tasks[vm.id] = task
        return task

    async def _load_and_apply(self, vm: VirtualMachine, cycle: int) -> DiskLoadState:
        state = await self.run_disk_branch(vm)
        snapshot = self._snapshot
        if snapshot is None or snapshot.cycle != cycle:
            return state
        try:
            updated = snapshot.with_disk_state(vm.id, state)
        except (KeyError, ValueError) as e:
            logger.debug(f"Not applying disk state for {vm.id}: {e}")
            return snapshot.disk_states.get(vm.id, state)
        await self._publish(updated)
        return state

    async def load_disks(self, vm_id: str) -> DiskLoadState:
        """Run the disk branch for one VM of the current snapshot, once per cycle."""
        snapshot = await self.current()
        vm = snapshot.get_vm(vm_id)
        if vm is None:
            raise KeyError(vm_id)
        state = snapshot.disk_states[vm_id]
        if state.is_terminal:
            return state

        task = self._schedule_disk_load(vm, snapshot.cycle)
        await asyncio.wait({task})
        if task.cancelled():
            return DiskLoadState.loading()
        return task.result()

    # --- Actions --- #

    def _vm_title(self, vm_id: str) -> str:
        vm = self._snapshot.get_vm(vm_id) if self._snapshot else None
        return vm.display_name if vm else vm_id

    def _require_credentials(self) -> Credentials:
        credentials = self.credentials.get()
        if credentials is None:
            raise ActionFailed("Missing Credentials", "Please set credentials in Preferences.")
        return credentials

    async def _power_call(self, vm_id: str, action: PowerAction) -> VMPowerState:
        credentials = self._require_credentials()
        try:
            async with self._client(credentials) as client:
                state = await client.perform_power_action(vm_id, action)
        except VMRestError as e:
            logger.warning(f"Power action {action.value} on {vm_id} failed: {e}")
            raise ActionFailed(
                "Action Failed", f"Failed to perform {action.value} on {self._vm_title(vm_id)}."
            ) from e
        logger.info(f"VM {vm_id} is now: {state.power_state}")
        return state

    async def power(self, vm_id: str, action: PowerAction) -> VMPowerState:
        state = await self._power_call(vm_id, PowerAction(action))
        self.trigger_refresh()
        return state

    async def resume(self, vm_id: str) -> Optional[VMPowerState]:
        """Issue ``on`` and then ``unpause``.

        A suspended or paused VM does not reliably come back with a single
        action. Both calls are always made; this only fails if both do.
        """
        results = []
        failures = []
        for action in (PowerAction.ON, PowerAction.UNPAUSE):
            try:
                results.append(await self._power_call(vm_id, action))
            except ActionFailed as e:
                failures.append(e)

        if not results:
            raise ActionFailed(
                "Action Failed", f"Failed to perform resume on {self._vm_title(vm_id)}."
            ) from failures[-1]
        self.trigger_refresh()
        return results[-1]

    async def set_disk_mode(self, vm_id: str, disk_key: str, persistent: bool) -> None:
        credentials = self._require_credentials()
        value = PERSISTENT_MODE_VALUE if persistent else NONPERSISTENT_MODE_VALUE
        param = VMParameter(name=f"{disk_key}.mode", value=value)
        try:
            async with self._client(credentials) as client:
                await client.update_vm_params(vm_id, param)
        except VMRestError as e:
            logger.warning(f"Setting {param.name}={value} on {vm_id} failed: {e}")
            raise ActionFailed("Failed to Update Disk Mode", str(e)) from e
        self.trigger_refresh()

    async def request_grant(self, kind: GrantKind, hint: Optional[str] = None) -> Optional[AccessGrant]:
        """Prompt for a grant on the user's request, then refresh either way."""
        grant = await self.broker.prompt_for_grant(kind, hint)
        self.trigger_refresh()
        return grant

    def schedule_grant_request(self, kind: GrantKind, hint: Optional[str] = None) -> asyncio.Task:
        """Run :meth:`request_grant` in the background and keep hold of the task."""
        task = asyncio.create_task(self.request_grant(kind, hint))
        self._grant_tasks.add(task)
        task.add_done_callback(self._grant_tasks.discard)
        return task
