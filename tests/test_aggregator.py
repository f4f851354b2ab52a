import asyncio

import httpx
import pytest

from vmbar.credentials import InMemoryCredentialStore
from vmbar.models.access import GrantKind
from vmbar.models.snapshot import DiskLoadStatus, EmptyReason, SnapshotStatus
from vmbar.models.vm import PowerAction, PowerState
from vmbar.services.aggregator import ActionFailed
from vmbar.services.menu_builder import build_menu
from vmbar.vmrest.errors import NetworkError

from conftest import FakeBackend, FakePrompter, FakeToolRunner


def make_vmcli(directory):
    directory.mkdir(parents=True, exist_ok=True)
    tool = directory / "vmcli"
    tool.write_text("#!/bin/sh\nexit 0\n")
    tool.chmod(0o755)
    return directory


@pytest.mark.parametrize("count", [0, 1, 50])
def test_refresh_joins_every_vm(make_aggregator, count):
    backend = FakeBackend(
        vms=[(f"vm-{i}", f"/vms/{i}.vmx", f"Machine {i:02d}", "poweredOff") for i in range(count)],
        delay=0.005,
        seed=count,
    )
    aggregator = make_aggregator(backend)

    snapshot = asyncio.run(aggregator.refresh())

    if count == 0:
        assert snapshot.status == SnapshotStatus.EMPTY
        assert snapshot.reason == EmptyReason.NONE
        return
    assert snapshot.status == SnapshotStatus.READY
    assert len(snapshot.vms) == count
    assert [vm.display_name for vm in snapshot.vms] == [f"Machine {i:02d}" for i in range(count)]
    assert set(snapshot.disk_states) == {vm.id for vm in snapshot.vms}


def test_refresh_sorts_and_maps_power_state(make_aggregator, backend):
    aggregator = make_aggregator(backend)

    snapshot = asyncio.run(aggregator.refresh())

    alpha, beta = snapshot.vms
    assert (alpha.id, alpha.display_name, alpha.power_state) == ("vm-1", "Alpha", PowerState.POWERED_ON)
    assert (beta.id, beta.display_name, beta.power_state) == ("vm-2", "Beta", PowerState.POWERED_OFF)

    menu = build_menu(snapshot)
    alpha_power = {e.title: e.enabled for e in menu.entries[0].children if not e.separator}
    beta_power = {e.title: e.enabled for e in menu.entries[1].children if not e.separator}
    assert alpha_power["Power On"] is False
    assert alpha_power["Power Off"] is True
    assert "Suspend" in alpha_power
    assert beta_power["Power On"] is True
    assert beta_power["Power Off"] is False
    assert "Suspend" not in beta_power


def test_missing_name_and_power_fall_back(make_aggregator):
    backend = FakeBackend(vms=[("vm-9", "/vms/x.vmx", None, None)])
    aggregator = make_aggregator(backend)

    snapshot = asyncio.run(aggregator.refresh())

    (vm,) = snapshot.vms
    assert vm.display_name == "vm-9"
    assert vm.power_state == PowerState.UNKNOWN


def test_list_failure_gives_fetch_failed(make_aggregator, backend):
    backend.list_error = NetworkError(httpx.ConnectError("refused"))
    aggregator = make_aggregator(backend)

    snapshot = asyncio.run(aggregator.refresh())

    assert snapshot.status == SnapshotStatus.EMPTY
    assert snapshot.reason == EmptyReason.FETCH_FAILED
    assert snapshot.vms == ()


def test_missing_credentials_skips_backend(make_aggregator, backend):
    aggregator = make_aggregator(backend, credentials=InMemoryCredentialStore())

    snapshot = asyncio.run(aggregator.refresh())

    assert snapshot.status == SnapshotStatus.CREDENTIALS_MISSING
    assert backend.calls == []


def test_superseded_cycle_is_not_published(make_aggregator, backend):
    aggregator = make_aggregator(backend)
    published = []

    async def listener(snapshot):
        published.append(snapshot.cycle)

    aggregator.add_listener(listener)

    async def scenario():
        backend.list_gate = asyncio.Event()
        first = aggregator.trigger_refresh()
        await asyncio.sleep(0)
        second = aggregator.trigger_refresh()
        backend.list_gate.set()
        await asyncio.wait({first, second})
        return first, second

    first, second = asyncio.run(scenario())

    assert first.cancelled()
    assert second.result().cycle == 2
    assert published == [2]
    assert aggregator.snapshot.cycle == 2


def test_refresh_follows_superseding_cycle(make_aggregator, backend):
    aggregator = make_aggregator(backend)

    async def scenario():
        backend.list_gate = asyncio.Event()
        waiting = asyncio.create_task(aggregator.refresh())
        await asyncio.sleep(0)
        aggregator.trigger_refresh()
        backend.list_gate.set()
        return await waiting

    snapshot = asyncio.run(scenario())

    assert snapshot.cycle == 2
    assert aggregator.snapshot is snapshot


def test_close_cancels_pending_refresh(make_aggregator, backend):
    aggregator = make_aggregator(backend)

    async def scenario():
        backend.list_gate = asyncio.Event()
        waiting = asyncio.create_task(aggregator.refresh())
        await asyncio.sleep(0.01)
        await aggregator.close()
        with pytest.raises(asyncio.CancelledError):
            await waiting

    asyncio.run(scenario())

    assert aggregator.snapshot is None


def test_disk_branch_asks_for_tool_then_loads(make_aggregator, backend, defaults, tmp_path):
    tool_dir = make_vmcli(tmp_path / "Fusion" / "Public")
    vm_folder = tmp_path / "Virtual Machines.localized"
    vm_folder.mkdir()
    prompter = FakePrompter()
    runner = FakeToolRunner()
    aggregator = make_aggregator(backend, prompter=prompter, tool_runner=runner)

    async def scenario():
        snapshot = await aggregator.refresh()
        vm = snapshot.vms[0]
        before = await aggregator.run_disk_branch(vm)

        prompter.answers = {GrantKind.TOOL: tool_dir, GrantKind.VM_FOLDER: vm_folder}
        await aggregator.request_grant(GrantKind.TOOL)
        after = await aggregator.run_disk_branch(vm)
        return vm, before, after

    vm, before, after = asyncio.run(scenario())

    assert before.status == DiskLoadStatus.NEEDS_TOOL_GRANT
    assert after.status == DiskLoadStatus.LOADED
    assert [(d.key, d.file_name, d.raw_mode) for d in after.disks] == [
        ("nvme0:0", "Virtual Disk.vmdk", "independent-nonpersistent"),
    ]
    assert runner.calls == [(vm.config_path, tool_dir.resolve() / "vmcli")]
    assert prompter.calls == [GrantKind.TOOL, GrantKind.TOOL, GrantKind.VM_FOLDER]
    assert aggregator.broker.active_tokens == set()


def test_disk_branch_needs_folder_after_tool(make_aggregator, backend, tmp_path):
    tool_dir = make_vmcli(tmp_path / "tool")
    prompter = FakePrompter({GrantKind.TOOL: tool_dir})
    aggregator = make_aggregator(backend, prompter=prompter)

    async def scenario():
        snapshot = await aggregator.refresh()
        return await aggregator.run_disk_branch(snapshot.vms[0])

    state = asyncio.run(scenario())

    assert state.status == DiskLoadStatus.NEEDS_FOLDER_GRANT
    assert aggregator.broker.active_tokens == set()


def test_load_disks_applies_once_per_cycle(make_aggregator, backend, tmp_path):
    tool_dir = make_vmcli(tmp_path / "tool")
    folder = tmp_path / "vms"
    folder.mkdir()
    prompter = FakePrompter({GrantKind.TOOL: tool_dir, GrantKind.VM_FOLDER: folder})
    runner = FakeToolRunner()
    aggregator = make_aggregator(backend, prompter=prompter, tool_runner=runner)

    async def scenario():
        await aggregator.refresh()
        first = await aggregator.load_disks("vm-1")
        second = await aggregator.load_disks("vm-1")
        return first, second

    first, second = asyncio.run(scenario())

    assert first.status == DiskLoadStatus.LOADED
    assert second == first
    assert len(runner.calls) == 1
    assert aggregator.snapshot.disk_states["vm-1"].status == DiskLoadStatus.LOADED
    assert aggregator.snapshot.disk_states["vm-2"].status == DiskLoadStatus.LOADING


def test_load_disks_unknown_vm(make_aggregator, backend):
    aggregator = make_aggregator(backend)

    async def scenario():
        await aggregator.refresh()
        await aggregator.load_disks("nope")

    with pytest.raises(KeyError):
        asyncio.run(scenario())


def test_tool_failure_is_reported(make_aggregator, backend, tmp_path):
    from vmbar.utils.vmcli import NonZeroExit

    tool_dir = make_vmcli(tmp_path / "tool")
    folder = tmp_path / "vms"
    folder.mkdir()
    prompter = FakePrompter({GrantKind.TOOL: tool_dir, GrantKind.VM_FOLDER: folder})

    async def failing_runner(vmx_path, tool_path):
        raise NonZeroExit(3, "boom")

    aggregator = make_aggregator(backend, prompter=prompter, tool_runner=failing_runner)

    async def scenario():
        snapshot = await aggregator.refresh()
        return await aggregator.run_disk_branch(snapshot.vms[0])

    state = asyncio.run(scenario())

    assert state.status == DiskLoadStatus.FAILED
    assert state.reason


def test_power_action_refreshes(make_aggregator, backend):
    aggregator = make_aggregator(backend)

    async def scenario():
        await aggregator.refresh()
        state = await aggregator.power("vm-2", PowerAction.ON)
        await asyncio.wait({aggregator._cycle_task})
        return state

    state = asyncio.run(scenario())

    assert state.state == PowerState.POWERED_ON
    assert ("power", "vm-2", "on") in backend.calls
    assert aggregator.snapshot.cycle == 2


def test_failed_action_keeps_snapshot(make_aggregator, backend):
    backend.failing_actions = {"off"}
    aggregator = make_aggregator(backend)

    async def scenario():
        snapshot = await aggregator.refresh()
        with pytest.raises(ActionFailed) as excinfo:
            await aggregator.power("vm-1", PowerAction.OFF)
        return snapshot, excinfo.value

    snapshot, error = asyncio.run(scenario())

    assert error.title == "Action Failed"
    assert error.message == "Failed to perform off on Alpha."
    assert aggregator.snapshot is snapshot
    assert aggregator.cycle == 1


def test_resume_issues_on_then_unpause(make_aggregator, backend):
    backend.failing_actions = {"on"}
    aggregator = make_aggregator(backend)

    async def scenario():
        await aggregator.refresh()
        await aggregator.resume("vm-1")

    asyncio.run(scenario())

    power_calls = [c for c in backend.calls if c[0] == "power"]
    assert power_calls == [("power", "vm-1", "on"), ("power", "vm-1", "unpause")]


def test_resume_fails_when_both_fail(make_aggregator, backend):
    backend.failing_actions = {"on", "unpause"}
    aggregator = make_aggregator(backend)

    async def scenario():
        await aggregator.refresh()
        await aggregator.resume("vm-1")

    with pytest.raises(ActionFailed, match="Failed to perform resume on Alpha."):
        asyncio.run(scenario())


def test_actions_need_credentials(make_aggregator, backend):
    aggregator = make_aggregator(backend, credentials=InMemoryCredentialStore())

    with pytest.raises(ActionFailed) as excinfo:
        asyncio.run(aggregator.power("vm-1", PowerAction.ON))

    assert excinfo.value.title == "Missing Credentials"


@pytest.mark.parametrize("persistent,value", [
    (True, "independent-persistent"),
    (False, "independent-nonpersistent"),
])
def test_set_disk_mode(make_aggregator, backend, persistent, value):
    aggregator = make_aggregator(backend)

    async def scenario():
        await aggregator.set_disk_mode("vm-1", "nvme0:0", persistent)
        await aggregator.close()

    asyncio.run(scenario())

    assert ("params", "vm-1", "nvme0:0.mode", value) in backend.calls


def test_set_disk_mode_failure(make_aggregator, backend):
    backend.failing_actions = {"params"}
    aggregator = make_aggregator(backend)

    with pytest.raises(ActionFailed) as excinfo:
        asyncio.run(aggregator.set_disk_mode("vm-1", "nvme0:0", True))

    assert excinfo.value.title == "Failed to Update Disk Mode"
    assert aggregator.cycle == 0


def three_vms():
    return FakeBackend(vms=[
        (f"vm-{i}", f"/vms/VM{i}.vmwarevm/VM{i}.vmx", f"VM {i}", "poweredOff") for i in range(3)
    ])


def test_eager_disk_loading_prompts_once_per_kind(make_aggregator, settings):
    prompter = FakePrompter(delay=0.05)
    aggregator = make_aggregator(
        three_vms(),
        prompter=prompter,
        settings=settings.model_copy(update={"eager_disk_loading": True}),
    )

    async def scenario():
        await aggregator.refresh()
        tasks = list(aggregator._disk_tasks.values())
        await asyncio.gather(*tasks)
        return tasks

    tasks = asyncio.run(scenario())

    assert len(tasks) == 3
    assert prompter.calls == [GrantKind.TOOL]
    states = aggregator.snapshot.disk_states
    assert {vm_id: s.status for vm_id, s in states.items()} == {
        f"vm-{i}": DiskLoadStatus.NEEDS_TOOL_GRANT for i in range(3)
    }
    assert aggregator.broker.active_tokens == set()


def test_refresh_cancels_eager_disk_loads(make_aggregator, settings):
    prompter = FakePrompter(delay=10)
    aggregator = make_aggregator(
        three_vms(),
        prompter=prompter,
        settings=settings.model_copy(update={"eager_disk_loading": True}),
    )
    published = []

    async def listener(snapshot):
        published.append(snapshot)

    aggregator.add_listener(listener)

    async def scenario():
        await aggregator.refresh()
        old_tasks = list(aggregator._disk_tasks.values())
        await asyncio.sleep(0.05)
        await aggregator.refresh()
        await asyncio.gather(*old_tasks, return_exceptions=True)
        await aggregator.close()
        return old_tasks

    old_tasks = asyncio.run(scenario())

    assert len(old_tasks) == 3
    assert all(task.cancelled() for task in old_tasks)
    assert aggregator.snapshot.cycle == 2
    for snapshot in published:
        if snapshot.cycle == 1:
            assert all(s.status == DiskLoadStatus.LOADING for s in snapshot.disk_states.values())
    assert GrantKind.VM_FOLDER not in prompter.calls
