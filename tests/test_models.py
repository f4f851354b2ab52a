import pytest
from pydantic import ValidationError

from vmbar.models.disk import DiskRecord
from vmbar.models.network import CreateVmnetParameter, Network, NICDevice, NICDeviceParameter, SharedFolderParameter
from vmbar.models.snapshot import DiskLoadState, RefreshSnapshot
from vmbar.models.vm import PowerState, VirtualMachine, VMPowerState, VMSummary


def test_power_state_from_wire():
    assert PowerState.from_wire("poweredOn") == PowerState.POWERED_ON
    assert PowerState.from_wire("suspended") == PowerState.SUSPENDED
    assert PowerState.from_wire("bogus") == PowerState.UNKNOWN
    assert PowerState.from_wire(None) == PowerState.UNKNOWN
    assert VMPowerState.model_validate({"power_state": "paused"}).state == PowerState.PAUSED


def test_vm_summary_title_falls_back_to_id():
    assert VMSummary.model_validate({"id": "X", "path": "/a.vmx", "displayName": "Named"}).title == "Named"
    assert VMSummary(id="X", path="/a.vmx").title == "X"


def test_virtual_machine_is_frozen():
    vm = VirtualMachine(id="1", config_path="/a.vmx", display_name="A")
    assert vm.power_state == PowerState.UNKNOWN
    with pytest.raises(ValidationError):
        vm.display_name = "B"


def test_disk_state_only_moves_forward():
    vm = VirtualMachine(id="1", config_path="/a.vmx", display_name="A")
    snapshot = RefreshSnapshot.ready([vm], cycle=4)

    loaded = DiskLoadState.loaded([DiskRecord(key="nvme0:0", file_name="a.vmdk")])
    updated = snapshot.with_disk_state("1", loaded)

    assert updated is not snapshot
    assert updated.cycle == 4
    assert snapshot.disk_states["1"] == DiskLoadState.loading()
    assert updated.disk_states["1"] == loaded
    with pytest.raises(ValueError):
        updated.with_disk_state("1", DiskLoadState.failed("late"))
    with pytest.raises(KeyError):
        snapshot.with_disk_state("2", loaded)


def test_network_helpers():
    nic = NICDevice(index=1, type="hostonly", vmnet="vmnet1", macAddress="00:50:56:00:00:01")
    assert nic.is_host_only and not nic.is_nat

    assert NICDeviceParameter.bridged().type == "bridged"
    assert NICDeviceParameter.custom("vmnet5").model_dump() == {"type": "custom", "vmnet": "vmnet5"}
    assert SharedFolderParameter.read_write("/Users/me").flags == 4
    assert CreateVmnetParameter.host_only("vmnet9").type == "hostOnly"

    net = Network(name="vmnet8", type="nat", dhcp="true", subnet="172.16.0.0", mask="255.255.255.0")
    assert net.is_nat and net.is_dhcp_enabled and not net.is_bridged
