import asyncio
import random

import httpx
import pytest

from vmbar.access import GrantPrompter, GrantStore, ResourceAccessBroker
from vmbar.config import Settings
from vmbar.credentials import Credentials, InMemoryCredentialStore
from vmbar.defaults import DefaultsStore
from vmbar.models.common import EmptyResponse
from vmbar.models.vm import VMParameter, VMPowerState, VMSummary
from vmbar.preferences import PreferencesStore
from vmbar.services.aggregator import VMAggregator
from vmbar.vmrest.errors import NetworkError, NotFound

CONFIG_DUMP = "\n".join([
    "'displayName': 'Alpha'",
    "'nvme0:0.fileName': 'Virtual Disk.vmdk'",
    "'nvme0:0.mode': independent-nonpersistent",
    "'nvme0:0.present': TRUE",
])


class FakeBackend:
    """In-memory stand-in for vmrest, shared by every client it hands out."""

    def __init__(self, vms=(), delay=0.0, seed=0):
        # vm_id -> (path, display name or None, power state or None)
        self.vms = {vm_id: (path, name, power) for vm_id, path, name, power in vms}
        self.list_error = None
        self.failing_actions = set()
        self.calls = []
        self.delay = delay
        self._rng = random.Random(seed)
        self.list_gate = None
        self.reachable = True

    async def _pause(self):
        if self.delay:
            await asyncio.sleep(self._rng.random() * self.delay)

    def client(self, base_url, username, password):
        self.calls.append(("connect", base_url, username))
        return FakeClient(self)


class FakeClient:
    def __init__(self, backend: FakeBackend):
        self.backend = backend

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None

    async def list_vms(self):
        if self.backend.list_gate is not None:
            await self.backend.list_gate.wait()
        if self.backend.list_error is not None:
            raise self.backend.list_error
        return [VMSummary(id=vm_id, path=path) for vm_id, (path, _, _) in self.backend.vms.items()]

    async def get_vm_param(self, vm_id, name):
        await self.backend._pause()
        display_name = self.backend.vms[vm_id][1]
        if display_name is None:
            raise NotFound()
        return VMParameter(name=name, value=display_name)

    async def get_power_state(self, vm_id):
        await self.backend._pause()
        power = self.backend.vms[vm_id][2]
        if power is None:
            raise NetworkError(httpx.ReadTimeout("timed out"))
        return VMPowerState(power_state=power)

    async def perform_power_action(self, vm_id, action):
        self.backend.calls.append(("power", vm_id, action.value))
        if action.value in self.backend.failing_actions:
            raise NotFound()
        return VMPowerState(power_state="poweredOn")

    async def update_vm_params(self, vm_id, parameters):
        self.backend.calls.append(("params", vm_id, parameters.name, parameters.value))
        if "params" in self.backend.failing_actions:
            raise NotFound()
        return EmptyResponse()

    async def test_connection(self):
        return self.backend.reachable


class FakePrompter(GrantPrompter):
    def __init__(self, answers=None, delay=0.0):
        self.answers = answers or {}
        self.delay = delay
        self.calls = []

    async def prompt(self, kind, hint=None):
        self.calls.append(kind)
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.answers.get(kind)


class FakeToolRunner:
    def __init__(self, output=CONFIG_DUMP):
        self.output = output
        self.calls = []

    async def __call__(self, vmx_path, tool_path):
        self.calls.append((vmx_path, tool_path))
        return self.output


@pytest.fixture
def settings(tmp_path):
    return Settings(state_dir=tmp_path / "state", eager_disk_loading=False)


@pytest.fixture
def defaults(settings):
    return DefaultsStore(settings.defaults_file)


@pytest.fixture
def prompter():
    return FakePrompter()


@pytest.fixture
def tool_runner():
    return FakeToolRunner()


@pytest.fixture
def backend():
    return FakeBackend(vms=[
        ("vm-2", "/vms/Beta.vmwarevm/Beta.vmx", "Beta", "poweredOff"),
        ("vm-1", "/vms/Alpha.vmwarevm/Alpha.vmx", "Alpha", "poweredOn"),
    ])


@pytest.fixture
def credentials():
    return InMemoryCredentialStore(Credentials("admin", "secret"))


@pytest.fixture
def make_aggregator(settings, defaults, prompter, tool_runner, credentials):
    def make(backend, **kwargs):
        broker = ResourceAccessBroker(GrantStore(defaults), kwargs.pop("prompter", prompter))
        return VMAggregator(
            credentials=kwargs.pop("credentials", credentials),
            broker=broker,
            preferences=PreferencesStore(defaults, settings.vmrest_host, settings.vmrest_port),
            client_factory=backend.client,
            tool_runner=kwargs.pop("tool_runner", tool_runner),
            settings=kwargs.pop("settings", settings),
        )
    return make
