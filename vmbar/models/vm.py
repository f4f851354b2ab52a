"""Virtual machine models."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class PowerState(str, Enum):
    POWERED_ON = "poweredOn"
    POWERED_OFF = "poweredOff"
    SUSPENDED = "suspended"
    PAUSED = "paused"
    UNKNOWN = "unknown"

    @classmethod
    def from_wire(cls, raw: Optional[str]) -> "PowerState":
        try:
            return cls(raw)
        except ValueError:
            return cls.UNKNOWN


class PowerAction(str, Enum):
    ON = "on"
    OFF = "off"
    SHUTDOWN = "shutdown"
    SUSPEND = "suspend"
    PAUSE = "pause"
    UNPAUSE = "unpause"


class VMSummary(BaseModel):
    """One entry of the VM list endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    path: str
    display_name: Optional[str] = Field(default=None, alias="displayName")
    power_state: Optional[str] = Field(default=None, alias="power_state")

    @property
    def title(self) -> str:
        return self.display_name or self.id


class VMPowerState(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    power_state: str = Field(alias="power_state")

    @property
    def state(self) -> PowerState:
        return PowerState.from_wire(self.power_state)


class VMParameter(BaseModel):
    name: str
    value: str


class VMCPU(BaseModel):
    processors: int


class VMInformation(BaseModel):
    id: str
    cpu: Optional[VMCPU] = None
    memory: Optional[int] = None


class VMApplianceView(BaseModel):
    author: Optional[str] = None
    version: Optional[str] = None
    port: Optional[int] = None
    showAtPowerOn: Optional[str] = None


class VMRestrictionsInformation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    managedOrg: Optional[str] = None
    integrity_constraint: Optional[str] = Field(default=None, alias="integrityconstraint")
    cpu: Optional[VMCPU] = None
    memory: Optional[int] = None
    applianceView: Optional[VMApplianceView] = None


class VMCloneParameter(BaseModel):
    name: str
    parentId: str


class VMRegisterParameter(BaseModel):
    name: str
    path: str


class VMRegistrationInformation(BaseModel):
    id: str
    path: str


class VirtualMachine(BaseModel):
    """A VM as presented after one refresh cycle. Never mutated."""

    model_config = ConfigDict(frozen=True)

    id: str
    config_path: str
    display_name: str
    power_state: PowerState = PowerState.UNKNOWN

    @property
    def is_powered_on(self) -> bool:
        return self.power_state == PowerState.POWERED_ON

    @property
    def is_powered_off(self) -> bool:
        return self.power_state == PowerState.POWERED_OFF

    @property
    def is_suspended(self) -> bool:
        return self.power_state == PowerState.SUSPENDED

    @property
    def is_paused(self) -> bool:
        return self.power_state == PowerState.PAUSED

    @property
    def can_power_on(self) -> bool:
        return not self.is_powered_on and not (self.is_paused or self.is_suspended)

    @property
    def can_power_off(self) -> bool:
        return self.is_powered_on

    @property
    def can_suspend(self) -> bool:
        return self.is_powered_on

    @property
    def can_resume(self) -> bool:
        return self.is_suspended or self.is_paused
