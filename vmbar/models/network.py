"""Network adapter, shared folder and host network models."""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class NICDevice(BaseModel):
    index: int
    type: str  # custom, bridged, nat, hostonly
    vmnet: str
    macAddress: str

    @property
    def is_custom(self) -> bool:
        return self.type == "custom"

    @property
    def is_bridged(self) -> bool:
        return self.type == "bridged"

    @property
    def is_nat(self) -> bool:
        return self.type == "nat"

    @property
    def is_host_only(self) -> bool:
        return self.type == "hostonly"


class NICDevices(BaseModel):
    num: int
    nics: list[NICDevice] = Field(default_factory=list)


class NICDeviceParameter(BaseModel):
    type: str
    vmnet: str = ""

    @classmethod
    def bridged(cls) -> "NICDeviceParameter":
        return cls(type="bridged")

    @classmethod
    def nat(cls) -> "NICDeviceParameter":
        return cls(type="nat")

    @classmethod
    def host_only(cls) -> "NICDeviceParameter":
        return cls(type="hostonly")

    @classmethod
    def custom(cls, vmnet: str) -> "NICDeviceParameter":
        return cls(type="custom", vmnet=vmnet)


class VMIPAddress(BaseModel):
    ip: str


class DnsConfig(BaseModel):
    hostname: Optional[str] = None
    domainname: Optional[str] = None
    server: Optional[list[str]] = None
    search: Optional[list[str]] = None


class WinsConfig(BaseModel):
    primary: str
    secondary: str


class DhcpConfig(BaseModel):
    enabled: bool
    setting: str


class RouteEntry(BaseModel):
    dest: str
    prefix: int
    nexthop: Optional[str] = None
    interface: int
    type: int
    metric: int


class NicIpStack(BaseModel):
    mac: str
    ip: Optional[list[str]] = None
    dns: Optional[DnsConfig] = None
    wins: Optional[WinsConfig] = None
    dhcp4: Optional[DhcpConfig] = None
    dhcp6: Optional[DhcpConfig] = None


class NicIpStackAll(BaseModel):
    nics: Optional[list[NicIpStack]] = None
    routes: Optional[list[RouteEntry]] = None
    dns: Optional[DnsConfig] = None
    wins: Optional[WinsConfig] = None
    dhcpv4: Optional[DhcpConfig] = None
    dhcpv6: Optional[DhcpConfig] = None


class SharedFolder(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    folder_id: str = Field(alias="folder_id")
    host_path: str = Field(alias="host_path")
    flags: int

    @property
    def is_read_write(self) -> bool:
        return self.flags == 4


class SharedFolderParameter(BaseModel):
    host_path: str
    flags: int

    @classmethod
    def read_write(cls, host_path: str) -> "SharedFolderParameter":
        return cls(host_path=host_path, flags=4)


class Network(BaseModel):
    name: str
    type: str  # bridged, nat, hostOnly
    dhcp: str  # "true" or "false"
    subnet: str
    mask: str

    @property
    def is_dhcp_enabled(self) -> bool:
        return self.dhcp == "true"

    @property
    def is_bridged(self) -> bool:
        return self.type == "bridged"

    @property
    def is_nat(self) -> bool:
        return self.type == "nat"

    @property
    def is_host_only(self) -> bool:
        return self.type == "hostOnly"


class Networks(BaseModel):
    num: int
    vmnets: list[Network] = Field(default_factory=list)


class CreateVmnetParameter(BaseModel):
    name: str
    type: Optional[str] = None  # nat, hostOnly

    @classmethod
    def nat(cls, name: str) -> "CreateVmnetParameter":
        return cls(name=name, type="nat")

    @classmethod
    def host_only(cls, name: str) -> "CreateVmnetParameter":
        return cls(name=name, type="hostOnly")


class GuestPortforward(BaseModel):
    ip: str
    port: int


class Portforward(BaseModel):
    port: int
    protocol: str  # tcp, udp
    desc: str = ""
    guest: GuestPortforward


class Portforwards(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    num: int
    port_forwardings: list[Portforward] = Field(default_factory=list, alias="port_forwardings")


class PortforwardParameter(BaseModel):
    guestIp: str
    guestPort: int
    desc: Optional[str] = None


class MACToIP(BaseModel):
    vmnet: str
    mac: str
    ip: str


class MACToIPs(BaseModel):
    num: int
    mactoips: list[MACToIP] = Field(default_factory=list)


class MacToIPParameter(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # vmrest expects an upper-case key
    ip: str = Field(alias="IP")
