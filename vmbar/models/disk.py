"""Virtual disk models."""

from enum import Enum
from pathlib import PurePath
from typing import Optional
from pydantic import BaseModel, ConfigDict

PERSISTENT_MODE_VALUE = "independent-persistent"
NONPERSISTENT_MODE_VALUE = "independent-nonpersistent"


class DiskMode(str, Enum):
    PERSISTENT = "persistent"
    NONPERSISTENT = "nonpersistent"
    UNKNOWN = "unknown"


def normalized_mode(raw: Optional[str]) -> DiskMode:
    """Collapse a backend disk mode string into persistent/nonpersistent/unknown.

    "nonpersistent" contains "persistent", so it has to be checked first.
    """
    if raw is None:
        return DiskMode.UNKNOWN
    lowered = raw.lower()
    if "nonpersistent" in lowered:
        return DiskMode.NONPERSISTENT
    if "persistent" in lowered:
        return DiskMode.PERSISTENT
    return DiskMode.UNKNOWN


class DiskRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str  # e.g. "nvme0:0"
    file_name: str  # e.g. "Virtual Disk.vmdk"
    raw_mode: Optional[str] = None  # e.g. "independent-nonpersistent"

    @property
    def normalized_mode(self) -> DiskMode:
        return normalized_mode(self.raw_mode)

    @property
    def title(self) -> str:
        name = PurePath(self.file_name).name
        return f"{self.key} - {name}" if name else self.key
