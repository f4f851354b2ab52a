"""Parse vmcli "ConfigParams query" output and extract virtual disks.

Each meaningful line of the dump looks like::

    'nvme0:0.fileName': 'Virtual Disk.vmdk'
    'nvme0:0.mode': independent-nonpersistent
    'nvme0:0.present': TRUE

Keys are single-quoted, values may or may not be. Everything is kept as
text; lines that do not match are dropped. All functions here are pure.
"""

import re

from ..models.disk import DiskRecord, normalized_mode

__all__ = ["parse", "disks", "natural_key", "normalized_mode"]

QUOTE = "'"
FILE_NAME_SUFFIX = ".fileName"
MODE_SUFFIX = ".mode"
DISK_EXTENSION = ".vmdk"

_DIGITS = re.compile(r"(\d+)")


def parse(output: str) -> dict[str, str]:
    """Turn the raw dump into a key/value mapping. Later duplicates win."""
    config: dict[str, str] = {}
    for raw_line in output.splitlines():
        line = raw_line.strip()
        if not line or not line.startswith(QUOTE):
            continue

        key_end = line.find(QUOTE, 1)
        if key_end == -1:
            continue
        key = line[1:key_end]

        colon = line.find(":", key_end)
        if colon == -1:
            continue
        value = line[colon + 1:].strip()
        if len(value) >= 2 and value.startswith(QUOTE) and value.endswith(QUOTE):
            value = value[1:-1]

        config[key] = value
    return config


def natural_key(text: str) -> tuple:
    """Sort key comparing digit runs as numbers, so "nvme0:9" < "nvme0:10"."""
    parts = _DIGITS.split(text.lower())
    # split() with a group puts digit runs at odd indexes, so types line up
    return tuple(int(part) if i % 2 else part for i, part in enumerate(parts))


def disks(config: dict[str, str]) -> list[DiskRecord]:
    """Collect one record per ``<controller>:<unit>.fileName`` entry backed by a .vmdk."""
    records = []
    for key, value in config.items():
        if not key.endswith(FILE_NAME_SUFFIX) or not value.endswith(DISK_EXTENSION):
            continue
        address = key[: -len(FILE_NAME_SUFFIX)]
        if ":" not in address:
            continue
        records.append(DiskRecord(
            key=address,
            file_name=value,
            raw_mode=config.get(f"{address}{MODE_SUFFIX}"),
        ))
    return sorted(records, key=lambda record: natural_key(record.key))
