"""Locating vmcli and VM folders on disk."""

from pathlib import Path, PurePath
from typing import Optional, Union

from ..utils.vmcli import is_executable

VMCLI_NAME = "vmcli"
VM_FOLDER_NAME = "Virtual Machines.localized"


def resolve_tool_path(root: Union[str, Path]) -> Optional[Path]:
    """Find an executable vmcli beneath a granted root.

    The root may be the Fusion app bundle, its Contents directory, the
    Public or Library directory inside it, or the vmcli binary itself.
    """
    base = Path(root).resolve()
    if base.suffix == ".app":
        base = base / "Contents"

    for candidate in (base / "Public" / VMCLI_NAME, base / "Library" / VMCLI_NAME):
        if is_executable(candidate):
            return candidate

    if base.name == VMCLI_NAME and is_executable(base):
        return base

    if base.is_dir():
        direct = base / VMCLI_NAME
        if is_executable(direct):
            return direct
    return None


def vm_folder_start_dir(vmx_path: Optional[str]) -> Optional[Path]:
    """Suggested starting directory when asking for the VM folder."""
    if not vmx_path:
        return None
    path = PurePath(vmx_path)
    parts = path.parts
    if VM_FOLDER_NAME in parts:
        return Path(*parts[: parts.index(VM_FOLDER_NAME) + 1])
    return Path(path.parent)
