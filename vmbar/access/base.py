"""Abstract grant prompter interface."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from ..models.access import GrantKind

PROMPT_TITLES = {
    GrantKind.TOOL: "Select vmcli or VMware Fusion.app",
    GrantKind.VM_FOLDER: "Select VMWare Fusion's configured 'Virtual Machines' folder",
}


class GrantPrompter(ABC):
    """Asks the user to pick the location a grant should cover."""

    @abstractmethod
    async def prompt(self, kind: GrantKind, hint: Optional[str] = None) -> Optional[Path]:
        """Return the picked path, or None if the user declined."""
        ...


class DecliningPrompter(GrantPrompter):
    """Never shows anything; used where no UI is attached."""

    async def prompt(self, kind: GrantKind, hint: Optional[str] = None) -> Optional[Path]:
        return None
