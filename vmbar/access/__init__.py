"""Access to the vmcli tool and VM folders."""

from .base import PROMPT_TITLES, DecliningPrompter, GrantPrompter
from .broker import AccessToken, ResourceAccessBroker
from .paths import resolve_tool_path, vm_folder_start_dir
from .prompts import PendingPromptQueue
from .store import GrantStore

__all__ = [
    "PROMPT_TITLES",
    "DecliningPrompter",
    "GrantPrompter",
    "AccessToken",
    "ResourceAccessBroker",
    "resolve_tool_path",
    "vm_folder_start_dir",
    "PendingPromptQueue",
    "GrantStore",
]
