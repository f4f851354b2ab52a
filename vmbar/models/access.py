"""Access grant models."""

from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class GrantKind(str, Enum):
    TOOL = "tool"
    VM_FOLDER = "vm_folder"


class AccessGrant(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: GrantKind
    root: Path
    token: str  # opaque, as persisted
    is_stale: bool = False


class PendingPrompt(BaseModel):
    kind: GrantKind
    title: str
    start_dir: Optional[Path] = None
    hint: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(tz=timezone.utc))
