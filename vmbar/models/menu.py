"""Render-ready menu description."""

from typing import Optional
from pydantic import BaseModel, Field


class MenuEntry(BaseModel):
    title: str
    action: Optional[str] = None  # e.g. "power/on", "grant/tool"
    enabled: bool = True
    checked: bool = False
    icon: Optional[str] = None
    separator: bool = False
    children: list["MenuEntry"] = Field(default_factory=list)


class Menu(BaseModel):
    cycle: int = 0
    entries: list[MenuEntry] = Field(default_factory=list)
