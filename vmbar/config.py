"""Application settings."""

from pathlib import Path
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    host: str = "127.0.0.1"
    port: int = 8797
    debug: bool = False
    # Replaces the credential store with an in-memory one and resets saved defaults
    testing: bool = False
    state_dir: Path = Path.home() / ".vmbar"
    keyring_service: str = "vmbar.vmrest"

    # Fallbacks used until the user saves preferences
    vmrest_host: str = "127.0.0.1"
    vmrest_port: int = 8697

    request_timeout: float = 10.0
    tool_timeout: float = 30.0
    prompt_timeout: float = 300.0
    tool_search_start: Path = Path("/Applications")
    eager_disk_loading: bool = True

    model_config = {"env_prefix": "VMBAR_"}

    @property
    def defaults_file(self) -> Path:
        return self.state_dir / "defaults.json"


settings = Settings()
