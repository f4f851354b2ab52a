"""Preferences and credential request models."""

from pydantic import BaseModel


class Preferences(BaseModel):
    vmrest_host: str
    vmrest_port: int

    @property
    def base_url(self) -> str:
        host = self.vmrest_host
        if ":" in host:
            host = f"[{host}]"  # IPv6 literal
        return f"http://{host}:{self.vmrest_port}"


class PreferencesUpdate(BaseModel):
    vmrest_host: str
    vmrest_port: str


class CredentialsRequest(BaseModel):
    username: str
    password: str


class ConnectionTestRequest(BaseModel):
    vmrest_host: str
    vmrest_port: str
    username: str
    password: str


class ConnectionTestResult(BaseModel):
    success: bool
    message: str
