"""vmrest endpoint preferences."""

import logging
from typing import Callable, Optional

from .credentials import CredentialStore
from .defaults import DefaultsStore
from .models.preferences import (
    ConnectionTestRequest,
    ConnectionTestResult,
    Preferences,
    PreferencesUpdate,
)
from .utils.validation import validate_host, validate_password, validate_port, validate_username
from .vmrest.errors import VMRestError

logger = logging.getLogger(__name__)

HOST_KEY = "vmrest_host"
PORT_KEY = "vmrest_port"

INVALID_HOST = "Host field contains an invalid IP address or hostname"
INVALID_PORT = "Port must be a number between 1 and 65535"
INVALID_USERNAME = "Username is invalid"
INVALID_PASSWORD = "Password must be between 1 and 255 characters"


class InvalidPreferences(ValueError):
    def __init__(self, errors: list[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


class PreferencesStore:
    def __init__(self, defaults: DefaultsStore, default_host: str = "127.0.0.1", default_port: int = 8697):
        self.defaults = defaults
        self.default_host = default_host
        self.default_port = default_port

    def load(self) -> Preferences:
        host = self.defaults.get(HOST_KEY) or self.default_host
        port = self.defaults.get(PORT_KEY)
        # A hand-edited defaults file may hold anything
        if not validate_port(port):
            port = self.default_port
        return Preferences(vmrest_host=host, vmrest_port=int(port))

    def update(self, update: PreferencesUpdate) -> Preferences:
        """Validate and persist both fields, or persist nothing."""
        errors = []
        if not validate_host(update.vmrest_host):
            errors.append(INVALID_HOST)
        if not validate_port(update.vmrest_port):
            errors.append(INVALID_PORT)
        if errors:
            raise InvalidPreferences(errors)

        self.defaults.set(HOST_KEY, update.vmrest_host.strip())
        self.defaults.set(PORT_KEY, int(update.vmrest_port.strip()))
        prefs = self.load()
        logger.info(f"vmrest endpoint set to {prefs.base_url}")
        return prefs


def validate_connection_request(request: ConnectionTestRequest) -> list[str]:
    errors = []
    if not validate_host(request.vmrest_host):
        errors.append(INVALID_HOST)
    if not validate_port(request.vmrest_port):
        errors.append(INVALID_PORT)
    if not validate_username(request.username):
        errors.append(INVALID_USERNAME)
    if not validate_password(request.password):
        errors.append(INVALID_PASSWORD)
    return errors


async def check_connection(
    request: ConnectionTestRequest,
    client_factory: Callable,
    credentials: Optional[CredentialStore] = None,
) -> ConnectionTestResult:
    """Check that vmrest answers at the requested endpoint with the given credentials.

    When a credential store is passed, the credentials are saved to it
    first, as the preferences window does.
    """
    errors = validate_connection_request(request)
    if errors:
        raise InvalidPreferences(errors)

    username = request.username.strip()
    if credentials is not None and not credentials.save(username, request.password):
        logger.warning("Could not save credentials before testing the connection")

    prefs = Preferences(vmrest_host=request.vmrest_host.strip(), vmrest_port=int(request.vmrest_port.strip()))
    try:
        async with client_factory(prefs.base_url, username, request.password) as client:
            success = await client.test_connection()
    except VMRestError as e:
        logger.info(f"Connection test against {prefs.base_url} failed: {e}")
        success = False

    if success:
        return ConnectionTestResult(
            success=True, message="VMRest API is reachable with the provided credentials."
        )
    return ConnectionTestResult(
        success=False,
        message="Could not connect to VMRest API. Please check host, port, and credentials.",
    )
