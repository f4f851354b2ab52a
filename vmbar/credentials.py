"""vmrest credential storage."""

import logging
from abc import ABC, abstractmethod
from typing import NamedTuple, Optional

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

logger = logging.getLogger(__name__)

# The username lives under this account so it can be found without knowing it
USERNAME_ACCOUNT = "__username__"


class Credentials(NamedTuple):
    username: str
    password: str


class CredentialStore(ABC):
    """A single username/password pair namespaced by service."""

    @abstractmethod
    def get(self) -> Optional[Credentials]:
        ...

    @abstractmethod
    def save(self, username: str, password: str) -> bool:
        """Store the pair, replacing whatever was there."""
        ...

    @abstractmethod
    def delete(self) -> bool:
        """Remove the pair. Deleting nothing counts as success."""
        ...


class KeyringCredentialStore(CredentialStore):
    def __init__(self, service: str = "vmbar.vmrest"):
        self.service = service

    def get(self) -> Optional[Credentials]:
        try:
            username = keyring.get_password(self.service, USERNAME_ACCOUNT)
            if not username:
                return None
            password = keyring.get_password(self.service, username)
        except KeyringError as e:
            logger.error(f"Failed to read credentials for {self.service}: {e}")
            return None
        if password is None:
            return None
        return Credentials(username, password)

    def save(self, username: str, password: str) -> bool:
        if not self.delete():
            return False
        try:
            keyring.set_password(self.service, username, password)
            keyring.set_password(self.service, USERNAME_ACCOUNT, username)
        except KeyringError as e:
            logger.error(f"Failed to store credentials for {self.service}: {e}")
            return False
        logger.info(f"Credentials stored in system keyring for {self.service}")
        return True

    def delete(self) -> bool:
        try:
            username = keyring.get_password(self.service, USERNAME_ACCOUNT)
            for account in filter(None, (username, USERNAME_ACCOUNT)):
                try:
                    keyring.delete_password(self.service, account)
                except PasswordDeleteError:
                    pass  # already gone
        except KeyringError as e:
            logger.error(f"Failed to delete credentials for {self.service}: {e}")
            return False
        return True


class InMemoryCredentialStore(CredentialStore):
    def __init__(self, credentials: Optional[Credentials] = None):
        self.credentials = credentials

    def get(self) -> Optional[Credentials]:
        return self.credentials

    def save(self, username: str, password: str) -> bool:
        self.credentials = Credentials(username, password)
        return True

    def delete(self) -> bool:
        self.credentials = None
        return True
