"""
Session credential lifecycle.

The store and its persistence backends are re-exported here; the guard and
account flows depend on the transport and are imported from their modules.
"""

from .persistence import EncryptedFileSessionBackend, MemorySessionBackend
from .store import CredentialStore, SessionStatus

__all__ = ["CredentialStore", "SessionStatus", "EncryptedFileSessionBackend", "MemorySessionBackend"]
