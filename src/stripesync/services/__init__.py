"""
Services for stripesync.
"""

from .firestore import FirestoreDocumentStore
from .memory import InMemoryDocumentStore
from .secrets import SecretManagerService

__all__ = [
    "FirestoreDocumentStore",
    "InMemoryDocumentStore",
    "SecretManagerService",
]
