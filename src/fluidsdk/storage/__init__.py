"""Content store backends for feedback files."""

from fluidsdk.storage.base import ContentStore, strip_ipfs_scheme
from fluidsdk.storage.ipfs import IPFS_GATEWAYS, PinataContentStore
from fluidsdk.storage.memory import InMemoryContentStore

__all__ = [
    "ContentStore",
    "InMemoryContentStore",
    "PinataContentStore",
    "IPFS_GATEWAYS",
    "strip_ipfs_scheme",
]
