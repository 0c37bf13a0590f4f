"""
Storage Module - Black Box Interface

Purpose: Abstract all session persistence
Interface: get(), put(), exists(), delete(), count(), cleanup_expired()
Hidden: Redis specifics, in-process expiry bookkeeping, serialization

Can be replaced with any storage backend without affecting other modules.
"""

from .backends import MemorySessionBackend, RedisSessionBackend, SessionBackend, StorageModule

__all__ = ["StorageModule", "SessionBackend", "MemorySessionBackend", "RedisSessionBackend"]
