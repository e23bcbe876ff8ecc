"""Module store backends."""

from loadout.store.base import BaseModuleStore
from loadout.store.filesystem import FileSystemModuleStore
from loadout.store.memory import InMemoryModuleStore

__all__ = ["BaseModuleStore", "FileSystemModuleStore", "InMemoryModuleStore"]
