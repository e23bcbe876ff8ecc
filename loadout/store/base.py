"""Shared module store machinery: manifest index and lazy content cache."""

import logging
import threading
from typing import Iterable

from loadout.errors import ManifestError, NotFoundError
from loadout.schemas import Module

logger = logging.getLogger(__name__)


class BaseModuleStore:
    """Base class for module stores.

    Responsibilities:
    - Eager manifest scan and validation (load)
    - Manifest lookup by id
    - Lazy, read-once tier content cache shared by all sessions

    Subclasses implement _scan() and _read_tier(). Both may raise
    ConfigurationError; _read_tier is only called after load() validated that
    the content exists.
    """

    def __init__(self) -> None:
        self._modules: dict[str, Module] = {}
        self._loaded = False
        self._content: dict[tuple[str, int], bytes] = {}
        self._key_locks: dict[tuple[str, int], threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _scan(self) -> Iterable[Module]:
        raise NotImplementedError

    def _check_tier(self, module: Module, level: int) -> None:
        """Raise MissingTierError if the tier's content cannot be read."""
        raise NotImplementedError

    def _read_tier(self, module: Module, level: int) -> bytes:
        raise NotImplementedError

    def load(self) -> list[Module]:
        """Scan all manifests, validate them and index them by id.

        Returns:
            Modules in scan order

        Raises:
            ConfigurationError: On duplicate ids, malformed manifests or
                missing tier content
        """
        modules: dict[str, Module] = {}
        for module in self._scan():
            if module.id in modules:
                raise ManifestError(module.id, "duplicate module id")
            for tier in module.tiers:
                self._check_tier(module, tier.level)
            modules[module.id] = module

        self._modules = modules
        self._loaded = True
        logger.info(f"{type(self).__name__} loaded {len(modules)} modules")
        return list(modules.values())

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.load()

    def list_ids(self) -> list[str]:
        self._ensure_loaded()
        return list(self._modules)

    def get_manifest(self, module_id: str) -> Module:
        """Return the manifest for module_id.

        Raises:
            NotFoundError: If module_id is unknown
        """
        self._ensure_loaded()
        try:
            return self._modules[module_id]
        except KeyError:
            raise NotFoundError(f"Unknown module '{module_id}'") from None

    def get_tier_content(self, module_id: str, level: int) -> bytes:
        """Return tier content, reading it on first access only.

        Concurrent first access to the same (module_id, level) performs a
        single read; other callers wait on the per-key lock and reuse it.

        Raises:
            NotFoundError: If module_id or level is unknown
        """
        module = self.get_manifest(module_id)
        module.tier(level)

        key = (module_id, level)
        cached = self._content.get(key)
        if cached is not None:
            return cached

        with self._locks_guard:
            lock = self._key_locks.setdefault(key, threading.Lock())

        with lock:
            cached = self._content.get(key)
            if cached is not None:
                return cached
            content = self._read_tier(module, level)
            self._content[key] = content
            logger.debug(f"Read tier content {module_id}@{level} ({len(content)} bytes)")

        with self._locks_guard:
            self._key_locks.pop(key, None)
        return content

    def is_cached(self, module_id: str, level: int) -> bool:
        return (module_id, level) in self._content
