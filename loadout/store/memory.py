"""In-memory module store."""

from typing import Iterable, Optional

from loadout.errors import MissingTierError
from loadout.schemas import Module
from loadout.store.base import BaseModuleStore


class InMemoryModuleStore(BaseModuleStore):
    """Module store backed by Module objects held in memory.

    Tier content comes from Tier.content, or from the optional contents map
    keyed by (module_id, level). Useful for embedding and for tests.
    """

    def __init__(
        self,
        modules: Iterable[Module],
        contents: Optional[dict[tuple[str, int], bytes]] = None,
    ):
        super().__init__()
        self._source_modules = list(modules)
        self._contents = dict(contents or {})

    def _scan(self) -> Iterable[Module]:
        return list(self._source_modules)

    def _lookup(self, module: Module, level: int) -> Optional[bytes]:
        tier = module.tier(level)
        if tier.content is not None:
            return tier.content
        return self._contents.get((module.id, level))

    def _check_tier(self, module: Module, level: int) -> None:
        if self._lookup(module, level) is None:
            raise MissingTierError(module.id, level)

    def _read_tier(self, module: Module, level: int) -> bytes:
        content = self._lookup(module, level)
        if content is None:
            raise MissingTierError(module.id, level)
        return content
