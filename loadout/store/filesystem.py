"""Filesystem-backed module store."""

import logging
from pathlib import Path
from typing import Iterable

from loadout.config import ModuleKind
from loadout.errors import ConfigurationError, MissingTierError
from loadout.manifest.loader import load_module_dir, read_tier_source
from loadout.schemas import Module
from loadout.store.base import BaseModuleStore

logger = logging.getLogger(__name__)


class FileSystemModuleStore(BaseModuleStore):
    """Module store reading a directory tree.

    Layout:
        <root>/agents/<id>/    module.yaml or AGENT.md
        <root>/skills/<id>/    module.yaml or SKILL.md (+ references/)
        <root>/commands/<id>/  module.yaml or COMMAND.md

    Manifests are scanned eagerly; tier files are only read when requested.
    """

    def __init__(self, root: Path | str):
        super().__init__()
        self.root = Path(root)

    def _scan(self) -> Iterable[Module]:
        if not self.root.is_dir():
            raise ConfigurationError(f"Module root {self.root} is not a directory")

        modules: list[Module] = []
        for kind in ModuleKind:
            kind_dir = self.root / f"{kind.value}s"
            if not kind_dir.is_dir():
                continue
            for entry in sorted(kind_dir.iterdir()):
                if not entry.is_dir() or entry.name.startswith("."):
                    continue
                module = load_module_dir(entry, kind)
                if module is None:
                    logger.debug(f"Skipping {entry}: no manifest found")
                    continue
                modules.append(module)
        return modules

    def _check_tier(self, module: Module, level: int) -> None:
        tier = module.tier(level)
        if tier.content is not None:
            return
        if tier.source is None or not Path(tier.source).is_file():
            raise MissingTierError(module.id, level, tier.source or "")

    def _read_tier(self, module: Module, level: int) -> bytes:
        tier = module.tier(level)
        try:
            return read_tier_source(tier)
        except OSError as e:
            raise MissingTierError(module.id, level, tier.source or "") from e
