"""Manifest parsing for module directories.

Two authoring formats are supported.

**module.yaml (explicit tiers):**
```yaml
id: aws-access          # defaults to the directory name
kind: skill             # defaults to the parent directory (skills/ -> skill)
description: Connect to AWS accounts and RDS instances
depends_on: [environment-management]
triggers: [aws, rds, sso]
tiers:
  - file: metadata.md   # level 1
    size: 120           # optional; defaults to the file's byte size
  - file: summary.md    # level 2
  - file: references/rds.md
```

**SKILL.md / AGENT.md / COMMAND.md (progressive disclosure):**
```markdown
---
name: aws-access
description: Connect to AWS accounts and RDS instances
depends_on: [environment-management]
triggers: [aws, rds]
---

Summary body...
```
Tier 1 is the frontmatter block, tier 2 the markdown body (when non-empty),
tiers 3..N the files in references/ sorted by name.
"""

import logging
import re
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from loadout.config import ModuleKind
from loadout.errors import ManifestError, MissingTierError
from loadout.schemas import Module, Tier

logger = logging.getLogger(__name__)

MANIFEST_FILE = "module.yaml"
DOCUMENT_FILES: dict[ModuleKind, str] = {
    ModuleKind.AGENT: "AGENT.md",
    ModuleKind.SKILL: "SKILL.md",
    ModuleKind.COMMAND: "COMMAND.md",
}
KIND_BY_DOCUMENT = {name: kind for kind, name in DOCUMENT_FILES.items()}
REFERENCES_DIR = "references"
FRONTMATTER = "frontmatter"
BODY = "body"
FRONTMATTER_PATTERN = re.compile(
    r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)(.*)\Z",
    re.DOTALL,
)


def split_frontmatter(content: str) -> tuple[str, str]:
    """Split YAML frontmatter from a markdown body.

    The frontmatter is closed by the first line consisting of `---` alone;
    `---` inside a value does not end it.

    Returns:
        Tuple of (frontmatter, body). Empty frontmatter if not found.
    """
    match = FRONTMATTER_PATTERN.match(content)
    if match is None:
        return "", content.strip()

    return match.group(1).strip(), match.group(2).strip()


def _as_list(value: Any, field: str, module_id: Optional[str]) -> list[str]:
    """Normalize a YAML scalar, comma-separated string or list into a list of strings."""
    if value is None:
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    if isinstance(value, (list, tuple)):
        return [str(item).strip() for item in value if str(item).strip()]
    raise ManifestError(module_id, f"'{field}' must be a list or string, got {type(value).__name__}")


def _build_module(fields: dict[str, Any]) -> Module:
    """Validate fields into a Module, naming the module on failure."""
    try:
        return Module.model_validate(fields)
    except ValidationError as e:
        raise ManifestError(fields.get("id"), f"invalid manifest: {e}") from e


def _resolve_kind(
    declared: Any,
    default_kind: Optional[ModuleKind],
    module_id: Optional[str],
) -> ModuleKind:
    if declared is None:
        if default_kind is None:
            raise ManifestError(module_id, "'kind' is required")
        return default_kind
    try:
        kind = ModuleKind(str(declared).strip().lower())
    except ValueError:
        allowed = ", ".join(k.value for k in ModuleKind)
        raise ManifestError(module_id, f"unknown kind {declared!r} (expected one of {allowed})") from None
    if default_kind is not None and kind != default_kind:
        raise ManifestError(
            module_id,
            f"kind '{kind.value}' does not match its directory ('{default_kind.value}s/')",
        )
    return kind


def _tier_from_entry(
    entry: Any,
    index: int,
    module_id: str,
    base_dir: Optional[Path],
) -> dict[str, Any]:
    """Turn one `tiers:` entry into Tier fields."""
    if isinstance(entry, str):
        entry = {"file": entry}
    if not isinstance(entry, dict):
        raise ManifestError(module_id, f"tier entry #{index + 1} must be a mapping or file name")

    level = entry.get("level", index + 1)
    size = entry.get("size", entry.get("size_cost"))

    if "content" in entry:
        content = str(entry["content"]).encode("utf-8")
        return {
            "level": level,
            "size_cost": len(content) if size is None else size,
            "content": content,
        }

    file_name = entry.get("file")
    if not file_name:
        raise ManifestError(module_id, f"tier entry #{index + 1} needs 'file' or 'content'")

    path = Path(file_name)
    if base_dir is not None and not path.is_absolute():
        path = base_dir / path
    if size is None:
        if not path.is_file():
            raise MissingTierError(module_id, level, str(path))
        size = path.stat().st_size
    return {"level": level, "size_cost": size, "source": str(path)}


def parse_manifest(
    data: Any,
    *,
    default_id: Optional[str] = None,
    default_kind: Optional[ModuleKind] = None,
    base_dir: Optional[Path] = None,
) -> Module:
    """Parse an explicit manifest mapping into a Module.

    Args:
        data: Mapping loaded from module.yaml
        default_id: Id used when the manifest has none (the directory name)
        default_kind: Kind implied by the parent directory, if any
        base_dir: Directory that tier file paths are relative to

    Raises:
        ManifestError: If the manifest is malformed
        MissingTierError: If a tier file without an explicit size is absent
    """
    if not isinstance(data, dict):
        raise ManifestError(default_id, "manifest must be a mapping")

    module_id = str(data.get("id") or default_id or "").strip() or None
    if module_id is None:
        raise ManifestError(None, "'id' is required")

    kind = _resolve_kind(data.get("kind"), default_kind, module_id)

    raw_tiers = data.get("tiers")
    if not isinstance(raw_tiers, list) or not raw_tiers:
        raise ManifestError(module_id, "'tiers' must be a non-empty list")

    tiers = [
        _tier_from_entry(entry, index, module_id, base_dir)
        for index, entry in enumerate(raw_tiers)
    ]

    return _build_module({
        "id": module_id,
        "kind": kind,
        "dependencies": _as_list(data.get("depends_on", data.get("dependencies")), "depends_on", module_id),
        "trigger_terms": _as_list(data.get("triggers", data.get("trigger_terms")), "triggers", module_id),
        "description": str(data.get("description") or ""),
        "tiers": tiers,
    })


def load_manifest_file(path: Path, default_kind: Optional[ModuleKind] = None) -> Module:
    """Load a module.yaml file."""
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ManifestError(path.parent.name, f"invalid YAML in {path}: {e}") from e
    except UnicodeDecodeError as e:
        raise ManifestError(path.parent.name, f"{path} is not valid UTF-8: {e}") from e
    except OSError as e:
        raise ManifestError(path.parent.name, f"cannot read {path}: {e}") from e

    return parse_manifest(
        data,
        default_id=path.parent.name,
        default_kind=default_kind,
        base_dir=path.parent,
    )


def load_document_file(path: Path, default_kind: Optional[ModuleKind] = None) -> Module:
    """Load a SKILL.md-style document with YAML frontmatter.

    Raises:
        ManifestError: If the frontmatter is missing or malformed
    """
    module_dir = path.parent
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ManifestError(module_dir.name, f"{path} is not valid UTF-8: {e}") from e
    except OSError as e:
        raise ManifestError(module_dir.name, f"cannot read {path}: {e}") from e

    frontmatter, body = split_frontmatter(text)
    if not frontmatter:
        raise ManifestError(module_dir.name, f"no frontmatter found in {path}")

    try:
        meta = yaml.safe_load(frontmatter)
    except yaml.YAMLError as e:
        raise ManifestError(module_dir.name, f"invalid YAML frontmatter in {path}: {e}") from e
    if not isinstance(meta, dict):
        raise ManifestError(module_dir.name, f"frontmatter in {path} must be a mapping")

    module_id = str(meta.get("name") or meta.get("id") or module_dir.name).strip()
    implied_kind = default_kind or KIND_BY_DOCUMENT.get(path.name)
    kind = _resolve_kind(meta.get("kind"), implied_kind, module_id)

    tiers: list[dict[str, Any]] = [{
        "level": 1,
        "size_cost": len(frontmatter.encode("utf-8")),
        "source": str(path),
        "section": FRONTMATTER,
    }]
    if body:
        tiers.append({
            "level": 2,
            "size_cost": len(body.encode("utf-8")),
            "source": str(path),
            "section": BODY,
        })

    references_dir = module_dir / REFERENCES_DIR
    if references_dir.is_dir():
        if not body:
            raise ManifestError(module_id, f"{path.name} has references/ but an empty body")
        for ref in sorted(p for p in references_dir.iterdir() if p.is_file()):
            tiers.append({
                "level": len(tiers) + 1,
                "size_cost": ref.stat().st_size,
                "source": str(ref),
            })

    module = _build_module({
        "id": module_id,
        "kind": kind,
        "dependencies": _as_list(meta.get("depends_on", meta.get("dependencies")), "depends_on", module_id),
        "trigger_terms": _as_list(meta.get("triggers", meta.get("trigger_terms")), "triggers", module_id),
        "description": str(meta.get("description") or ""),
        "tiers": tiers,
    })
    logger.debug(f"Loaded {path.name} '{module.id}' with {module.max_level} tiers from {path}")
    return module


def load_module_dir(path: Path, default_kind: Optional[ModuleKind] = None) -> Optional[Module]:
    """Load the module defined in a directory, or None if it defines none.

    module.yaml takes precedence over a SKILL.md-style document.

    Raises:
        ManifestError: If the directory only holds another kind's document
    """
    manifest = path / MANIFEST_FILE
    if manifest.is_file():
        return load_manifest_file(manifest, default_kind)

    if default_kind is None:
        for name in DOCUMENT_FILES.values():
            if (path / name).is_file():
                return load_document_file(path / name)
        return None

    expected = DOCUMENT_FILES[default_kind]
    if (path / expected).is_file():
        return load_document_file(path / expected, default_kind)

    misplaced = [name for name in DOCUMENT_FILES.values() if (path / name).is_file()]
    if misplaced:
        raise ManifestError(
            path.name,
            f"{misplaced[0]} found in {default_kind.value}s/ directory {path}; "
            f"expected {expected} or {MANIFEST_FILE}",
        )
    return None


def read_tier_source(tier: Tier) -> bytes:
    """Read the bytes of a file-backed tier.

    Raises:
        OSError: If the source file cannot be read
    """
    if tier.content is not None:
        return tier.content
    if tier.source is None:
        raise ValueError(f"Tier {tier.level} has neither content nor source")

    path = Path(tier.source)
    if tier.section is None:
        return path.read_bytes()

    frontmatter, body = split_frontmatter(path.read_text(encoding="utf-8"))
    if tier.section == FRONTMATTER:
        return frontmatter.encode("utf-8")
    if tier.section == BODY:
        return body.encode("utf-8")
    raise ValueError(f"Unknown tier section {tier.section!r}")
