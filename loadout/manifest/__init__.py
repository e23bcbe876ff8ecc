"""Module manifest parsing."""

from loadout.manifest.loader import (
    load_document_file,
    load_manifest_file,
    load_module_dir,
    parse_manifest,
    read_tier_source,
    split_frontmatter,
)

__all__ = [
    "load_document_file",
    "load_manifest_file",
    "load_module_dir",
    "parse_manifest",
    "read_tier_source",
    "split_frontmatter",
]
