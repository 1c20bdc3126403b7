"""
Tag registry mapping logical invalidation tags to cached page path specs.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Tuple, Union
import json

from shared.errors import ConfigurationError
from shared.logging import get_logger


class PathKind(str, Enum):
    """Scope of a cached resource template."""

    PAGE = "page"
    LAYOUT = "layout"


@dataclass(frozen=True)
class PathSpec:
    """One class of cacheable rendered output, e.g. the product detail page."""

    route_pattern: str
    kind: PathKind = PathKind.PAGE


class TagRegistryError(ConfigurationError):
    """Raised when a tag registry file cannot be used."""

    def __init__(self, message: str, details: Optional[Dict[str, str]] = None):
        super().__init__(message, details)
        self.code = "TAG_REGISTRY_ERROR"


PRODUCTS_TAG = "products"

DEFAULT_TAG_PATHS: Mapping[str, Tuple[PathSpec, ...]] = {
    PRODUCTS_TAG: (
        PathSpec("/[countryCode]/(main)/store"),
        PathSpec("/[countryCode]/(main)/products/[handle]"),
        PathSpec("/[countryCode]/(main)/categories/[...category]"),
        PathSpec("/[countryCode]/(main)/collections/[handle]"),
        PathSpec("/[countryCode]/(main)/search"),
        PathSpec("/[countryCode]/(main)/results/[query]"),
        PathSpec("/[countryCode]/(main)"),
    ),
}


class TagRegistry:
    """Immutable tag -> path spec lookup table."""

    def __init__(self, mapping: Mapping[str, Iterable[PathSpec]]):
        self._paths = MappingProxyType(
            {tag: tuple(specs) for tag, specs in mapping.items()}
        )

    def resolve(self, tag: str) -> Optional[Tuple[PathSpec, ...]]:
        """Return the path specs for a tag, or None when the tag is unknown."""
        return self._paths.get(tag)

    def tags(self) -> Tuple[str, ...]:
        return tuple(self._paths.keys())

    def as_dict(self) -> Dict[str, list]:
        return {
            tag: [{"route": spec.route_pattern, "kind": spec.kind.value} for spec in specs]
            for tag, specs in self._paths.items()
        }

    def __contains__(self, tag: object) -> bool:
        return tag in self._paths

    def __len__(self) -> int:
        return len(self._paths)


def default_registry() -> TagRegistry:
    """Registry with the built-in tags only."""
    return TagRegistry(DEFAULT_TAG_PATHS)


def load_tag_registry(path: Optional[Union[str, Path]] = None) -> TagRegistry:
    """
    Build the registry from the built-in tags plus an optional JSON file.

    The file holds ``{"tags": {"<tag>": [{"route": "...", "kind": "page"}]}}``.
    Tags defined in the file replace built-in tags of the same name. A missing
    file falls back to the built-in tags; an unreadable or malformed one raises
    TagRegistryError so the service refuses to start.
    """
    logger = get_logger("revalidation.tag_registry")
    mapping: Dict[str, Tuple[PathSpec, ...]] = dict(DEFAULT_TAG_PATHS)

    if path is None:
        return TagRegistry(mapping)

    registry_path = Path(path)
    if not registry_path.exists():
        logger.warning("Tag registry file not found, using built-in tags", path=str(registry_path))
        return TagRegistry(mapping)

    try:
        with registry_path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
    except (ValueError, OSError) as exc:
        raise TagRegistryError(
            "Unable to read tag registry file",
            details={"path": str(registry_path), "error": str(exc)},
        ) from exc

    tags = payload.get("tags") if isinstance(payload, dict) else None
    if not isinstance(tags, dict):
        raise TagRegistryError(
            "Tag registry file must contain a 'tags' object",
            details={"path": str(registry_path)},
        )

    for tag, entries in tags.items():
        # Request tags are trimmed, so a padded or empty key could never match
        if not tag or tag != tag.strip():
            raise TagRegistryError(
                "Tag names must be non-empty and carry no surrounding whitespace",
                details={"path": str(registry_path), "tag": tag},
            )
        mapping[tag] = _parse_entries(tag, entries, registry_path)

    logger.info(
        "Loaded tag registry",
        path=str(registry_path),
        tags=sorted(mapping.keys()),
    )
    return TagRegistry(mapping)


def _parse_entries(tag: str, entries: object, source: Path) -> Tuple[PathSpec, ...]:
    if not isinstance(entries, list) or not entries:
        raise TagRegistryError(
            "Tag must map to a non-empty list of paths",
            details={"path": str(source), "tag": tag},
        )

    specs = []
    for entry in entries:
        if isinstance(entry, str):
            route, kind = entry, PathKind.PAGE.value
        elif isinstance(entry, dict) and isinstance(entry.get("route"), str):
            route, kind = entry["route"], entry.get("kind", PathKind.PAGE.value)
        else:
            raise TagRegistryError(
                "Invalid path entry",
                details={"path": str(source), "tag": tag, "entry": repr(entry)},
            )

        try:
            specs.append(PathSpec(route, PathKind(kind)))
        except ValueError as exc:
            raise TagRegistryError(
                "Unknown path kind",
                details={"path": str(source), "tag": tag, "kind": str(kind)},
            ) from exc

    return tuple(specs)
