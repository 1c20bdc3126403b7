"""
Tag registry package.

Maps logical invalidation tags (e.g. ``products``) to the page route
templates whose cached renders must be revalidated. Adding a tag is a data
change: extend ``DEFAULT_TAG_PATHS`` or point ``TAG_REGISTRY_FILE`` at a
JSON file.
"""

from .registry import (
    DEFAULT_TAG_PATHS,
    PRODUCTS_TAG,
    PathKind,
    PathSpec,
    TagRegistry,
    TagRegistryError,
    default_registry,
    load_tag_registry,
)

__all__ = [
    "DEFAULT_TAG_PATHS",
    "PRODUCTS_TAG",
    "PathKind",
    "PathSpec",
    "TagRegistry",
    "TagRegistryError",
    "default_registry",
    "load_tag_registry",
]
