"""Image import: unit-id prefixes and matching files in the import folder."""

from .matcher import IMAGE_EXTENSIONS, FileSystem, LocalFileSystem, MatchResult, match_images
from .prefix import resolve_image_prefix

__all__ = [
    "IMAGE_EXTENSIONS",
    "FileSystem",
    "LocalFileSystem",
    "MatchResult",
    "match_images",
    "resolve_image_prefix",
]
