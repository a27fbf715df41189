from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Protocol, Tuple

from kielcleanup.core.errors import ImageImportError

log = logging.getLogger("kielcleanup.images")

IMAGE_EXTENSIONS: Tuple[str, ...] = (".jpg", ".jpeg", ".tif", ".tiff")


class FileSystem(Protocol):
    """File operations needed to import images."""

    def list_files(self, directory: Path, extensions: Iterable[str]) -> List[Path]:
        ...

    def create_directories(self, path: Path) -> None:
        ...

    def copy_file(self, src: Path, dst: Path) -> None:
        ...


class LocalFileSystem:
    """FileSystem on the local disk.

    Extension matching is case-sensitive ("scan.TIF" is not an image).
    Listings are sorted by name so copy order is deterministic.
    """

    def list_files(self, directory: Path, extensions: Iterable[str]) -> List[Path]:
        exts = tuple(extensions)
        return sorted(
            (p for p in Path(directory).iterdir() if p.is_file() and p.name.endswith(exts)),
            key=lambda p: p.name,
        )

    def create_directories(self, path: Path) -> None:
        Path(path).mkdir(parents=True, exist_ok=True)

    def copy_file(self, src: Path, dst: Path) -> None:
        shutil.copy2(src, dst)


@dataclass(frozen=True)
class MatchResult:
    """Outcome of an image import.

    Time:  O(1)
    Space: O(k) for k copied files
    """

    prefix: str
    copied: Tuple[str, ...] = ()

    @property
    def found(self) -> bool:
        return bool(self.copied)


def match_images(
    prefix: str,
    import_folder: str | Path,
    target_folder: str | Path,
    *,
    fs: Optional[FileSystem] = None,
    extensions: Iterable[str] = IMAGE_EXTENSIONS,
) -> MatchResult:
    """Copy import images whose filename starts with `prefix` into the target folder.

    An empty prefix does nothing. Otherwise the target folder is created if
    missing, then every image in the import folder whose name starts with the
    prefix (case-sensitive) is copied under the same name.

    Raises
    - ImageImportError: on the first listing or copy failure; remaining files
      are not attempted.

    Time:  O(n) for n files in the import folder
    Space: O(n)
    """

    if not prefix:
        return MatchResult(prefix="")

    fs = fs or LocalFileSystem()
    source = Path(import_folder)
    target = Path(target_folder)
    copied: List[str] = []

    try:
        fs.create_directories(target)
        for path in fs.list_files(source, extensions):
            name = path.name
            if not name.startswith(prefix):
                continue
            fs.copy_file(path, target / name)
            copied.append(name)
            log.debug("copied image %s to %s", name, target)
    except OSError as e:
        raise ImageImportError(f"image import from {source} failed: {e}") from e

    log.info("image import for prefix %s copied %d file(s)", prefix, len(copied))
    return MatchResult(prefix=prefix, copied=tuple(copied))
