"""In-memory view over an uploaded skill archive.

Skills are shipped as zip files. Creators often zip the skill folder itself,
so every entry ends up under one wrapping directory (``myskill/SKILL.md``).
``SkillArchive`` resolves that wrapper once, so lookups such as
``has_file("README.md")`` behave the same whichever way the zip was built.

Reading is best-effort: an entry that cannot be decompressed or is not
UTF-8 text reads as ``None``. Only a zip that cannot be opened at all is an
error (``ArchiveError``).
"""
from __future__ import annotations

import io
import zipfile
import zlib
from collections.abc import Iterable, Iterator

from clawforge.certification.errors import ArchiveError
from clawforge.logging_config import get_logger

logger = get_logger(__name__)

# Errors zipfile can raise for a single bad member without the archive being corrupt
_ENTRY_READ_ERRORS = (
    KeyError,
    UnicodeDecodeError,
    zipfile.BadZipFile,
    zlib.error,
    NotImplementedError,  # unsupported compression method
    RuntimeError,  # encrypted member
    OSError,
)


def resolve_root(paths: list[str]) -> str:
    """Return ``"<dir>/"`` when every path sits under the same top-level dir, else ``""``."""
    if not paths:
        return ""
    first = paths[0].split("/", 1)[0]
    prefix = first + "/"
    if all(p.startswith(prefix) for p in paths):
        return prefix
    return ""


class SkillArchive:
    """Read-only view of a zip archive with a resolved root folder."""

    def __init__(self, zf: zipfile.ZipFile):
        self._zip = zf
        self._names: list[str] = zf.namelist()
        self.files: list[str] = [i.filename for i in zf.infolist() if not i.is_dir()]
        self._file_set = set(self.files)
        self.root: str = resolve_root(self.files)

    @classmethod
    def from_bytes(cls, data: bytes) -> SkillArchive:
        try:
            zf = zipfile.ZipFile(io.BytesIO(data))
        except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError, ValueError) as e:
            raise ArchiveError(f"Not a readable zip archive: {e}") from e
        return cls(zf)

    @property
    def infos(self) -> list[zipfile.ZipInfo]:
        return [i for i in self._zip.infolist() if not i.is_dir()]

    def relative(self, path: str) -> str:
        """Strip the resolved root prefix from an entry path."""
        if self.root and path.startswith(self.root):
            return path[len(self.root):]
        return path

    def has_file(self, relative_path: str) -> bool:
        return (self.root + relative_path) in self._file_set

    def has_dir(self, relative_dir: str) -> bool:
        """True if any entry (file or explicit directory) lives under ``relative_dir``."""
        prefix = self.root + relative_dir.rstrip("/") + "/"
        return any(name.startswith(prefix) for name in self._names)

    def read_text(self, path: str) -> str | None:
        """Read an entry by its full archive path. ``None`` if missing or unreadable."""
        try:
            return self._zip.read(path).decode("utf-8")
        except _ENTRY_READ_ERRORS as e:
            logger.debug("archive_entry_unreadable", path=path, error=str(e))
            return None

    def read_relative(self, relative_path: str) -> str | None:
        return self.read_text(self.root + relative_path)

    def iter_text(self, paths: Iterable[str]) -> Iterator[tuple[str, str]]:
        """Yield ``(path, content)`` for each readable entry, skipping the rest."""
        for path in paths:
            content = self.read_text(path)
            if content is not None:
                yield path, content

    def close(self) -> None:
        self._zip.close()

    def __enter__(self) -> SkillArchive:
        return self

    def __exit__(self, *exc) -> None:
        self.close()
