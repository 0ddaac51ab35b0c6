"""File system access abstraction.

The resolver never touches the disk directly for lookups; it goes through a
FileProvider so the same resolution logic runs against the real file system
or an in-memory tree in tests.
"""

import errno
import os
from abc import ABC, abstractmethod
from pathlib import Path, PurePath

from .errors import FileNotFoundInProviderError, FileProviderError, PermissionDeniedError


def normalize_path(path: PurePath) -> Path:
    """Fold "." and ".." components lexically, without touching the disk."""
    parts: list[str] = []
    anchor = path.anchor
    for part in path.parts[1:] if anchor else path.parts:
        if part in ("", "."):
            continue
        if part == "..":
            if parts and parts[-1] != "..":
                parts.pop()
            elif not anchor:
                parts.append("..")
            continue
        parts.append(part)
    return Path(anchor, *parts) if (anchor or parts) else Path(".")


class FileProvider(ABC):
    """Abstract file system capability set used by load resolvers."""

    @abstractmethod
    def read_file(self, path: Path) -> str:
        """Read the contents of a file."""
        pass

    @abstractmethod
    def exists(self, path: Path) -> bool:
        """Check if a file or directory exists."""
        pass

    @abstractmethod
    def is_directory(self, path: Path) -> bool:
        """Check if a path is a directory."""
        pass

    @abstractmethod
    def list_directory(self, path: Path) -> list[Path]:
        """List the entries of a directory."""
        pass

    @abstractmethod
    def canonicalize(self, path: Path) -> Path:
        """Make a path absolute and canonical."""
        pass


class DefaultFileProvider(FileProvider):
    """FileProvider backed by the real file system."""

    @staticmethod
    def _translate(path: Path, e: OSError) -> FileProviderError:
        if isinstance(e, FileNotFoundError):
            return FileNotFoundInProviderError(path)
        if isinstance(e, PermissionError):
            return PermissionDeniedError(path)
        return FileProviderError(str(e))

    def read_file(self, path: Path) -> str:
        try:
            return Path(path).read_text(encoding="utf-8")
        except OSError as e:
            raise self._translate(path, e) from e

    def exists(self, path: Path) -> bool:
        return Path(path).exists()

    def is_directory(self, path: Path) -> bool:
        return Path(path).is_dir()

    def list_directory(self, path: Path) -> list[Path]:
        try:
            return sorted(Path(path).iterdir())
        except OSError as e:
            raise self._translate(path, e) from e

    def canonicalize(self, path: Path) -> Path:
        """Resolve symlinks; paths that do not exist yet are normalized lexically."""
        path = Path(path)
        try:
            return path.resolve(strict=True)
        except FileNotFoundError:
            return normalize_path(Path(os.path.abspath(path)))
        except PermissionError as e:
            raise PermissionDeniedError(path) from e
        except OSError as e:
            if e.errno == errno.ENOTDIR:
                return normalize_path(Path(os.path.abspath(path)))
            raise FileProviderError(str(e)) from e


class InMemoryFileProvider(FileProvider):
    """FileProvider over a dict of absolute POSIX paths to file contents.

    Directories are implied by the files beneath them.

    Example:
        >>> fp = InMemoryFileProvider({"/ws/pcb.toml": "[workspace]", "/ws/a.zen": ""})
        >>> fp.is_directory(Path("/ws"))
        True
    """

    def __init__(self, files: dict[str, str] | None = None):
        self._files: dict[Path, str] = {}
        for name, content in (files or {}).items():
            self.add_file(name, content)

    def add_file(self, path: str | Path, content: str = "") -> None:
        self._files[normalize_path(PurePath(path))] = content

    def _key(self, path: Path) -> Path:
        return normalize_path(PurePath(path))

    def read_file(self, path: Path) -> str:
        key = self._key(path)
        if key not in self._files:
            raise FileNotFoundInProviderError(path)
        return self._files[key]

    def exists(self, path: Path) -> bool:
        key = self._key(path)
        return key in self._files or self.is_directory(key)

    def is_directory(self, path: Path) -> bool:
        key = self._key(path)
        return any(key in f.parents for f in self._files)

    def list_directory(self, path: Path) -> list[Path]:
        key = self._key(path)
        if not self.is_directory(key):
            raise FileNotFoundInProviderError(path)
        children = set()
        for f in self._files:
            if key in f.parents:
                rel = f.relative_to(key)
                children.add(key / rel.parts[0])
        return sorted(children)

    def canonicalize(self, path: Path) -> Path:
        path = PurePath(path)
        if not path.is_absolute():
            path = PurePath("/") / path
        return normalize_path(path)
