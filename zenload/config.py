"""pcb.toml project manifest and workspace root detection."""

import logging
import tomllib
from collections.abc import Iterable
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from .errors import ConfigError, FileProviderError, WorkspaceDetectionError
from .file_provider import FileProvider

logger = logging.getLogger(__name__)

PCB_TOML = "pcb.toml"


class WorkspaceConfig(BaseModel):
    """Configuration for the [workspace] section."""

    name: str | None = None
    members: list[str] = Field(default_factory=lambda: ["boards/*"])
    default_board: str | None = None


class ModuleConfig(BaseModel):
    """Configuration for the [module] section."""

    name: str


class BoardConfig(BaseModel):
    """Configuration for the [board] section."""

    name: str
    path: str
    description: str = ""


class PcbToml(BaseModel):
    """Complete representation of a pcb.toml file.

    Attributes:
        workspace: [workspace] section, marks the directory as a workspace root
        module: [module] section
        board: [board] section
        packages: [packages] table mapping alias name to target reference
    """

    workspace: WorkspaceConfig | None = None
    module: ModuleConfig | None = None
    board: BoardConfig | None = None
    packages: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def parse(cls, content: str, source: Path | None = None) -> "PcbToml":
        """Parse pcb.toml content.

        Args:
            content: TOML text
            source: File the content came from, used in error messages

        Raises:
            ConfigError: If the TOML is malformed or has the wrong shape
        """
        where = f" ({source})" if source else ""
        try:
            data = tomllib.loads(content)
            return cls.model_validate(data)
        except (tomllib.TOMLDecodeError, ValidationError) as e:
            raise ConfigError(f"Failed to parse pcb.toml{where}: {e}") from e

    @classmethod
    def from_file(cls, file_provider: FileProvider, path: Path) -> "PcbToml":
        """Read and parse a pcb.toml file through a FileProvider."""
        try:
            content = file_provider.read_file(path)
        except FileProviderError as e:
            raise ConfigError(f"Failed to read {path}: {e}") from e
        return cls.parse(content, source=path)

    def is_workspace(self) -> bool:
        return self.workspace is not None

    def is_module(self) -> bool:
        return self.module is not None

    def is_board(self) -> bool:
        return self.board is not None


def find_workspace_root(file_provider: FileProvider, start: Path) -> Path:
    """Walk up from `start` to the first directory whose pcb.toml has a [workspace] section.

    A pcb.toml without a [workspace] section does not count, and neither does
    one that fails to parse. If nothing is found, the directory of `start`
    is returned (its parent when `start` is a file).
    """
    start = Path(start)
    start_dir = start if file_provider.is_directory(start) else start.parent

    for directory in (start_dir, *start_dir.parents):
        pcb_toml = directory / PCB_TOML
        if not file_provider.exists(pcb_toml):
            continue
        try:
            if PcbToml.from_file(file_provider, pcb_toml).is_workspace():
                return directory
        except ConfigError as e:
            logger.debug(f"Ignoring unreadable {pcb_toml}: {e}")

    return start_dir


def common_ancestor(a: Path, b: Path) -> Path | None:
    """Deepest directory containing both paths, or None if they share no root."""
    if a.anchor != b.anchor:
        return None
    shared = []
    for x, y in zip(a.parts, b.parts):
        if x != y:
            break
        shared.append(x)
    if not shared:
        return None
    return Path(*shared)


def _is_under(path: Path, root: Path) -> bool:
    return path == root or root in path.parents


def detect_workspace_root_from_files(
    file_provider: FileProvider,
    entry_file: Path,
    tracked_files: Iterable[Path],
    cache_root: Path | None = None,
) -> Path:
    """Fallback workspace detection when no pcb.toml exists.

    Folds the common ancestor of the entry file and every tracked file,
    ignoring anything under the remote cache root.

    Args:
        file_provider: File system access
        entry_file: File the evaluation started from
        tracked_files: Every file touched during evaluation
        cache_root: Cache directory whose contents are excluded

    Returns:
        Deepest common ancestor directory

    Raises:
        WorkspaceDetectionError: If the files share no common ancestor
    """
    canonical_cache = file_provider.canonicalize(cache_root) if cache_root else None

    def as_directory(path: Path) -> Path:
        return path if file_provider.is_directory(path) else path.parent

    directories = [as_directory(file_provider.canonicalize(Path(entry_file)))]
    for f in tracked_files:
        path = file_provider.canonicalize(Path(f))
        if canonical_cache is not None and _is_under(path, canonical_cache):
            continue
        directories.append(as_directory(path))

    root = directories[0]
    for directory in directories[1:]:
        ancestor = common_ancestor(root, directory)
        if ancestor is None:
            raise WorkspaceDetectionError(
                f"No common ancestor between {root} and {directory}; cannot determine workspace root"
            )
        root = ancestor
    return root
