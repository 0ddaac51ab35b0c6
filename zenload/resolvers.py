"""
Load resolvers for zenload.

A LoadResolver turns the string from a ``load()`` directive, plus the path of
the file containing it, into an absolute local path. The evaluator uses a
CompoundLoadResolver chaining workspace-relative, file-relative and remote
resolution.
"""

import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath

from .aliases import AliasTable
from .config import find_workspace_root
from .errors import InvalidLoadSpecError, LoadResolutionError, ZenloadError
from .file_provider import DefaultFileProvider, FileProvider, normalize_path
from .load_spec import GithubSpec, GitlabSpec, LoadSpec, PackageSpec, parse_load_spec
from .materialize import Materializer
from .settings import ZenloadSettings

logger = logging.getLogger(__name__)

WORKSPACE_PREFIX = "//"


class LoadResolver(ABC):
    """Abstract base class for load path resolvers."""

    @abstractmethod
    def resolve_path(self, file_provider: FileProvider, load_path: str, current_file: Path) -> Path:
        """Resolve `load_path` as referenced from `current_file`.

        Raises:
            ZenloadError: If this resolver cannot handle the path
        """
        pass


def _is_within(path: Path, root: Path) -> bool:
    return path == root or root in path.parents


class WorkspaceLoadResolver(LoadResolver):
    """Resolves paths for files inside a workspace.

    ``//foo/bar.zen`` is relative to the workspace root. Other relative paths
    are resolved against the current file's directory, but only when that
    file is inside the workspace; otherwise the resolver declines.
    """

    def __init__(self, workspace_root: Path):
        self.workspace_root = Path(workspace_root)

    def resolve_path(self, file_provider: FileProvider, load_path: str, current_file: Path) -> Path:
        if load_path.startswith("@"):
            raise LoadResolutionError(f"'{load_path}' is not a local path")

        root = file_provider.canonicalize(self.workspace_root)
        if load_path.startswith(WORKSPACE_PREFIX):
            return normalize_path(root / load_path[len(WORKSPACE_PREFIX):])

        path = Path(load_path)
        if path.is_absolute():
            return normalize_path(path)

        current = file_provider.canonicalize(current_file)
        if not _is_within(current, root):
            raise LoadResolutionError(
                f"{current} is outside workspace {root}; not resolving '{load_path}' here"
            )
        return normalize_path(current.parent / path)


class RelativeLoadResolver(LoadResolver):
    """Resolves paths against the current file's directory.

    Used for files outside any workspace, such as fetched remote
    dependencies loading further files from their own tree.
    """

    def resolve_path(self, file_provider: FileProvider, load_path: str, current_file: Path) -> Path:
        if load_path.startswith("@"):
            raise LoadResolutionError(f"'{load_path}' is not a local path")
        if load_path.startswith(WORKSPACE_PREFIX):
            raise LoadResolutionError(f"Workspace path '{load_path}' needs a workspace root")

        path = Path(load_path)
        if path.is_absolute():
            return normalize_path(path)
        current = file_provider.canonicalize(current_file)
        return normalize_path(current.parent / path)


class RemoteLoadResolver(LoadResolver):
    """Resolves @github/@gitlab/@package references through a Materializer.

    Args:
        materializer: Performs alias expansion, caching and fetching
        workspace_root: Fixed workspace root; when None it is located from
            the current file by walking up to a pcb.toml with [workspace]
    """

    def __init__(self, materializer: Materializer, workspace_root: Path | None = None):
        self.materializer = materializer
        self.workspace_root = workspace_root

    def resolve_path(self, file_provider: FileProvider, load_path: str, current_file: Path) -> Path:
        spec = parse_load_spec(load_path)
        if spec is None:
            raise InvalidLoadSpecError(f"'{load_path}' is not a remote or package reference")

        workspace_root = self.workspace_root
        if workspace_root is None:
            workspace_root = find_workspace_root(file_provider, file_provider.canonicalize(current_file))
        return self.materializer.materialize(spec, workspace_root)


class CompoundLoadResolver(LoadResolver):
    """Tries resolvers in order; the first one producing an existing path wins.

    Existence is checked here rather than trusted from the sub-resolver. When
    nothing succeeds the last error raised is re-raised, or a generic
    "file not found" when no resolver raised at all.
    """

    def __init__(self, resolvers: list[LoadResolver]):
        self.resolvers = list(resolvers)

    def resolve_path(self, file_provider: FileProvider, load_path: str, current_file: Path) -> Path:
        last_error: Exception | None = None
        for resolver in self.resolvers:
            try:
                path = resolver.resolve_path(file_provider, load_path, current_file)
            except (ZenloadError, OSError) as e:
                logger.debug(f"{type(resolver).__name__} declined '{load_path}': {e}")
                last_error = e
                continue
            if file_provider.exists(path):
                return path
            logger.debug(f"{type(resolver).__name__} returned missing path {path} for '{load_path}'")

        if last_error is not None:
            raise last_error
        raise LoadResolutionError(f"File not found: {load_path}")


class TrackingLoadResolver(LoadResolver):
    """Wraps another resolver and remembers every file it resolves.

    Each resolved file is also mapped to the canonical LoadSpec it came from:

    - package specs are expanded through the alias table to the remote spec
      they stand for
    - relative and ``//`` loads made from inside a fetched GitHub/GitLab file
      inherit the parent's remote spec, with the load path joined onto the
      parent's directory

    Args:
        inner: Resolver doing the actual work
        file_provider: Used to canonicalize tracked paths
        aliases: Alias table for expanding package specs (built-ins only by default)
        workspace_root: Workspace whose [packages] table applies
    """

    def __init__(
        self,
        inner: LoadResolver,
        file_provider: FileProvider | None = None,
        aliases: AliasTable | None = None,
        workspace_root: Path | None = None,
    ):
        self.inner = inner
        self.file_provider = file_provider or DefaultFileProvider()
        self.aliases = aliases or AliasTable(self.file_provider)
        self.workspace_root = workspace_root
        self._lock = threading.Lock()
        self._loaded: set[Path] = set()
        self._load_specs: dict[Path, LoadSpec] = {}

    def resolve_path(self, file_provider: FileProvider, load_path: str, current_file: Path) -> Path:
        resolved = self.inner.resolve_path(file_provider, load_path, current_file)
        canonical = self.file_provider.canonicalize(resolved)
        spec = self._derive_canonical_spec(load_path, current_file)
        with self._lock:
            self._loaded.add(canonical)
            if spec is not None:
                self._load_specs[canonical] = spec
        return resolved

    def _derive_canonical_spec(self, load_path: str, current_file: Path) -> LoadSpec | None:
        spec = parse_load_spec(load_path)
        if isinstance(spec, PackageSpec):
            return self._expand_package(spec)
        if spec is not None:
            return spec
        if load_path.startswith("@"):
            return None

        if load_path.startswith(WORKSPACE_PREFIX):
            load_path = load_path[len(WORKSPACE_PREFIX):]
        elif PurePosixPath(load_path).is_absolute():
            return None

        parent = self.get_load_spec(current_file)
        if not isinstance(parent, (GithubSpec, GitlabSpec)):
            return None
        joined = normalize_path(PurePosixPath(parent.path).parent / load_path)
        if joined.parts and joined.parts[0] == "..":
            return None
        return parent.with_path("" if joined == Path(".") else joined.as_posix())

    def _expand_package(self, spec: PackageSpec) -> LoadSpec:
        current: LoadSpec = spec
        seen: set[str] = set()
        while isinstance(current, PackageSpec) and current.package not in seen:
            seen.add(current.package)
            try:
                rewritten = self.aliases.rewrite(current, self.workspace_root)
            except ZenloadError as e:
                logger.debug(f"Keeping {spec} as loaded: {e}")
                return spec
            if isinstance(rewritten, Path) or rewritten is current:
                break
            current = rewritten
        return current if current.is_remote else spec

    def track(self, path: Path) -> None:
        """Insert something manually (e.g. the entrypoint itself)."""
        with self._lock:
            self._loaded.add(self.file_provider.canonicalize(path))

    def files(self) -> set[Path]:
        with self._lock:
            return set(self._loaded)

    def get_load_spec(self, path: Path) -> LoadSpec | None:
        """Canonical reference a tracked file was loaded through."""
        canonical = self.file_provider.canonicalize(path)
        with self._lock:
            return self._load_specs.get(canonical)


def create_load_resolver(
    workspace_root: Path,
    settings: ZenloadSettings | None = None,
    materializer: Materializer | None = None,
    file_provider: FileProvider | None = None,
    use_vendor_dir: bool = False,
) -> CompoundLoadResolver:
    """Build the resolver chain used by the evaluator for one workspace.

    Local interpretations come first: workspace resolver, relative resolver,
    then remote resolution.

    Example:
        >>> resolver = create_load_resolver(Path("/path/to/project"))
        >>> resolver.resolve_path(DefaultFileProvider(), "@stdlib/units.zen", Path("/path/to/project/main.zen"))
    """
    if materializer is None:
        materializer = Materializer(
            settings=settings,
            file_provider=file_provider,
            use_vendor_dir=use_vendor_dir,
        )
    return CompoundLoadResolver([
        WorkspaceLoadResolver(workspace_root),
        RelativeLoadResolver(),
        RemoteLoadResolver(materializer, workspace_root),
    ])
