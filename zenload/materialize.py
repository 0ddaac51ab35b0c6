"""
Materialization of load specs into local paths.

Entry point for turning a parsed LoadSpec into an existing local path:
alias expansion, vendor lookup, cache hit or fetch, sub-path verification,
and the workspace symlink side effect.
"""

import logging
from pathlib import Path

from .aliases import AliasTable
from .cache import cache_dir, cache_entry_root
from .errors import (
    AliasCycleError,
    AliasError,
    InvalidLoadSpecError,
    RemotePathNotFoundError,
    UnsupportedSpecError,
)
from .fetcher import RemoteFetcher, classify_revision
from .file_provider import DefaultFileProvider, FileProvider
from .load_spec import GithubSpec, GitlabSpec, LoadSpec, PackageSpec, parse_load_spec
from .settings import ZenloadSettings, get_settings
from .symlinks import expose_alias_symlink

logger = logging.getLogger(__name__)


class Materializer:
    """Resolves LoadSpecs to local paths, fetching remote content on demand.

    Args:
        settings: Cache location, timeouts, tokens (defaults to global settings)
        aliases: Alias table owned by this resolution context
        fetcher: Remote fetcher used on cache misses
        file_provider: File system access for alias tables and local aliases
        use_vendor_dir: Look in ``<workspace>/vendor`` before the cache
        expose_symlinks: Mirror resolved content under ``<workspace>/.pcb/cache``
    """

    def __init__(
        self,
        settings: ZenloadSettings | None = None,
        aliases: AliasTable | None = None,
        fetcher: RemoteFetcher | None = None,
        file_provider: FileProvider | None = None,
        use_vendor_dir: bool = False,
        expose_symlinks: bool = True,
    ):
        self.settings = settings or get_settings()
        self.file_provider = file_provider or DefaultFileProvider()
        self.aliases = aliases or AliasTable(self.file_provider)
        self.fetcher = fetcher or RemoteFetcher(self.settings)
        self.use_vendor_dir = use_vendor_dir
        self.expose_symlinks = expose_symlinks

    def cache_root(self) -> Path:
        return cache_dir(self.settings)

    def materialize_load(self, reference: str, workspace_root: Path | None = None) -> Path:
        """Parse a reference string and materialize it.

        Raises:
            InvalidLoadSpecError: If `reference` is not a remote/alias reference
        """
        spec = parse_load_spec(reference)
        if spec is None:
            raise InvalidLoadSpecError(f"Invalid load spec: {reference}")
        return self.materialize(spec, workspace_root)

    def materialize(self, spec: LoadSpec, workspace_root: Path | None = None) -> Path:
        """Return an existing local path for `spec`, fetching it if needed."""
        return self._materialize(spec, workspace_root, ())

    def _materialize(self, spec: LoadSpec, workspace_root: Path | None, visited: tuple[str, ...]) -> Path:
        if isinstance(spec, PackageSpec):
            return self._materialize_package(spec, workspace_root, visited)
        if isinstance(spec, (GithubSpec, GitlabSpec)):
            return self._materialize_remote(spec, workspace_root)
        raise UnsupportedSpecError(f"Cannot materialize spec {spec!r}")

    def _materialize_package(
        self, spec: PackageSpec, workspace_root: Path | None, visited: tuple[str, ...]
    ) -> Path:
        if spec.package in visited:
            raise AliasCycleError([*visited, spec.package])

        rewritten = self.aliases.rewrite(spec, workspace_root)
        if rewritten is spec:
            return self._materialize_unaliased(spec)

        if isinstance(rewritten, Path):
            local = rewritten
        else:
            logger.debug(f"Alias {spec} -> {rewritten}")
            local = self._materialize(rewritten, workspace_root, (*visited, spec.package))

        if workspace_root is not None and self.expose_symlinks:
            expose_alias_symlink(workspace_root, spec.package, spec.path, local)
        return local

    def _materialize_unaliased(self, spec: PackageSpec) -> Path:
        # Only pre-populated package cache entries can be served.
        entry = cache_entry_root(spec, self.cache_root())
        if entry.exists():
            local = entry / spec.path if spec.path else entry
            if not local.exists():
                raise RemotePathNotFoundError(str(spec), spec.path, str(entry))
            return self.file_provider.canonicalize(local)
        raise AliasError(
            f"Unknown package alias '{spec.package}' in {spec}: "
            "resolving packages without an alias is not yet implemented"
        )

    def _materialize_remote(self, spec: GithubSpec | GitlabSpec, workspace_root: Path | None) -> Path:
        classify_revision(spec.rev)

        if self.use_vendor_dir and workspace_root is not None:
            vendored = Path(workspace_root) / "vendor" / spec.vendor_path()
            if self.file_provider.exists(vendored):
                logger.debug(f"Using vendored {spec}: {vendored}")
                return self.file_provider.canonicalize(vendored)

        entry = cache_entry_root(spec, self.cache_root())
        self.fetcher.ensure_cached(spec.remote_ref(), entry)

        local = entry / spec.path if spec.path else entry
        if not local.exists():
            raise RemotePathNotFoundError(str(spec), spec.path, str(entry))
        local = self.file_provider.canonicalize(local)

        if workspace_root is not None and self.expose_symlinks:
            expose_alias_symlink(workspace_root, self._exposed_folder(spec), spec.path, local)
        return local

    @staticmethod
    def _exposed_folder(spec: GithubSpec | GitlabSpec) -> str:
        if isinstance(spec, GithubSpec):
            return f"github/{spec.user}/{spec.repo}/{spec.rev}"
        return f"gitlab/{spec.project_path}/{spec.rev}"
