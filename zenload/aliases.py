"""Package alias table.

Aliases map short package names to canonical load specs (or to local paths).
The table for a workspace is the built-in defaults overlaid with the
[packages] table of the workspace's pcb.toml.
"""

import logging
import threading
from pathlib import Path

from pydantic import BaseModel

from .config import PCB_TOML, PcbToml
from .errors import AliasError, FileProviderError
from .file_provider import DefaultFileProvider, FileProvider
from .load_spec import (
    DEFAULT_PKG_TAG,
    GithubSpec,
    GitlabSpec,
    LoadSpec,
    PackageSpec,
    join_spec_path,
    parse_load_spec,
)

logger = logging.getLogger(__name__)

DEFAULT_PACKAGE_ALIASES: dict[str, str] = {
    "kicad-symbols": "@gitlab/kicad/libraries/kicad-symbols:9.0.0",
    "kicad-footprints": "@gitlab/kicad/libraries/kicad-footprints:9.0.0",
    "stdlib": "@github/diodeinc/stdlib:HEAD",
}


class AliasInfo(BaseModel):
    """An alias target plus the pcb.toml that defined it.

    Attributes:
        target: Reference string or local path the alias expands to
        source_path: pcb.toml that declared the alias, None for built-ins
    """

    target: str
    source_path: Path | None = None


def default_package_aliases() -> dict[str, AliasInfo]:
    """Built-in aliases available in every workspace."""
    return {name: AliasInfo(target=target) for name, target in DEFAULT_PACKAGE_ALIASES.items()}


class AliasTable:
    """Per-workspace alias tables, computed lazily and kept until cleared.

    One instance is owned by a resolution context and passed to whatever
    needs alias lookups, so its lifetime is explicit.
    """

    def __init__(self, file_provider: FileProvider | None = None):
        self.file_provider = file_provider or DefaultFileProvider()
        self._lock = threading.Lock()
        self._tables: dict[Path, dict[str, AliasInfo]] = {}

    def _canonical_root(self, workspace_root: Path) -> Path:
        try:
            return self.file_provider.canonicalize(workspace_root)
        except FileProviderError:
            return Path(workspace_root)

    def _load(self, root: Path) -> dict[str, AliasInfo]:
        aliases = default_package_aliases()
        pcb_toml = root / PCB_TOML
        if self.file_provider.exists(pcb_toml):
            config = PcbToml.from_file(self.file_provider, pcb_toml)
            for name, target in config.packages.items():
                aliases[name] = AliasInfo(target=target, source_path=pcb_toml)
        logger.debug(f"Aliases for {root}: {sorted(aliases)}")
        return aliases

    def aliases_for(self, workspace_root: Path | None) -> dict[str, AliasInfo]:
        """Effective alias table for a workspace (built-ins only when root is None)."""
        if workspace_root is None:
            return default_package_aliases()

        root = self._canonical_root(workspace_root)
        with self._lock:
            cached = self._tables.get(root)
        if cached is not None:
            return cached

        table = self._load(root)
        with self._lock:
            return self._tables.setdefault(root, table)

    def lookup_info(self, workspace_root: Path | None, alias: str) -> AliasInfo | None:
        return self.aliases_for(workspace_root).get(alias)

    def lookup(self, workspace_root: Path | None, alias: str) -> str | None:
        """Target string for `alias`, or None if it is not defined."""
        info = self.lookup_info(workspace_root, alias)
        return info.target if info else None

    def invalidate(self, workspace_root: Path | None = None) -> None:
        """Forget cached tables so pcb.toml edits are picked up."""
        with self._lock:
            if workspace_root is None:
                self._tables.clear()
            else:
                self._tables.pop(self._canonical_root(workspace_root), None)

    def rewrite(self, spec: PackageSpec, workspace_root: Path | None) -> LoadSpec | Path:
        """Expand a package spec through its alias.

        Returns:
            - the spec unchanged when no alias matches
            - a derived LoadSpec when the alias target is itself a reference
            - an existing local Path when the alias target is a local path

        Raises:
            AliasError: If a local-path alias points at something missing
        """
        target = self.lookup(workspace_root, spec.package)
        if target is None:
            return spec

        target_spec = parse_load_spec(target)
        if target_spec is not None:
            return self._derive(spec, target_spec)
        return self._local_target(spec, target, workspace_root)

    @staticmethod
    def _derive(spec: PackageSpec, target: LoadSpec) -> LoadSpec:
        update: dict[str, str] = {"path": join_spec_path(target.path, spec.path)}
        if spec.tag != DEFAULT_PKG_TAG:
            if isinstance(target, (GithubSpec, GitlabSpec)):
                update["rev"] = spec.tag
            else:
                update["tag"] = spec.tag
        return target.model_copy(update=update)

    def _local_target(self, spec: PackageSpec, target: str, workspace_root: Path | None) -> Path:
        if workspace_root is None:
            raise AliasError(
                f"Alias '{spec.package}' points at local path '{target}' but there is no workspace root"
            )
        if spec.tag != DEFAULT_PKG_TAG:
            logger.warning(
                f"Ignoring tag '{spec.tag}' for alias '{spec.package}': "
                f"it points at local path '{target}'"
            )

        local = Path(workspace_root) / target
        if spec.path:
            local = local / spec.path
        local = self.file_provider.canonicalize(local)
        if not self.file_provider.exists(local):
            raise AliasError(
                f"Alias '{spec.package}' resolves to '{local}', which does not exist"
            )
        return local
