"""
zenload - Remote module and package resolution for .zen circuit descriptions.

Turns load() references into local paths:
- @github/<user>/<repo>[:<rev>]/<path>
- @gitlab/<project_path>[:<rev>]/<path>
- @<package>[:<tag>]/<path>, expanded through pcb.toml [packages] aliases

Remote revisions are fetched once (git over HTTPS, git over SSH, then an
archive download) into a per-user cache and reused across runs.
"""

from .aliases import AliasInfo, AliasTable, default_package_aliases
from .cache import cache_dir
from .config import PcbToml, detect_workspace_root_from_files, find_workspace_root
from .errors import ZenloadError
from .fetcher import RemoteFetcher, RemoteRefMeta
from .file_provider import DefaultFileProvider, FileProvider, InMemoryFileProvider
from .load_spec import GithubSpec, GitlabSpec, LoadSpec, PackageSpec, RemoteRef, parse_load_spec
from .materialize import Materializer
from .resolvers import (
    CompoundLoadResolver,
    LoadResolver,
    RelativeLoadResolver,
    RemoteLoadResolver,
    TrackingLoadResolver,
    WorkspaceLoadResolver,
    create_load_resolver,
)
from .settings import ZenloadSettings, get_settings, reload_settings

__version__ = "0.1.0"
__all__ = [
    "AliasInfo",
    "AliasTable",
    "CompoundLoadResolver",
    "DefaultFileProvider",
    "FileProvider",
    "GithubSpec",
    "GitlabSpec",
    "InMemoryFileProvider",
    "LoadResolver",
    "LoadSpec",
    "Materializer",
    "PackageSpec",
    "PcbToml",
    "RelativeLoadResolver",
    "RemoteFetcher",
    "RemoteLoadResolver",
    "RemoteRef",
    "RemoteRefMeta",
    "TrackingLoadResolver",
    "WorkspaceLoadResolver",
    "ZenloadError",
    "ZenloadSettings",
    "cache_dir",
    "create_load_resolver",
    "default_package_aliases",
    "detect_workspace_root_from_files",
    "find_workspace_root",
    "get_settings",
    "parse_load_spec",
    "reload_settings",
]
