"""Remote cache directory management.

Layout under the cache root:

    packages/<package>/<tag>/...
    github/<user>/<repo>/<rev>/...
    gitlab/<project_path>/<rev>/...

An entry existing on disk is the only "already fetched" signal.
"""

import logging
import os
import sys
import tempfile
from pathlib import Path

from .errors import UnsupportedSpecError
from .load_spec import GithubSpec, GitlabSpec, LoadSpec, PackageSpec
from .settings import ZenloadSettings, get_settings

logger = logging.getLogger(__name__)

CACHE_SUBDIR = "pcb"
TEMP_CACHE_SUBDIR = "pcb_cache"


def user_cache_base() -> Path:
    """Platform per-user cache directory."""
    if sys.platform == "win32":
        base = os.environ.get("LOCALAPPDATA")
        if base:
            return Path(base)
        return Path.home() / "AppData" / "Local"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Caches"
    xdg = os.environ.get("XDG_CACHE_HOME")
    if xdg and os.path.isabs(xdg):
        return Path(xdg)
    return Path.home() / ".cache"


def cache_dir(settings: ZenloadSettings | None = None) -> Path:
    """Return the cache root, creating it if needed.

    Order: DIODE_STAR_CACHE_DIR verbatim, the per-user cache directory plus
    "pcb", then a folder in the system temp directory when the per-user one
    cannot be created.

    Raises:
        OSError: If the override directory cannot be created
    """
    settings = settings or get_settings()

    if settings.star_cache_dir is not None:
        path = Path(settings.star_cache_dir)
        path.mkdir(parents=True, exist_ok=True)
        return path

    try:
        path = user_cache_base() / CACHE_SUBDIR
        path.mkdir(parents=True, exist_ok=True)
        return path
    except (OSError, RuntimeError) as e:
        logger.debug(f"Per-user cache directory unavailable ({e}), using temp directory")

    path = Path(tempfile.gettempdir()) / TEMP_CACHE_SUBDIR
    path.mkdir(parents=True, exist_ok=True)
    return path


def cache_entry_root(spec: LoadSpec, root: Path) -> Path:
    """Directory holding the fetched repository/package for a spec (ignores spec.path)."""
    if isinstance(spec, GithubSpec):
        return root / "github" / spec.user / spec.repo / spec.rev
    if isinstance(spec, GitlabSpec):
        return root.joinpath("gitlab", *spec.project_path.split("/"), spec.rev)
    if isinstance(spec, PackageSpec):
        return root / "packages" / spec.package / spec.tag
    raise UnsupportedSpecError(f"No cache location for spec {spec}")
