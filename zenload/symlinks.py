"""Workspace-visible links into the remote cache.

Resolved remote content is mirrored under ``<workspace>/.pcb/cache/<alias>/``
so editors and other tooling can browse it next to the project. This is a
convenience only; failures are logged and never propagated.
"""

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

EXPOSED_CACHE_DIR = Path(".pcb") / "cache"


def exposed_path(workspace_root: Path, alias: str, sub_path: str = "") -> Path:
    """Location of the link for `alias`/`sub_path` inside a workspace."""
    dest = Path(workspace_root) / EXPOSED_CACHE_DIR / alias
    return dest / sub_path if sub_path else dest


def expose_alias_symlink(
    workspace_root: Path,
    alias: str,
    sub_path: str,
    target: Path,
) -> Path | None:
    """Create ``<workspace>/.pcb/cache/<alias>/<sub_path>`` pointing at `target`.

    An existing destination is left alone (first writer wins).

    Returns:
        The link path, or None if it could not be created
    """
    dest = exposed_path(workspace_root, alias, sub_path)
    try:
        if dest.exists() or dest.is_symlink():
            return dest
        dest.parent.mkdir(parents=True, exist_ok=True)
        os.symlink(target, dest, target_is_directory=Path(target).is_dir())
        logger.debug(f"Linked {dest} -> {target}")
        return dest
    except FileExistsError:
        # Another process created it in between
        return dest
    except OSError as e:
        logger.warning(f"Could not expose {alias} at {dest}: {e}")
        return None
