"""
Remote repository fetching for zenload.

A revision of a GitHub/GitLab repository is materialized into the cache by
trying an ordered list of strategies until one succeeds:

1. system git over HTTPS (shallow clone)
2. system git over SSH (same procedure)
3. HTTP archive download from the hosting provider

Each attempt works in a private staging directory; the finished tree is
renamed into its cache location in one step.
"""

import logging
import os
import shutil
import tarfile
import tempfile
import threading
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import BinaryIO
from urllib.parse import quote

import httpx
from pydantic import BaseModel

from .errors import (
    AbbreviatedShaError,
    AccessDeniedError,
    FetchAttempt,
    FetchAttemptError,
    FetchError,
    OfflineError,
)
from .git import GitClient
from .load_spec import RemoteRef
from .settings import ZenloadSettings, get_settings

logger = logging.getLogger(__name__)

USER_AGENT = "diode-star-loader"
MIN_SHA_LEN = 7
FULL_SHA_LEN = 40

TOKEN_ENV = {
    "github": "DIODE_GITHUB_TOKEN or GITHUB_TOKEN",
    "gitlab": "DIODE_GITLAB_TOKEN or GITLAB_TOKEN",
}


# =============================================================================
# Revision Policy
# =============================================================================

class RevisionKind(str, Enum):
    """How a revision string is fetched."""

    HEAD = "head"      # default branch, no checkout needed
    COMMIT = "commit"  # full 40-character SHA
    REF = "ref"        # branch or tag name


def is_sha_like(rev: str) -> bool:
    """True for 7-40 character all-hex strings."""
    return MIN_SHA_LEN <= len(rev) <= FULL_SHA_LEN and all(
        c in "0123456789abcdefABCDEF" for c in rev
    )


def classify_revision(rev: str) -> RevisionKind:
    """Classify a revision, rejecting abbreviated SHAs.

    Raises:
        AbbreviatedShaError: For 7-39 character hex strings
    """
    if rev.upper() == "HEAD":
        return RevisionKind.HEAD
    if is_sha_like(rev):
        if len(rev) != FULL_SHA_LEN:
            raise AbbreviatedShaError(rev)
        return RevisionKind.COMMIT
    return RevisionKind.REF


class RefKind(str, Enum):
    """Stability of a fetched revision."""

    TAG = "tag"
    COMMIT = "commit"
    UNSTABLE = "unstable"


class RemoteRefMeta(BaseModel):
    """What a fetched revision turned out to be.

    Attributes:
        commit_sha1: Full SHA of the checked-out commit
        kind: TAG, COMMIT or UNSTABLE (branches and HEAD)
    """

    commit_sha1: str
    kind: RefKind

    @property
    def stable(self) -> bool:
        return self.kind in (RefKind.TAG, RefKind.COMMIT)


# =============================================================================
# Fetch Strategies
# =============================================================================

class FetchStrategy(ABC):
    """One way of getting a repository revision onto disk."""

    name: str = "strategy"

    def available(self) -> bool:
        """Whether this strategy can run at all on this machine."""
        return True

    @abstractmethod
    def fetch(self, remote: RemoteRef, kind: RevisionKind, dest: Path) -> None:
        """Populate `dest` (which does not exist yet) with the revision.

        Raises:
            FetchAttemptError: If this strategy could not fetch the revision
        """
        pass


class GitCloneStrategy(FetchStrategy):
    """Shallow clone with the system git executable."""

    def __init__(self, git: GitClient, protocol: str = "https"):
        if protocol not in ("https", "ssh"):
            raise ValueError(f"Unsupported git protocol: {protocol}")
        self.git = git
        self.protocol = protocol
        self.name = f"git clone ({protocol})"

    def available(self) -> bool:
        return self.git.is_available()

    def clone_url(self, remote: RemoteRef) -> str:
        if self.protocol == "https":
            return remote.https_clone_url()
        return remote.ssh_clone_url()

    def fetch(self, remote: RemoteRef, kind: RevisionKind, dest: Path) -> None:
        url = self.clone_url(remote)
        dest.parent.mkdir(parents=True, exist_ok=True)

        if kind == RevisionKind.REF:
            logger.debug(f"Trying branch/tag clone: {url} @ {remote.rev}")
            self.git.clone_as_branch_or_tag(url, remote.rev, dest)
            return

        logger.debug(f"Cloning default branch: {url}")
        self.git.clone_default_branch(url, dest)
        if kind == RevisionKind.COMMIT:
            logger.debug(f"Fetching commit {remote.rev}")
            self.git.fetch_commit(dest, remote.rev)
            self.git.checkout_revision(dest, remote.rev)


def _strip_top_level(name: str) -> str:
    parts = PurePosixPath(name).parts
    return PurePosixPath(*parts[1:]).as_posix() if len(parts) > 1 else ""


def extract_archive(archive: BinaryIO, dest: Path) -> int:
    """Extract a gzipped tarball, dropping its single top-level directory.

    Hosting providers wrap every archive in "<repo>-<rev>/"; entries land
    directly under `dest` instead. Members the "data" filter refuses, such as
    links pointing outside `dest`, are skipped.

    Returns:
        Number of entries written
    """
    dest.mkdir(parents=True, exist_ok=True)
    count = 0
    with tarfile.open(fileobj=archive, mode="r:gz") as tar:
        for member in tar:
            stripped = _strip_top_level(member.name)
            if not stripped:
                continue
            member.name = stripped
            if member.islnk():
                member.linkname = _strip_top_level(member.linkname)
            try:
                tarfile.data_filter(member, str(dest))
            except tarfile.FilterError as e:
                logger.debug(f"Skipping archive member {member.name}: {e}")
                continue
            tar.extract(member, dest, filter="data")
            count += 1
    return count


class ArchiveStrategy(FetchStrategy):
    """Download the provider's tar.gz archive over HTTPS.

    Attaches a token from settings when one is configured: a bearer token
    for GitHub, a PRIVATE-TOKEN header for GitLab.
    """

    name = "archive download"

    def __init__(
        self,
        settings: ZenloadSettings | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.settings = settings or get_settings()
        self.transport = transport

    @staticmethod
    def archive_url(remote: RemoteRef) -> str:
        if remote.kind == "github":
            return f"https://codeload.github.com/{remote.identity}/tar.gz/{remote.rev}"
        project = quote(remote.identity, safe="")
        return f"https://gitlab.com/api/v4/projects/{project}/repository/archive.tar.gz?sha={quote(remote.rev, safe='')}"

    def auth_headers(self, remote: RemoteRef) -> dict[str, str]:
        if remote.kind == "github" and self.settings.github_token:
            return {"Authorization": f"Bearer {self.settings.github_token}"}
        if remote.kind == "gitlab" and self.settings.gitlab_token:
            return {"PRIVATE-TOKEN": self.settings.gitlab_token}
        return {}

    def fetch(self, remote: RemoteRef, kind: RevisionKind, dest: Path) -> None:
        url = self.archive_url(remote)
        headers = {"User-Agent": USER_AGENT, **self.auth_headers(remote)}
        logger.debug(f"Downloading archive: {url}")

        try:
            with httpx.Client(
                timeout=self.settings.fetch_timeout,
                follow_redirects=True,
                transport=self.transport,
            ) as client:
                with client.stream("GET", url, headers=headers) as response:
                    self._check_status(remote, response)
                    with tempfile.TemporaryFile() as spool:
                        for chunk in response.iter_bytes():
                            spool.write(chunk)
                        spool.seek(0)
                        count = extract_archive(spool, dest)
        except httpx.HTTPError as e:
            raise FetchAttemptError(f"HTTP request to {url} failed: {e}") from e
        except (tarfile.TarError, OSError, EOFError) as e:
            raise FetchAttemptError(f"Failed to unpack archive from {url}: {e}") from e

        logger.debug(f"Extracted {count} entries into {dest}")

    @staticmethod
    def _check_status(remote: RemoteRef, response: httpx.Response) -> None:
        code = response.status_code
        if code in (401, 403, 404):
            raise AccessDeniedError(
                f"HTTP {code} for {remote.host}/{remote.identity} at {remote.rev}",
                status_code=code,
                token_env=TOKEN_ENV[remote.kind],
            )
        if not response.is_success:
            raise FetchAttemptError(
                f"HTTP {code} for {remote.host}/{remote.identity} at {remote.rev}"
            )


# =============================================================================
# Remote Fetcher
# =============================================================================

class RemoteFetcher:
    """Fetches remote revisions into cache entries.

    Args:
        settings: Timeout, tokens and offline flag (defaults to global settings)
        git: Git client shared by the git strategies
        strategies: Override the default HTTPS -> SSH -> archive cascade
        transport: httpx transport for the archive strategy (tests)
    """

    def __init__(
        self,
        settings: ZenloadSettings | None = None,
        git: GitClient | None = None,
        strategies: list[FetchStrategy] | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.settings = settings or get_settings()
        self.git = git or GitClient(timeout=self.settings.fetch_timeout)
        if strategies is None:
            strategies = [
                GitCloneStrategy(self.git, "https"),
                GitCloneStrategy(self.git, "ssh"),
                ArchiveStrategy(self.settings, transport=transport),
            ]
        self.strategies = strategies
        self._meta_lock = threading.Lock()
        self._meta: dict[RemoteRef, RemoteRefMeta] = {}

    def fetch(self, remote: RemoteRef, dest: Path) -> None:
        """Run the strategy cascade until one populates `dest`.

        Raises:
            AbbreviatedShaError: Before any network activity, for short SHAs
            OfflineError: If offline mode is enabled
            FetchError: If every strategy failed
        """
        kind = classify_revision(remote.rev)
        if self.settings.offline:
            raise OfflineError(remote.host, remote.identity, remote.rev)

        logger.info(f"Fetching {remote.kind} repo {remote.identity} @ {remote.rev}")
        attempts: list[FetchAttempt] = []
        for strategy in self.strategies:
            if not strategy.available():
                logger.debug(f"Skipping {strategy.name}: not available")
                continue
            if dest.exists():
                shutil.rmtree(dest)
            try:
                strategy.fetch(remote, kind, dest)
                logger.debug(f"{strategy.name} succeeded for {remote}")
                return
            except FetchAttemptError as e:
                logger.debug(f"{strategy.name} failed for {remote}: {e}")
                attempts.append(
                    FetchAttempt(
                        strategy=strategy.name,
                        message=str(e),
                        access_denied=isinstance(e, AccessDeniedError),
                    )
                )

        if dest.exists():
            shutil.rmtree(dest, ignore_errors=True)
        raise FetchError(
            remote.host,
            remote.identity,
            remote.rev,
            attempts=attempts,
            token_env=TOKEN_ENV[remote.kind],
        )

    def ensure_cached(self, remote: RemoteRef, cache_root: Path) -> Path:
        """Make sure `cache_root` holds the revision, fetching on a miss.

        The fetch goes to a temporary sibling directory that is renamed into
        place; if another writer installs the entry first, its copy is kept.
        """
        if cache_root.exists():
            logger.debug(f"Cache hit: {cache_root}")
        else:
            classify_revision(remote.rev)
            cache_root.parent.mkdir(parents=True, exist_ok=True)
            staging_root = Path(tempfile.mkdtemp(prefix=f".{cache_root.name}.", dir=cache_root.parent))
            try:
                staging = staging_root / "checkout"
                self.fetch(remote, staging)
                try:
                    os.rename(staging, cache_root)
                except OSError:
                    if not cache_root.exists():
                        raise
                    logger.debug(f"{cache_root} was populated concurrently, discarding our copy")
            finally:
                shutil.rmtree(staging_root, ignore_errors=True)

        self._record_meta(remote, cache_root)
        return cache_root

    def classify(self, remote: RemoteRef, repo_root: Path) -> RemoteRefMeta | None:
        """Work out whether a checkout is a tag, a pinned commit or a moving ref."""
        if not (repo_root / ".git").exists() or not self.git.is_available():
            return None
        sha = self.git.rev_parse_head(repo_root)
        if sha is None:
            return None

        rev = remote.rev
        tag_sha = self.git.rev_parse(repo_root, f"{rev}^{{commit}}")
        if self.git.tag_exists(repo_root, rev) and tag_sha == sha:
            kind = RefKind.TAG
        elif len(rev) > MIN_SHA_LEN and sha.lower().startswith(rev.lower()):
            kind = RefKind.COMMIT
        else:
            kind = RefKind.UNSTABLE
        return RemoteRefMeta(commit_sha1=sha, kind=kind)

    def _record_meta(self, remote: RemoteRef, repo_root: Path) -> None:
        with self._meta_lock:
            if remote in self._meta:
                return
        meta = self.classify(remote, repo_root)
        if meta is not None:
            with self._meta_lock:
                self._meta.setdefault(remote, meta)

    def remote_ref_meta(self, remote: RemoteRef) -> RemoteRefMeta | None:
        """Metadata recorded for a previously fetched revision, if any."""
        with self._meta_lock:
            return self._meta.get(remote)
