"""Thin wrapper around the system `git` executable."""

import logging
import subprocess
from pathlib import Path

from .errors import FetchAttemptError

logger = logging.getLogger(__name__)


class GitClient:
    """Runs git subprocesses with a timeout.

    Availability is probed once per client with ``git --version``.
    """

    def __init__(self, executable: str = "git", timeout: float | None = 300.0):
        self.executable = executable
        self.timeout = timeout
        self._available: bool | None = None

    def _run(self, args: list[str], cwd: Path | None = None) -> subprocess.CompletedProcess:
        cmd = [self.executable, *args]
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            return subprocess.run(
                cmd,
                cwd=str(cwd) if cwd else None,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise FetchAttemptError(f"git {args[0]} timed out after {self.timeout}s") from e
        except OSError as e:
            raise FetchAttemptError(f"Failed to run git: {e}") from e

    def _check(self, args: list[str], cwd: Path | None = None) -> str:
        result = self._run(args, cwd=cwd)
        if result.returncode != 0:
            raise FetchAttemptError(
                f"git {args[0]} failed (rc={result.returncode}): {result.stderr.strip()[:300]}"
            )
        return result.stdout.strip()

    def is_available(self) -> bool:
        """Check if git is available on the system."""
        if self._available is None:
            try:
                self._available = self._run(["--version"]).returncode == 0
            except FetchAttemptError:
                self._available = False
            if not self._available:
                logger.debug("git executable not found, git strategies disabled")
        return self._available

    def clone_as_branch_or_tag(self, remote_url: str, rev: str, dest: Path) -> None:
        """Shallow clone of a single branch or tag."""
        self._check([
            "clone", "--depth", "1", "--branch", rev, "--single-branch", "--quiet",
            remote_url, str(dest),
        ])

    def clone_default_branch(self, remote_url: str, dest: Path) -> None:
        """Shallow clone of the default branch."""
        self._check(["clone", "--depth", "1", "--quiet", remote_url, str(dest)])

    def fetch_commit(self, repo_root: Path, sha: str) -> None:
        """Shallow fetch of one commit from origin."""
        self._check(["-C", str(repo_root), "fetch", "--depth", "1", "--quiet", "origin", sha])

    def checkout_revision(self, repo_root: Path, rev: str) -> None:
        self._check(["-C", str(repo_root), "checkout", "--quiet", rev])

    def rev_parse(self, repo_root: Path, ref_name: str) -> str | None:
        """Full 40-character SHA for a ref, or None."""
        try:
            sha = self._check(["-C", str(repo_root), "rev-parse", ref_name])
        except FetchAttemptError:
            return None
        if len(sha) == 40 and all(c in "0123456789abcdefABCDEF" for c in sha):
            return sha
        return None

    def rev_parse_head(self, repo_root: Path) -> str | None:
        return self.rev_parse(repo_root, "HEAD")

    def tag_exists(self, repo_root: Path, tag_name: str) -> bool:
        try:
            out = self._check(["-C", str(repo_root), "tag", "-l", tag_name])
        except FetchAttemptError:
            return False
        return out == tag_name
