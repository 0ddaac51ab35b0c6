"""
zenload errors - one hierarchy for every resolution failure.
"""

from dataclasses import dataclass


class ZenloadError(Exception):
    """Base exception for all zenload errors."""
    pass


class ConfigError(ZenloadError):
    """A pcb.toml file could not be read or parsed."""
    pass


class InvalidLoadSpecError(ZenloadError):
    """A reference string does not match any recognized form."""
    pass


class UnsupportedSpecError(ZenloadError):
    """The spec is well-formed but this resolver cannot handle it."""
    pass


class AliasError(ZenloadError):
    """An alias is unknown or points at something that does not exist."""
    pass


class AliasCycleError(AliasError):
    """An alias resolves, directly or transitively, back to itself."""

    def __init__(self, chain: list[str]):
        self.chain = chain
        super().__init__(f"Alias cycle detected: {' -> '.join(chain)}")


class AbbreviatedShaError(ZenloadError):
    """A revision looks like a shortened commit SHA."""

    def __init__(self, rev: str):
        self.rev = rev
        super().__init__(
            f"Revision '{rev}' looks like an abbreviated commit SHA ({len(rev)} characters). "
            "Use the full 40-character SHA or a branch/tag name instead."
        )


class FetchAttemptError(ZenloadError):
    """A single fetch strategy failed."""
    pass


class AccessDeniedError(FetchAttemptError):
    """The hosting provider refused the archive download (HTTP 401/403/404)."""

    def __init__(self, message: str, status_code: int, token_env: str):
        self.status_code = status_code
        self.token_env = token_env
        super().__init__(message)


@dataclass
class FetchAttempt:
    """Outcome of one failed strategy, kept for the aggregated error."""

    strategy: str
    message: str
    access_denied: bool = False


class FetchError(ZenloadError):
    """Every fetch strategy for a remote revision failed."""

    def __init__(
        self,
        host: str,
        identity: str,
        rev: str,
        attempts: list[FetchAttempt] | None = None,
        token_env: str | None = None,
        message: str | None = None,
    ):
        self.host = host
        self.identity = identity
        self.rev = rev
        self.attempts = attempts or []
        self.token_env = token_env

        if message is None:
            lines = [f"Failed to fetch {host}/{identity} at {rev}."]
            if self.attempts:
                lines.append("Tried:")
                lines.extend(f"  - {a.strategy}: {a.message}" for a in self.attempts)
            else:
                lines.append("No fetch strategy was available.")
            if token_env and any(a.access_denied for a in self.attempts):
                lines.append(
                    f"If this repository is private, set an access token in {token_env}."
                )
            message = "\n".join(lines)
        super().__init__(message)


class OfflineError(FetchError):
    """A network fetch was requested while offline mode is enabled."""

    def __init__(self, host: str, identity: str, rev: str):
        super().__init__(
            host,
            identity,
            rev,
            message=(
                f"Remote fetch for {host}/{identity} at {rev} blocked because offline mode "
                "is enabled. Vendor the dependency or populate the cache first."
            ),
        )


class RemotePathNotFoundError(ZenloadError):
    """The repository was fetched but the requested sub path is missing."""

    def __init__(self, spec: str, path: str, root: str):
        self.spec = spec
        self.path = path
        self.root = root
        super().__init__(f"Path '{path}' not found in {spec} (fetched to {root})")


class WorkspaceDetectionError(ZenloadError):
    """No common ancestor exists across the tracked files."""
    pass


class LoadResolutionError(ZenloadError):
    """A load path could not be resolved to an existing file."""
    pass


class FileProviderError(ZenloadError):
    """Base error raised by FileProvider implementations."""
    pass


class FileNotFoundInProviderError(FileProviderError):
    """File not found."""

    def __init__(self, path):
        self.path = path
        super().__init__(f"File not found: {path}")


class PermissionDeniedError(FileProviderError):
    """Permission denied."""

    def __init__(self, path):
        self.path = path
        super().__init__(f"Permission denied: {path}")
