"""Load spec grammar and data model.

A load spec is the structured form of a remote or alias reference string as
it appears in a ``load()`` directive of a circuit-description file:

    @github/<user>/<repo>[:<rev>]/<path>
    @gitlab/<project_path>[:<rev>]/<path>
    @<package>[:<tag>]/<path>

Anything else (plain relative or workspace paths) is not a load spec and
``parse_load_spec`` returns None for it.
"""

from pathlib import PurePosixPath
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import UnsupportedSpecError

DEFAULT_PKG_TAG = "latest"
DEFAULT_GITHUB_REV = "HEAD"
DEFAULT_GITLAB_REV = "HEAD"

GITHUB_PREFIX = "@github/"
GITLAB_PREFIX = "@gitlab/"


def join_spec_path(base: str, extra: str) -> str:
    """Join two relative spec paths, treating "" as the repository root."""
    if not base:
        return extra
    if not extra:
        return base
    return (PurePosixPath(base) / extra).as_posix()


class RemoteRef(BaseModel):
    """Identity of one revision of a hosted git repository.

    Attributes:
        kind: Hosting provider ("github" or "gitlab")
        identity: "<user>/<repo>" for GitHub, the full project path for GitLab
        rev: Branch, tag, full commit SHA or "HEAD"
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["github", "gitlab"]
    identity: str
    rev: str

    @property
    def host(self) -> str:
        return f"{self.kind}.com"

    def repo_url(self) -> str:
        """Canonical browser URL of the repository."""
        return f"https://{self.host}/{self.identity}"

    def https_clone_url(self) -> str:
        return f"https://{self.host}/{self.identity}.git"

    def ssh_clone_url(self) -> str:
        return f"git@{self.host}:{self.identity}.git"

    def __str__(self) -> str:
        return f"{self.host}/{self.identity}@{self.rev}"


class _SpecBase(BaseModel):
    """Fields and helpers shared by every load spec variant."""

    model_config = ConfigDict(frozen=True)

    path: str = ""

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        """Spec paths are relative; "" denotes the repository root."""
        if v.startswith("/"):
            raise ValueError(f"Load spec path must be relative: {v}")
        return v.rstrip("/")

    @property
    def is_remote(self) -> bool:
        return False

    def with_path(self, path: str):
        """Return a copy of this spec pointing at a different sub path."""
        return self.model_copy(update={"path": path.rstrip("/")})

    def remote_ref(self) -> RemoteRef | None:
        return None

    def _suffix(self) -> str:
        return f"/{self.path}" if self.path else ""


class PackageSpec(_SpecBase):
    """Alias-based reference: ``@<package>[:<tag>]/<path>``."""

    kind: Literal["package"] = "package"
    package: str
    tag: str = DEFAULT_PKG_TAG

    def vendor_path(self) -> str:
        raise UnsupportedSpecError(
            f"Package spec {self} has no vendor path; resolve its alias first"
        )

    def __str__(self) -> str:
        tag = "" if self.tag == DEFAULT_PKG_TAG else f":{self.tag}"
        return f"@{self.package}{tag}{self._suffix()}"


class GithubSpec(_SpecBase):
    """GitHub reference: ``@github/<user>/<repo>[:<rev>]/<path>``."""

    kind: Literal["github"] = "github"
    user: str
    repo: str
    rev: str = DEFAULT_GITHUB_REV

    @property
    def is_remote(self) -> bool:
        return True

    def remote_ref(self) -> RemoteRef:
        return RemoteRef(kind="github", identity=f"{self.user}/{self.repo}", rev=self.rev)

    def vendor_path(self) -> str:
        return join_spec_path(f"github/{self.user}/{self.repo}/{self.rev}", self.path)

    def __str__(self) -> str:
        rev = "" if self.rev == DEFAULT_GITHUB_REV else f":{self.rev}"
        return f"@github/{self.user}/{self.repo}{rev}{self._suffix()}"


class GitlabSpec(_SpecBase):
    """GitLab reference: ``@gitlab/<project_path>[:<rev>]/<path>``.

    ``project_path`` may contain nested groups (``kicad/libraries/kicad-symbols``).
    """

    kind: Literal["gitlab"] = "gitlab"
    project_path: str
    rev: str = DEFAULT_GITLAB_REV

    @property
    def is_remote(self) -> bool:
        return True

    def remote_ref(self) -> RemoteRef:
        return RemoteRef(kind="gitlab", identity=self.project_path, rev=self.rev)

    def vendor_path(self) -> str:
        return join_spec_path(f"gitlab/{self.project_path}/{self.rev}", self.path)

    def __str__(self) -> str:
        # Without ":rev" only the first two segments reparse as the project path.
        two_segments = self.project_path.count("/") == 1
        if self.rev == DEFAULT_GITLAB_REV and two_segments:
            rev = ""
        else:
            rev = f":{self.rev}"
        return f"@gitlab/{self.project_path}{rev}{self._suffix()}"


LoadSpec = Annotated[Union[PackageSpec, GithubSpec, GitlabSpec], Field(discriminator="kind")]


def _split_rev(text: str) -> tuple[str, str]:
    """Split "<rev>/<path>" at the first slash."""
    rev, _, path = text.partition("/")
    return rev, path


def _is_name(segment: str) -> bool:
    """A usable user, repo, group or package name: non-empty and not a dot segment."""
    return segment not in ("", ".", "..")


def _is_sub_path(path: str) -> bool:
    # "@pkg//x" leaves "/x" here
    return not path.startswith("/")


def _parse_github(rest: str) -> GithubSpec | None:
    parts = rest.split("/", 2)
    if len(parts) < 2:
        return None
    user, repo_and_rev = parts[0], parts[1]
    path = parts[2] if len(parts) == 3 else ""

    repo, sep, rev = repo_and_rev.partition(":")
    if not _is_name(user) or not _is_name(repo) or not _is_sub_path(path):
        return None
    return GithubSpec(user=user, repo=repo, rev=(rev if sep and rev else DEFAULT_GITHUB_REV), path=path)


def _parse_gitlab(rest: str) -> GitlabSpec | None:
    if ":" in rest:
        project_path, _, after = rest.partition(":")
        rev, path = _split_rev(after)
    else:
        parts = rest.split("/", 2)
        if len(parts) < 2:
            return None
        project_path = f"{parts[0]}/{parts[1]}"
        rev = DEFAULT_GITLAB_REV
        path = parts[2] if len(parts) == 3 else ""

    project_path = project_path.strip("/")
    if not project_path or not all(_is_name(seg) for seg in project_path.split("/")):
        return None
    if not _is_sub_path(path):
        return None
    return GitlabSpec(project_path=project_path, rev=rev or DEFAULT_GITLAB_REV, path=path)


def _parse_package(rest: str) -> PackageSpec | None:
    package_and_tag, _, path = rest.partition("/")
    package, sep, tag = package_and_tag.partition(":")
    if not _is_name(package) or not _is_sub_path(path):
        return None
    return PackageSpec(package=package, tag=(tag if sep and tag else DEFAULT_PKG_TAG), path=path)


def parse_load_spec(value: str) -> LoadSpec | None:
    """Parse a reference string into a LoadSpec.

    Forms are checked in precedence order: GitHub, GitLab, then any other
    "@" prefix as a package alias.

    Args:
        value: Reference string from a load() directive

    Returns:
        The parsed spec, or None when the string is not a well-formed
        remote/alias reference

    Example:
        >>> parse_load_spec("@stdlib:1.2.3")
        PackageSpec(path='', kind='package', package='stdlib', tag='1.2.3')
    """
    if value.startswith(GITHUB_PREFIX):
        return _parse_github(value[len(GITHUB_PREFIX):])
    if value.startswith(GITLAB_PREFIX):
        return _parse_gitlab(value[len(GITLAB_PREFIX):])
    if value.startswith("@"):
        return _parse_package(value[1:])
    return None
