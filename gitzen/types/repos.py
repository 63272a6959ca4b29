"""Remote-host repository, file and user data models."""

from dataclasses import dataclass


@dataclass
class FileContent:
    """A decoded file read from the remote host."""

    path: str
    sha: str
    content: str


@dataclass
class DirectoryItem:
    """One entry of a directory listing."""

    name: str
    path: str
    sha: str
    type: str  # "file" or "dir"


@dataclass
class RemoteRepository:
    """A repository visible to the authenticated caller."""

    full_name: str
    private: bool
    description: str | None


@dataclass
class RemoteUser:
    """The user an access token belongs to."""

    id: str
    login: str
    name: str | None = None
    avatar_url: str | None = None
