"""Authenticated user resource client."""

from typing import TYPE_CHECKING

from gitzen.types.repos import RemoteRepository, RemoteUser

if TYPE_CHECKING:
    from gitzen.transport import AsyncHTTPTransport

PAGE_SIZE = 100


class UsersClient:
    """Client for the token owner's profile and repositories."""

    def __init__(self, transport: "AsyncHTTPTransport") -> None:
        self.transport = transport

    async def get_authenticated_user(self) -> RemoteUser:
        """Return the user the access token belongs to."""
        data = await self.transport.request("GET", "/user")
        return RemoteUser(
            id=str(data["id"]),
            login=data["login"],
            name=data.get("name"),
            avatar_url=data.get("avatar_url"),
        )

    async def list_repos(self) -> list[RemoteRepository]:
        """
        List every repository the caller can access.

        Pages are fetched until one comes back shorter than the page size.
        """
        repos: list[RemoteRepository] = []
        page = 1
        while True:
            batch = await self.transport.request(
                "GET",
                "/user/repos",
                params={
                    "per_page": PAGE_SIZE,
                    "page": page,
                    "sort": "updated",
                    "affiliation": "owner,collaborator,organization_member",
                },
            )
            repos.extend(
                RemoteRepository(
                    full_name=r["full_name"],
                    private=bool(r.get("private", False)),
                    description=r.get("description"),
                )
                for r in batch
            )
            if len(batch) < PAGE_SIZE:
                break
            page += 1
        return repos
