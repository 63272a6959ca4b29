"""Remote host resource clients."""

from gitzen.clients.branches import BranchesClient
from gitzen.clients.contents import ContentsClient
from gitzen.clients.pulls import PullsClient
from gitzen.clients.users import UsersClient

__all__ = [
    "ContentsClient",
    "BranchesClient",
    "PullsClient",
    "UsersClient",
]
