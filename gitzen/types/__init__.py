"""gitzen type definitions.

This module exports all data model types used by the package.
"""

from gitzen.types.content import (
    ABSENT,
    NO_VALUE,
    CmsConfig,
    CollectionConfig,
    ContentDiff,
    ContentItem,
    DiffSegment,
    FieldDefinition,
    FieldDiff,
    WorkflowConfig,
)
from gitzen.types.pulls import (
    Comment,
    Comparison,
    FileChange,
    MergeResult,
    PullRequest,
    ReviewDetail,
    ReviewSummary,
)
from gitzen.types.records import (
    API_TOKEN,
    SESSION,
    ApiTokenCreated,
    ApiTokenRecord,
    AuthContext,
    RepoConnection,
    SessionRecord,
    TokenScope,
    UserRecord,
)
from gitzen.types.repos import DirectoryItem, FileContent, RemoteRepository, RemoteUser

__all__ = [
    # Records
    "SESSION",
    "API_TOKEN",
    "UserRecord",
    "SessionRecord",
    "ApiTokenRecord",
    "ApiTokenCreated",
    "RepoConnection",
    "TokenScope",
    "AuthContext",
    # Remote host
    "FileContent",
    "DirectoryItem",
    "RemoteRepository",
    "RemoteUser",
    # Pull requests
    "PullRequest",
    "MergeResult",
    "FileChange",
    "Comparison",
    "Comment",
    "ReviewSummary",
    "ReviewDetail",
    # Content
    "ABSENT",
    "NO_VALUE",
    "CmsConfig",
    "CollectionConfig",
    "WorkflowConfig",
    "FieldDefinition",
    "ContentItem",
    "DiffSegment",
    "FieldDiff",
    "ContentDiff",
]
