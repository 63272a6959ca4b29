"""Content, repository configuration and diff data models."""

from dataclasses import dataclass, field
from typing import Any


class _Absent:
    """Marks a frontmatter field that does not exist on one side of a diff."""

    _instance: "_Absent | None" = None

    def __new__(cls) -> "_Absent":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "(no value)"

    def __bool__(self) -> bool:
        return False


ABSENT: Any = _Absent()
NO_VALUE = "(no value)"


@dataclass
class FieldDefinition:
    """A frontmatter field declared by a collection."""

    name: str
    type: str  # "string", "string[]", "number", "boolean", "date"
    label: str
    required: bool = False
    default: Any = None


@dataclass
class WorkflowConfig:
    """How saves in a collection land: "direct" commit or "pr" review branch."""

    default: str = "direct"
    locked: bool = False


@dataclass
class CollectionConfig:
    """A content collection: a directory of markdown files."""

    label: str
    directory: str
    fields: list[FieldDefinition] = field(default_factory=list)
    workflow: WorkflowConfig = field(default_factory=WorkflowConfig)


@dataclass
class CmsConfig:
    """The repository's cms.config.json."""

    name: str
    collections: dict[str, CollectionConfig]
    pages_project: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CmsConfig":
        collections: dict[str, CollectionConfig] = {}
        for key, raw in (data.get("collections") or {}).items():
            workflow = raw.get("workflow") or {}
            collections[key] = CollectionConfig(
                label=raw.get("label", key),
                directory=str(raw["directory"]).strip("/"),
                fields=[
                    FieldDefinition(
                        name=f["name"],
                        type=f.get("type", "string"),
                        label=f.get("label", f["name"]),
                        required=bool(f.get("required", False)),
                        default=f.get("default"),
                    )
                    for f in raw.get("fields") or []
                ],
                workflow=WorkflowConfig(
                    default=workflow.get("default", "direct"),
                    locked=bool(workflow.get("locked", False)),
                ),
            )
        preview = data.get("preview") or {}
        return cls(
            name=data.get("name", ""),
            collections=collections,
            pages_project=preview.get("pagesProject"),
        )


@dataclass
class ContentItem:
    """A content file with parsed frontmatter."""

    slug: str
    path: str
    sha: str
    frontmatter: dict[str, Any]
    body: str | None = None
    branch: str | None = None
    pr_number: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "slug": self.slug,
            "path": self.path,
            "sha": self.sha,
            "frontmatter": self.frontmatter,
        }
        if self.body is not None:
            data["body"] = self.body
        if self.branch is not None:
            data["branch"] = self.branch
        if self.pr_number is not None:
            data["prNumber"] = self.pr_number
        return data


@dataclass
class DiffSegment:
    """A run of text that is equal, added or removed."""

    type: str  # "equal", "added", "removed"
    text: str


@dataclass
class FieldDiff:
    """Old and new value of one frontmatter field."""

    name: str
    old_value: Any
    new_value: Any
    changed: bool

    def render_old(self) -> str:
        return _render(self.old_value)

    def render_new(self) -> str:
        return _render(self.new_value)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "changed": self.changed}
        if self.old_value is not ABSENT:
            data["oldValue"] = self.old_value
        if self.new_value is not ABSENT:
            data["newValue"] = self.new_value
        return data


@dataclass
class ContentDiff:
    """Structured change to one content file in a pull request."""

    collection: str
    slug: str
    type: str  # "added", "modified", "deleted"
    fields: list[FieldDiff]
    old_body: str
    new_body: str
    segments: list[DiffSegment] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "collection": self.collection,
            "slug": self.slug,
            "type": self.type,
            "frontmatter": {"fields": [f.to_dict() for f in self.fields]},
            "body": {
                "oldBody": self.old_body,
                "newBody": self.new_body,
                "segments": [{"type": s.type, "text": s.text} for s in self.segments],
            },
        }


def _render(value: Any) -> str:
    if value is ABSENT:
        return NO_VALUE
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    return str(value)
