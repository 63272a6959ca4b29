"""
In-memory remote Git host for tests.

FakeRemoteHost answers the REST calls RemoteRepoClient and GitHubOAuth
make, backed by a tiny commit graph per repository. Plug it into any httpx
client through ``host.transport()``:

    host = FakeRemoteHost()
    host.add_user("gho_alice", user_id="1", login="alice")
    host.add_repo("alice/site", files={"cms.config.json": "{...}"})
    client = RemoteRepoClient("gho_alice", http_transport=host.transport())

Merges and branch updates detect conflicts the way the real host does: a
file changed differently on both sides since their merge base.
"""

import base64
import hashlib
import itertools
import json
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import httpx

_REPO = r"(?P<repo>[^/]+/[^/]+)"


@dataclass
class FakeCommit:
    sha: str
    files: dict[str, str]
    parents: list[str]
    message: str


@dataclass
class FakePull:
    number: int
    title: str
    body: str
    head: str
    base: str
    author: str
    state: str = "open"
    merged_at: str | None = None
    created_at: str = ""
    updated_at: str = ""


@dataclass
class FakeComment:
    id: int
    body: str
    author: str
    created_at: str


@dataclass
class RecordedCall:
    method: str
    path: str
    params: dict[str, str]
    body: Any


@dataclass
class FakeRepo:
    full_name: str
    default_branch: str = "main"
    private: bool = False
    description: str | None = None
    readable: bool = True
    branches: dict[str, str] = field(default_factory=dict)
    commits: dict[str, FakeCommit] = field(default_factory=dict)
    pulls: dict[int, FakePull] = field(default_factory=dict)
    comments: dict[int, list[FakeComment]] = field(default_factory=dict)

    def snapshot(self, ref: str | None) -> dict[str, str] | None:
        """Files at a branch or commit, or None if the ref is unknown."""
        ref = ref or self.default_branch
        sha = self.branches.get(ref, ref)
        commit = self.commits.get(sha)
        return commit.files if commit else None

    def ancestors(self, sha: str) -> list[str]:
        """`sha` and every commit reachable from it, nearest first."""
        seen: list[str] = []
        queue = [sha]
        while queue:
            current = queue.pop(0)
            if current in seen:
                continue
            seen.append(current)
            queue.extend(self.commits[current].parents)
        return seen

    def merge_base(self, a: str, b: str) -> str:
        reachable = set(self.ancestors(a))
        return next(sha for sha in self.ancestors(b) if sha in reachable)


def blob_sha(content: str) -> str:
    data = content.encode("utf-8")
    return hashlib.sha1(b"blob %d\0" % len(data) + data).hexdigest()


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _changes(before: dict[str, str], after: dict[str, str]) -> dict[str, str | None]:
    """Paths whose content differs; None marks a deletion."""
    changed: dict[str, str | None] = {}
    for path in before.keys() | after.keys():
        if before.get(path) != after.get(path):
            changed[path] = after.get(path)
    return changed


class FakeRemoteHost:
    """A fake remote Git host served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.repos: dict[str, FakeRepo] = {}
        self.users: dict[str, dict[str, Any]] = {}
        self.calls: list[RecordedCall] = []
        self.mergeable_unknown = False
        self.oauth_codes: dict[str, dict[str, Any]] = {}
        self.refresh_tokens: dict[str, dict[str, Any]] = {}
        self.device_codes: dict[str, dict[str, Any]] = {}
        self._failures: list[tuple[str, re.Pattern[str], int, Any]] = []
        self._counter = itertools.count(1)
        self._routes: list[tuple[str, re.Pattern[str], Callable[..., httpx.Response]]] = [
            ("GET", re.compile(r"^/user$"), self._get_user),
            ("GET", re.compile(r"^/user/repos$"), self._list_repos),
            ("POST", re.compile(r"^/login/oauth/access_token$"), self._access_token),
            ("POST", re.compile(r"^/login/device/code$"), self._device_code),
            ("GET", re.compile(rf"^/repos/{_REPO}$"), self._get_repo),
            ("GET", re.compile(rf"^/repos/{_REPO}/contents/?(?P<path>.*)$"), self._get_contents),
            ("PUT", re.compile(rf"^/repos/{_REPO}/contents/(?P<path>.+)$"), self._put_contents),
            ("DELETE", re.compile(rf"^/repos/{_REPO}/contents/(?P<path>.+)$"), self._delete_contents),
            ("GET", re.compile(rf"^/repos/{_REPO}/git/ref/heads/(?P<branch>.+)$"), self._get_ref),
            ("POST", re.compile(rf"^/repos/{_REPO}/git/refs$"), self._create_ref),
            ("DELETE", re.compile(rf"^/repos/{_REPO}/git/refs/heads/(?P<branch>.+)$"), self._delete_ref),
            ("POST", re.compile(rf"^/repos/{_REPO}/pulls$"), self._create_pull),
            ("GET", re.compile(rf"^/repos/{_REPO}/pulls$"), self._list_pulls),
            ("GET", re.compile(rf"^/repos/{_REPO}/pulls/(?P<number>\d+)$"), self._get_pull),
            ("PATCH", re.compile(rf"^/repos/{_REPO}/pulls/(?P<number>\d+)$"), self._patch_pull),
            ("PUT", re.compile(rf"^/repos/{_REPO}/pulls/(?P<number>\d+)/merge$"), self._merge_pull),
            (
                "PUT",
                re.compile(rf"^/repos/{_REPO}/pulls/(?P<number>\d+)/update-branch$"),
                self._update_pull_branch,
            ),
            ("GET", re.compile(rf"^/repos/{_REPO}/compare/(?P<base>.+?)\.\.\.(?P<head>.+)$"), self._compare),
            ("GET", re.compile(rf"^/repos/{_REPO}/issues/(?P<number>\d+)/comments$"), self._list_comments),
            ("POST", re.compile(rf"^/repos/{_REPO}/issues/(?P<number>\d+)/comments$"), self._create_comment),
        ]

    # Setup

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def add_user(self, token: str, user_id: str = "1", login: str = "alice") -> None:
        self.users[token] = {"id": int(user_id), "login": login, "name": login.title(),
                             "avatar_url": f"https://avatars.example/{login}"}

    def add_repo(
        self,
        full_name: str,
        files: dict[str, str] | None = None,
        default_branch: str = "main",
        private: bool = False,
    ) -> FakeRepo:
        repo = FakeRepo(full_name=full_name, default_branch=default_branch, private=private)
        root = self._new_commit(repo, dict(files or {}), [], "Initial commit")
        repo.branches[default_branch] = root.sha
        self.repos[full_name] = repo
        return repo

    def commit(
        self, full_name: str, changes: dict[str, str | None], branch: str | None = None,
        message: str = "External commit",
    ) -> str:
        """Commit directly to a branch, as a collaborator outside the CMS would."""
        repo = self.repos[full_name]
        branch = branch or repo.default_branch
        parent = repo.commits[repo.branches[branch]]
        files = dict(parent.files)
        for path, content in changes.items():
            if content is None:
                files.pop(path, None)
            else:
                files[path] = content
        commit = self._new_commit(repo, files, [parent.sha], message)
        repo.branches[branch] = commit.sha
        return commit.sha

    def file(self, full_name: str, path: str, ref: str | None = None) -> str | None:
        snapshot = self.repos[full_name].snapshot(ref)
        return snapshot.get(path) if snapshot else None

    def fail_next(self, method: str, path_pattern: str, status: int, body: Any = None) -> None:
        """Answer the next matching request with `status` instead of handling it."""
        self._failures.append(
            (method, re.compile(path_pattern), status, body or {"message": "Injected failure"})
        )

    def called(self, method: str, path_pattern: str) -> int:
        pattern = re.compile(path_pattern)
        return sum(1 for c in self.calls if c.method == method and pattern.search(c.path))

    def reset_calls(self) -> None:
        self.calls.clear()

    # Dispatch

    def __call__(self, request: httpx.Request) -> httpx.Response:
        method = request.method
        path = request.url.path
        params = dict(request.url.params)
        body = json.loads(request.content) if request.content else None
        self.calls.append(RecordedCall(method=method, path=path, params=params, body=body))

        for i, (f_method, f_pattern, status, f_body) in enumerate(self._failures):
            if f_method == method and f_pattern.search(path):
                del self._failures[i]
                return httpx.Response(status, json=f_body)

        for r_method, pattern, handler in self._routes:
            if r_method != method:
                continue
            match = pattern.match(path)
            if not match:
                continue
            groups = match.groupdict()
            if path.startswith("/login/"):
                return handler(body or {})
            user = self.users.get(self._token(request))
            if user is None:
                return _error(401, "Bad credentials")
            if "repo" in groups:
                repo = self.repos.get(groups.pop("repo"))
                if repo is None:
                    return _error(404, "Not Found")
                if not repo.readable:
                    return _error(403, "Resource not accessible by integration")
                return handler(repo, user=user, params=params, body=body or {}, **groups)
            return handler(user=user, params=params)

        return _error(404, "Not Found")

    @staticmethod
    def _token(request: httpx.Request) -> str:
        header = request.headers.get("authorization", "")
        return header[len("Bearer "):] if header.startswith("Bearer ") else ""

    def _new_commit(
        self, repo: FakeRepo, files: dict[str, str], parents: list[str], message: str
    ) -> FakeCommit:
        seed = f"{repo.full_name}:{next(self._counter)}:{message}"
        commit = FakeCommit(
            sha=hashlib.sha1(seed.encode()).hexdigest(),
            files=files,
            parents=parents,
            message=message,
        )
        repo.commits[commit.sha] = commit
        return commit

    # Users and OAuth

    def _get_user(self, user: dict[str, Any], params: dict[str, str]) -> httpx.Response:
        return httpx.Response(200, json=user)

    def _list_repos(self, user: dict[str, Any], params: dict[str, str]) -> httpx.Response:
        per_page = int(params.get("per_page", 30))
        page = int(params.get("page", 1))
        names = sorted(self.repos)
        chunk = names[(page - 1) * per_page : page * per_page]
        return httpx.Response(
            200,
            json=[
                {
                    "full_name": name,
                    "private": self.repos[name].private,
                    "description": self.repos[name].description,
                }
                for name in chunk
            ],
        )

    def _access_token(self, body: dict[str, Any]) -> httpx.Response:
        if body.get("grant_type") == "refresh_token":
            grant = self.refresh_tokens.pop(body.get("refresh_token", ""), None)
            return httpx.Response(200, json=grant or {"error": "bad_refresh_token"})
        if "device_code" in body:
            outcome = self.device_codes.get(body["device_code"])
            if outcome is None:
                return httpx.Response(200, json={"error": "incorrect_device_code"})
            return httpx.Response(200, json=outcome)
        grant = self.oauth_codes.pop(body.get("code", ""), None)
        return httpx.Response(200, json=grant or {"error": "bad_verification_code"})

    def _device_code(self, body: dict[str, Any]) -> httpx.Response:
        code = f"device-{next(self._counter)}"
        self.device_codes.setdefault(code, {"error": "authorization_pending"})
        return httpx.Response(
            200,
            json={
                "device_code": code,
                "user_code": "WDJB-MJHT",
                "verification_uri": "https://github.com/login/device",
                "expires_in": 900,
                "interval": 5,
            },
        )

    # Repository contents

    def _get_repo(self, repo: FakeRepo, **_: Any) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "full_name": repo.full_name,
                "default_branch": repo.default_branch,
                "private": repo.private,
            },
        )

    def _get_contents(self, repo: FakeRepo, params: dict[str, str], path: str, **_: Any) -> httpx.Response:
        snapshot = repo.snapshot(params.get("ref"))
        if snapshot is None:
            return _error(404, "No commit found for the ref")
        path = path.strip("/")
        if path in snapshot:
            content = snapshot[path]
            return httpx.Response(
                200,
                json={
                    "type": "file",
                    "path": path,
                    "name": path.rsplit("/", 1)[-1],
                    "sha": blob_sha(content),
                    "encoding": "base64",
                    "content": base64.encodebytes(content.encode("utf-8")).decode("ascii"),
                },
            )

        prefix = f"{path}/" if path else ""
        entries: dict[str, dict[str, Any]] = {}
        for file_path, content in snapshot.items():
            if not file_path.startswith(prefix):
                continue
            rest = file_path[len(prefix):]
            name, _, deeper = rest.partition("/")
            if deeper:
                entries.setdefault(
                    name, {"name": name, "path": prefix + name, "sha": blob_sha(name), "type": "dir"}
                )
            else:
                entries[name] = {
                    "name": name,
                    "path": file_path,
                    "sha": blob_sha(content),
                    "type": "file",
                }
        if not entries:
            return _error(404, "Not Found")
        return httpx.Response(200, json=[entries[k] for k in sorted(entries)])

    def _put_contents(self, repo: FakeRepo, body: dict[str, Any], path: str, **_: Any) -> httpx.Response:
        branch = body.get("branch") or repo.default_branch
        if branch not in repo.branches:
            return _error(404, f"Branch {branch} not found")
        files = repo.snapshot(branch) or {}
        existing = files.get(path)
        sha = body.get("sha")
        if existing is not None and not sha:
            return _error(422, '"sha" wasn\'t supplied.')
        if sha and (existing is None or blob_sha(existing) != sha):
            return _error(409, f"{path} does not match {sha}")

        content = base64.b64decode(body["content"]).decode("utf-8")
        commit_sha = self.commit(repo.full_name, {path: content}, branch, body.get("message", ""))
        return httpx.Response(
            201 if existing is None else 200,
            json={
                "content": {"path": path, "sha": blob_sha(content)},
                "commit": {"sha": commit_sha, "message": body.get("message", "")},
            },
        )

    def _delete_contents(self, repo: FakeRepo, body: dict[str, Any], path: str, **_: Any) -> httpx.Response:
        branch = body.get("branch") or repo.default_branch
        files = repo.snapshot(branch) or {}
        existing = files.get(path)
        if existing is None:
            return _error(404, "Not Found")
        if blob_sha(existing) != body.get("sha"):
            return _error(409, f"{path} does not match {body.get('sha')}")
        commit_sha = self.commit(repo.full_name, {path: None}, branch, body.get("message", ""))
        return httpx.Response(200, json={"content": None, "commit": {"sha": commit_sha}})

    # Refs

    def _get_ref(self, repo: FakeRepo, branch: str, **_: Any) -> httpx.Response:
        sha = repo.branches.get(branch)
        if sha is None:
            return _error(404, "Not Found")
        return httpx.Response(
            200, json={"ref": f"refs/heads/{branch}", "object": {"sha": sha, "type": "commit"}}
        )

    def _create_ref(self, repo: FakeRepo, body: dict[str, Any], **_: Any) -> httpx.Response:
        ref = body.get("ref", "")
        if not ref.startswith("refs/heads/"):
            return _error(422, "Reference name must start with refs/heads/")
        branch = ref[len("refs/heads/"):]
        if branch in repo.branches:
            return _error(422, "Reference already exists")
        if body.get("sha") not in repo.commits:
            return _error(422, "Object does not exist")
        repo.branches[branch] = body["sha"]
        return httpx.Response(201, json={"ref": ref, "object": {"sha": body["sha"]}})

    def _delete_ref(self, repo: FakeRepo, branch: str, **_: Any) -> httpx.Response:
        if branch not in repo.branches:
            return _error(422, "Reference does not exist")
        del repo.branches[branch]
        return httpx.Response(204)

    # Pull requests

    def _pull_json(self, repo: FakeRepo, pull: FakePull) -> dict[str, Any]:
        head_sha = repo.branches.get(pull.head, "")
        base_sha = repo.branches.get(pull.base, "")
        mergeable: bool | None = None
        if not self.mergeable_unknown and pull.state == "open" and head_sha and base_sha:
            mergeable = not self._conflicts(repo, base_sha, head_sha)
        return {
            "number": pull.number,
            "title": pull.title,
            "body": pull.body,
            "state": pull.state,
            "head": {"ref": pull.head, "sha": head_sha},
            "base": {"ref": pull.base, "sha": base_sha},
            "user": {"login": pull.author},
            "html_url": f"https://github.com/{repo.full_name}/pull/{pull.number}",
            "created_at": pull.created_at,
            "updated_at": pull.updated_at,
            "merged_at": pull.merged_at,
            "mergeable": mergeable,
        }

    def _conflicts(self, repo: FakeRepo, base_sha: str, head_sha: str) -> list[str]:
        ancestor = repo.commits[repo.merge_base(base_sha, head_sha)].files
        ours = _changes(ancestor, repo.commits[base_sha].files)
        theirs = _changes(ancestor, repo.commits[head_sha].files)
        return sorted(p for p in ours.keys() & theirs.keys() if ours[p] != theirs[p])

    def _pull(self, repo: FakeRepo, number: str) -> FakePull | None:
        return repo.pulls.get(int(number))

    def _create_pull(self, repo: FakeRepo, user: dict[str, Any], body: dict[str, Any], **_: Any) -> httpx.Response:
        head, base = body.get("head"), body.get("base")
        if head not in repo.branches or base not in repo.branches:
            return _error(422, "Validation Failed")
        if any(p.head == head and p.state == "open" for p in repo.pulls.values()):
            return _error(422, f"A pull request already exists for {head}.")
        now = _now()
        pull = FakePull(
            number=len(repo.pulls) + 1,
            title=body.get("title", ""),
            body=body.get("body", ""),
            head=head,
            base=base,
            author=user["login"],
            created_at=now,
            updated_at=now,
        )
        repo.pulls[pull.number] = pull
        return httpx.Response(201, json=self._pull_json(repo, pull))

    def _list_pulls(self, repo: FakeRepo, params: dict[str, str], **_: Any) -> httpx.Response:
        state = params.get("state", "open")
        pulls = [
            p for p in sorted(repo.pulls.values(), key=lambda p: -p.number)
            if state == "all" or p.state == state
        ]
        return httpx.Response(200, json=[self._pull_json(repo, p) for p in pulls])

    def _get_pull(self, repo: FakeRepo, number: str, **_: Any) -> httpx.Response:
        pull = self._pull(repo, number)
        if pull is None:
            return _error(404, "Not Found")
        return httpx.Response(200, json=self._pull_json(repo, pull))

    def _patch_pull(self, repo: FakeRepo, body: dict[str, Any], number: str, **_: Any) -> httpx.Response:
        pull = self._pull(repo, number)
        if pull is None:
            return _error(404, "Not Found")
        if body.get("state") in ("open", "closed"):
            pull.state = body["state"]
        if "title" in body:
            pull.title = body["title"]
        pull.updated_at = _now()
        return httpx.Response(200, json=self._pull_json(repo, pull))

    def _merge_pull(self, repo: FakeRepo, body: dict[str, Any], number: str, **_: Any) -> httpx.Response:
        pull = self._pull(repo, number)
        if pull is None:
            return _error(404, "Not Found")
        if pull.state != "open" or pull.head not in repo.branches:
            return _error(405, "Pull Request is not mergeable")
        base_sha, head_sha = repo.branches[pull.base], repo.branches[pull.head]
        if self._conflicts(repo, base_sha, head_sha):
            return _error(405, "Pull Request is not mergeable")

        ancestor = repo.commits[repo.merge_base(base_sha, head_sha)].files
        changes = _changes(ancestor, repo.commits[head_sha].files)
        message = body.get("commit_title") or pull.title
        sha = self.commit(repo.full_name, changes, pull.base, message)
        pull.state = "closed"
        pull.merged_at = pull.updated_at = _now()
        return httpx.Response(
            200, json={"sha": sha, "merged": True, "message": "Pull Request successfully merged"}
        )

    def _update_pull_branch(self, repo: FakeRepo, number: str, **_: Any) -> httpx.Response:
        pull = self._pull(repo, number)
        if pull is None:
            return _error(404, "Not Found")
        base_sha, head_sha = repo.branches[pull.base], repo.branches[pull.head]
        if self._conflicts(repo, base_sha, head_sha):
            return _error(422, "merge conflict between base and head")

        ancestor = repo.commits[repo.merge_base(base_sha, head_sha)].files
        files = dict(repo.commits[head_sha].files)
        for path, content in _changes(ancestor, repo.commits[base_sha].files).items():
            if content is None:
                files.pop(path, None)
            else:
                files[path] = content
        merge = self._new_commit(repo, files, [head_sha, base_sha], f"Merge {pull.base} into {pull.head}")
        repo.branches[pull.head] = merge.sha
        return httpx.Response(202, json={"message": "Updating pull request branch."})

    def _compare(self, repo: FakeRepo, base: str, head: str, **_: Any) -> httpx.Response:
        base_sha, head_sha = repo.branches.get(base, base), repo.branches.get(head, head)
        if base_sha not in repo.commits or head_sha not in repo.commits:
            return _error(404, "Not Found")
        ancestor_sha = repo.merge_base(base_sha, head_sha)
        ancestor = repo.commits[ancestor_sha].files
        files = []
        for path, content in sorted(_changes(ancestor, repo.commits[head_sha].files).items()):
            if content is None:
                status = "removed"
            elif path not in ancestor:
                status = "added"
            else:
                status = "modified"
            files.append({"filename": path, "status": status})
        head_only = [s for s in repo.ancestors(head_sha) if s not in set(repo.ancestors(base_sha))]
        base_only = [s for s in repo.ancestors(base_sha) if s not in set(repo.ancestors(head_sha))]
        return httpx.Response(
            200,
            json={
                "status": "ahead" if not base_only else "diverged",
                "ahead_by": len(head_only),
                "behind_by": len(base_only),
                "files": files,
            },
        )

    # Comments

    def _comment_json(self, comment: FakeComment) -> dict[str, Any]:
        return {
            "id": comment.id,
            "body": comment.body,
            "user": {"login": comment.author, "avatar_url": f"https://avatars.example/{comment.author}"},
            "created_at": comment.created_at,
        }

    def _list_comments(self, repo: FakeRepo, number: str, **_: Any) -> httpx.Response:
        if self._pull(repo, number) is None:
            return _error(404, "Not Found")
        return httpx.Response(
            200, json=[self._comment_json(c) for c in repo.comments.get(int(number), [])]
        )

    def _create_comment(
        self, repo: FakeRepo, user: dict[str, Any], body: dict[str, Any], number: str, **_: Any
    ) -> httpx.Response:
        if self._pull(repo, number) is None:
            return _error(404, "Not Found")
        comment = FakeComment(
            id=next(self._counter), body=body["body"], author=user["login"], created_at=_now()
        )
        repo.comments.setdefault(int(number), []).append(comment)
        return httpx.Response(201, json=self._comment_json(comment))


def _error(status: int, message: str) -> httpx.Response:
    return httpx.Response(status, json={"message": message})
