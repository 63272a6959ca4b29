"""
Users, sessions and API token records.

Two stores are injected: `sessions` holds SessionRecords keyed by session
id, `data` holds everything else under prefixed keys:

    user:{github_user_id}       UserRecord
    api-token:{token_id}        ApiTokenRecord
    user-tokens:{user_id}       {"tokenIds": [...]}
"""

from datetime import datetime, timedelta, timezone

from gitzen.crypto import decrypt, encrypt, generate_random_hex
from gitzen.oauth import OAuthTokens
from gitzen.store import KVStore
from gitzen.types.records import ApiTokenRecord, SessionRecord, UserRecord
from gitzen.types.repos import RemoteUser


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def isoformat(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_past(value: str | None, now: datetime | None = None) -> bool:
    """True when `value` is set and lies before `now`."""
    if not value:
        return False
    return parse_timestamp(value) < (now or utcnow())


def _user_key(user_id: str) -> str:
    return f"user:{user_id}"


def _token_key(token_id: str) -> str:
    return f"api-token:{token_id}"


def _index_key(user_id: str) -> str:
    return f"user-tokens:{user_id}"


class IdentityStore:
    """Reads and writes identity records; tokens are encrypted before storage."""

    def __init__(self, data: KVStore, sessions: KVStore, encryption_key: str) -> None:
        self.data = data
        self.sessions = sessions
        self._encryption_key = encryption_key

    # Users

    async def get_user(self, user_id: str) -> UserRecord | None:
        raw = await self.data.get_json(_user_key(user_id))
        return UserRecord.from_dict(raw) if raw else None

    async def save_user(self, user: UserRecord) -> None:
        await self.data.put_json(_user_key(user.github_user_id), user.to_dict())

    async def upsert_user(self, remote_user: RemoteUser, tokens: OAuthTokens) -> UserRecord:
        """Create or refresh the record for a user who just signed in.

        `created_at` of an existing record is preserved.
        """
        now = utcnow()
        existing = await self.get_user(remote_user.id)
        user = UserRecord(
            github_user_id=remote_user.id,
            github_username=remote_user.login,
            encrypted_access_token=encrypt(tokens.access_token, self._encryption_key),
            encrypted_refresh_token=(
                encrypt(tokens.refresh_token, self._encryption_key)
                if tokens.refresh_token
                else None
            ),
            token_expires_at=_expiry(now, tokens.expires_in),
            created_at=existing.created_at if existing else isoformat(now),
            updated_at=isoformat(now),
        )
        await self.save_user(user)
        return user

    async def store_refreshed_tokens(self, user: UserRecord, tokens: OAuthTokens) -> UserRecord:
        """Replace a user's tokens after a refresh, keeping the old refresh token if none came back."""
        now = utcnow()
        user.encrypted_access_token = encrypt(tokens.access_token, self._encryption_key)
        if tokens.refresh_token:
            user.encrypted_refresh_token = encrypt(tokens.refresh_token, self._encryption_key)
        user.token_expires_at = _expiry(now, tokens.expires_in)
        user.updated_at = isoformat(now)
        await self.save_user(user)
        return user

    def decrypt_access_token(self, user: UserRecord) -> str:
        return decrypt(user.encrypted_access_token, self._encryption_key)

    def decrypt_refresh_token(self, user: UserRecord) -> str | None:
        if not user.encrypted_refresh_token:
            return None
        return decrypt(user.encrypted_refresh_token, self._encryption_key)

    # Sessions

    async def create_session(self, user_id: str, ttl_seconds: int) -> tuple[str, SessionRecord]:
        now = utcnow()
        session_id = generate_random_hex(32)
        session = SessionRecord(
            user_id=user_id,
            created_at=isoformat(now),
            expires_at=isoformat(now + timedelta(seconds=ttl_seconds)),
        )
        await self.sessions.put_json(session_id, session.to_dict(), ttl_seconds)
        return session_id, session

    async def get_session(self, session_id: str) -> SessionRecord | None:
        raw = await self.sessions.get_json(session_id)
        return SessionRecord.from_dict(raw) if raw else None

    async def delete_session(self, session_id: str) -> None:
        await self.sessions.delete(session_id)

    # API tokens

    async def get_token(self, token_id: str) -> ApiTokenRecord | None:
        raw = await self.data.get_json(_token_key(token_id))
        return ApiTokenRecord.from_dict(raw) if raw else None

    async def save_token(self, record: ApiTokenRecord) -> None:
        await self.data.put_json(_token_key(record.token_id), record.to_dict())

    async def delete_token(self, token_id: str) -> None:
        await self.data.delete(_token_key(token_id))

    async def token_ids(self, user_id: str) -> list[str]:
        index = await self.data.get_json(_index_key(user_id))
        return list((index or {}).get("tokenIds") or [])

    async def add_to_index(self, user_id: str, token_id: str) -> None:
        ids = await self.token_ids(user_id)
        ids.append(token_id)
        await self.data.put_json(_index_key(user_id), {"tokenIds": ids})

    async def remove_from_index(self, user_id: str, token_id: str) -> None:
        index = await self.data.get_json(_index_key(user_id))
        if not index:
            return
        ids = [i for i in index.get("tokenIds") or [] if i != token_id]
        await self.data.put_json(_index_key(user_id), {"tokenIds": ids})


def _expiry(now: datetime, expires_in: int | None) -> str | None:
    if not expires_in:
        return None
    return isoformat(now + timedelta(seconds=expires_in))
