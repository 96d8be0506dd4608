from datetime import UTC, datetime

import aiosqlite

from subagent_hub.database import transaction


class ProfileRepository:
    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def get_by_id(self, profile_id: str) -> dict | None:
        cursor = await self._db.execute(
            "SELECT * FROM profiles WHERE id = ?",
            (profile_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return dict(row)

    async def upsert(self, profile_id: str, attrs: dict) -> dict:
        """Create the profile or refresh the non-empty attributes of an existing one."""
        now = datetime.now(UTC).isoformat()
        async with transaction(self._db):
            await self._db.execute(
                """
                INSERT INTO profiles (id, username, full_name, avatar_url, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    full_name = COALESCE(excluded.full_name, profiles.full_name),
                    avatar_url = COALESCE(excluded.avatar_url, profiles.avatar_url),
                    updated_at = excluded.updated_at
                """,
                (
                    profile_id,
                    attrs.get("username") or f"user-{profile_id[:8]}",
                    attrs.get("full_name"),
                    attrs.get("avatar_url"),
                    now,
                    now,
                ),
            )

        profile = await self.get_by_id(profile_id)
        if profile is None:
            raise RuntimeError(f"Profile '{profile_id}' missing after upsert")
        return profile
