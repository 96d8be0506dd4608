import json
from contextlib import AbstractAsyncContextManager
from datetime import UTC, datetime
from uuid import uuid4

import aiosqlite
import structlog

from subagent_hub.agents.schemas import AgentCreate, AgentFilter
from subagent_hub.database import transaction

logger = structlog.get_logger()

_JSON_COLUMNS = ("tools", "tags")

_UPDATABLE_COLUMNS = {
    "description",
    "short_description",
    "content",
    "tools",
    "tags",
    "category_id",
    "version",
    "status",
    "import_source",
    "file_path",
    "github_url",
    "github_repo_name",
    "github_owner",
    "original_author_github_username",
    "original_author_github_url",
    "original_author_avatar_url",
    "github_stars",
}


def _row_to_dict(row: aiosqlite.Row) -> dict:
    data = dict(row)
    for column in _JSON_COLUMNS:
        data[column] = json.loads(data[column]) if data.get(column) else []
    return data


def _encode(column: str, value: object) -> object:
    if column in _JSON_COLUMNS:
        return json.dumps(list(value or []))
    return value


class AgentRepository:
    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def get_by_id(self, agent_id: str) -> dict | None:
        cursor = await self._db.execute("SELECT * FROM agents WHERE id = ?", (agent_id,))
        row = await cursor.fetchone()
        if row is None:
            return None
        return _row_to_dict(row)

    async def find_by_name(self, name: str, author_id: str | None = None) -> dict | None:
        """Look an agent up by its natural key.

        With ``author_id`` the lookup is scoped to that author; without it the
        oldest agent carrying the name is returned.
        """
        if author_id is not None:
            cursor = await self._db.execute(
                "SELECT * FROM agents WHERE name = ? AND author_id = ?",
                (name, author_id),
            )
        else:
            cursor = await self._db.execute(
                "SELECT * FROM agents WHERE name = ? ORDER BY created_at ASC LIMIT 1",
                (name,),
            )
        row = await cursor.fetchone()
        if row is None:
            return None
        return _row_to_dict(row)

    async def insert(self, data: AgentCreate) -> str:
        agent_id = str(uuid4())
        now = datetime.now(UTC).isoformat()
        record = data.model_dump(mode="json")
        record.update(id=agent_id, created_at=now, updated_at=now)

        columns = list(record)
        placeholders = ", ".join("?" for _ in columns)
        await self._db.execute(
            f"INSERT INTO agents ({', '.join(columns)}) VALUES ({placeholders})",
            [_encode(column, record[column]) for column in columns],
        )
        logger.debug("agent_inserted", agent_id=agent_id, name=data.name)
        return agent_id

    async def update(self, agent_id: str, patch: dict) -> None:
        fields = {key: value for key, value in patch.items() if key in _UPDATABLE_COLUMNS}
        if not fields:
            return

        fields["updated_at"] = datetime.now(UTC).isoformat()
        assignments = ", ".join(f"{column} = ?" for column in fields)
        params = [_encode(column, value) for column, value in fields.items()]
        params.append(agent_id)

        await self._db.execute(f"UPDATE agents SET {assignments} WHERE id = ?", params)
        logger.debug("agent_updated", agent_id=agent_id, fields=sorted(fields))

    async def delete(self, agent_id: str) -> None:
        await self._db.execute("DELETE FROM agents WHERE id = ?", (agent_id,))

    async def list_filtered(self, filters: AgentFilter) -> list[dict]:
        conditions: list[str] = ["1 = 1"]
        params: list = []

        if filters.author_id is not None:
            conditions.append("author_id = ?")
            params.append(filters.author_id)
        if filters.category_id is not None:
            conditions.append("category_id = ?")
            params.append(filters.category_id)
        if filters.status is not None:
            conditions.append("status = ?")
            params.append(filters.status)
        if filters.q:
            conditions.append("(name LIKE ? OR description LIKE ?)")
            pattern = f"%{filters.q}%"
            params.extend([pattern, pattern])

        where_clause = " AND ".join(conditions)
        params.extend([filters.limit, filters.offset])

        cursor = await self._db.execute(
            f"""
            SELECT * FROM agents
            WHERE {where_clause}
            ORDER BY created_at DESC
            LIMIT ? OFFSET ?
            """,
            params,
        )
        rows = await cursor.fetchall()
        return [_row_to_dict(row) for row in rows]

    def transaction(self) -> AbstractAsyncContextManager[None]:
        return transaction(self._db)
