"""Data access for users and friendship edges.

Every statement takes the connection it runs on so callers decide the
transaction scope. Only edges with status ``accepted`` ever count as
friendships.
"""

from __future__ import annotations

from typing import Iterable, Optional

import asyncpg


# (user_id, total_friend_count) for every user with at least one accepted
# outgoing edge.
_TOTAL_FRIEND_COUNT_SQL = """
SELECT fc.user_id, COUNT(fc.friend_user_id) AS total_friend_count
FROM friendships fc
WHERE fc.status = 'accepted'
GROUP BY fc.user_id
"""

_FRIEND_DETAIL_SQL = f"""
SELECT friend.id,
	friend.full_name,
	friend.phone_number,
	COALESCE(totals.total_friend_count, 0) AS total_friend_count
FROM users friend
JOIN friendships f ON f.friend_user_id = friend.id
LEFT JOIN ({_TOTAL_FRIEND_COUNT_SQL}) totals ON totals.user_id = friend.id
WHERE f.user_id = $1
  AND f.friend_user_id = $2
  AND f.status = 'accepted'
"""

_MUTUAL_FRIEND_COUNT_SQL = """
SELECT COUNT(DISTINCT a.friend_user_id) AS mutual_friend_count
FROM friendships a
JOIN friendships b ON b.friend_user_id = a.friend_user_id
WHERE a.user_id = $1
  AND a.status = 'accepted'
  AND b.user_id = $2
  AND b.status = 'accepted'
  AND a.friend_user_id <> $2
  AND b.friend_user_id <> $1
"""

_FRIENDS_WITH_COUNTS_SQL = f"""
WITH mine AS (
	SELECT friend_user_id
	FROM friendships
	WHERE user_id = $1 AND status = 'accepted'
),
totals AS ({_TOTAL_FRIEND_COUNT_SQL}),
mutuals AS (
	SELECT b.user_id AS friend_user_id,
		COUNT(DISTINCT b.friend_user_id) AS mutual_friend_count
	FROM friendships b
	JOIN mine shared ON shared.friend_user_id = b.friend_user_id
	WHERE b.status = 'accepted'
	  AND b.user_id IN (SELECT friend_user_id FROM mine)
	  AND b.friend_user_id <> b.user_id
	  AND b.friend_user_id <> $1
	GROUP BY b.user_id
)
SELECT friend.id,
	friend.full_name,
	friend.phone_number,
	COALESCE(totals.total_friend_count, 0) AS total_friend_count,
	COALESCE(mutuals.mutual_friend_count, 0) AS mutual_friend_count
FROM mine
JOIN users friend ON friend.id = mine.friend_user_id
LEFT JOIN totals ON totals.user_id = friend.id
LEFT JOIN mutuals ON mutuals.friend_user_id = friend.id
"""


class FriendshipRepository:
	"""Thin data-access layer around asyncpg."""

	# --- Aggregates -------------------------------------------------------

	async def total_friend_counts(
		self,
		conn: asyncpg.Connection,
		user_ids: Optional[Iterable[str]] = None,
	) -> dict[str, int]:
		"""Return ``{user_id: total_friend_count}`` for users with accepted edges."""
		if user_ids is None:
			rows = await conn.fetch(_TOTAL_FRIEND_COUNT_SQL)
		else:
			rows = await conn.fetch(
				f"SELECT * FROM ({_TOTAL_FRIEND_COUNT_SQL}) totals WHERE totals.user_id = ANY($1::uuid[])",
				[str(uid) for uid in user_ids],
			)
		return {str(row["user_id"]): int(row["total_friend_count"]) for row in rows}

	# --- Friend reads -----------------------------------------------------

	async def select_friend_ids(self, conn: asyncpg.Connection, user_id: str) -> list[str]:
		rows = await conn.fetch(
			"""
			SELECT f.friend_user_id
			FROM friendships f
			JOIN users friend ON friend.id = f.friend_user_id
			WHERE f.user_id = $1 AND f.status = 'accepted'
			""",
			user_id,
		)
		return [str(row["friend_user_id"]) for row in rows]

	async def select_friend_detail(
		self,
		conn: asyncpg.Connection,
		user_id: str,
		friend_user_id: str,
	) -> Optional[asyncpg.Record]:
		return await conn.fetchrow(_FRIEND_DETAIL_SQL, user_id, friend_user_id)

	async def select_mutual_friend_count(
		self,
		conn: asyncpg.Connection,
		user_id: str,
		friend_user_id: str,
	) -> Optional[int]:
		row = await conn.fetchrow(_MUTUAL_FRIEND_COUNT_SQL, user_id, friend_user_id)
		if row is None or row["mutual_friend_count"] is None:
			return None
		return int(row["mutual_friend_count"])

	async def select_friends_with_counts(self, conn: asyncpg.Connection, user_id: str) -> list[asyncpg.Record]:
		"""Friends of ``user_id`` with both counts, in one round trip."""
		return await conn.fetch(_FRIENDS_WITH_COUNTS_SQL, user_id)

	# --- Users ------------------------------------------------------------

	async def user_exists(self, conn: asyncpg.Connection, user_id: str) -> bool:
		row = await conn.fetchrow("SELECT 1 FROM users WHERE id = $1", user_id)
		return row is not None

	# --- Edges ------------------------------------------------------------

	async def select_edge(
		self,
		conn: asyncpg.Connection,
		user_id: str,
		friend_user_id: str,
	) -> Optional[asyncpg.Record]:
		return await conn.fetchrow(
			"SELECT * FROM friendships WHERE user_id = $1 AND friend_user_id = $2",
			user_id,
			friend_user_id,
		)

	async def select_outgoing(self, conn: asyncpg.Connection, user_id: str) -> list[asyncpg.Record]:
		return await conn.fetch(
			"""
			SELECT *
			FROM friendships
			WHERE user_id = $1
			ORDER BY created_at DESC
			""",
			user_id,
		)

	async def upsert_request(
		self,
		conn: asyncpg.Connection,
		user_id: str,
		friend_user_id: str,
	) -> Optional[asyncpg.Record]:
		"""Create or revive the edge as ``requested``.

		Only a missing or ``declined`` edge changes; ``None`` means the edge
		was already requested or accepted and was left untouched.
		"""
		return await conn.fetchrow(
			"""
			INSERT INTO friendships (user_id, friend_user_id, status)
			VALUES ($1, $2, 'requested')
			ON CONFLICT (user_id, friend_user_id)
			DO UPDATE SET status = 'requested', updated_at = NOW()
			WHERE friendships.status = 'declined'
			RETURNING *
			""",
			user_id,
			friend_user_id,
		)

	async def resolve_request(
		self,
		conn: asyncpg.Connection,
		requester_id: str,
		recipient_id: str,
		status: str,
	) -> Optional[asyncpg.Record]:
		"""Move a pending ``requester -> recipient`` edge to ``status``."""
		return await conn.fetchrow(
			"""
			UPDATE friendships
			SET status = $3, updated_at = NOW()
			WHERE user_id = $1
			  AND friend_user_id = $2
			  AND status = 'requested'
			RETURNING *
			""",
			requester_id,
			recipient_id,
			status,
		)

	async def upsert_accepted(
		self,
		conn: asyncpg.Connection,
		user_id: str,
		friend_user_id: str,
	) -> asyncpg.Record:
		return await conn.fetchrow(
			"""
			INSERT INTO friendships (user_id, friend_user_id, status)
			VALUES ($1, $2, 'accepted')
			ON CONFLICT (user_id, friend_user_id)
			DO UPDATE SET status = 'accepted', updated_at = NOW()
			RETURNING *
			""",
			user_id,
			friend_user_id,
		)
