"""Service layer for friend lists and friendship requests."""

from __future__ import annotations

import logging
import time
from typing import List, Mapping
from uuid import UUID

import asyncpg

from friendgraph.domain.social.exceptions import (
	FriendEnrichmentFailed,
	FriendNotFound,
	FriendshipRequestNotFound,
	FriendshipSelfRequest,
	SocialError,
	UserNotFound,
)
from friendgraph.domain.social.models import Friendship, FriendshipStatus, User
from friendgraph.domain.social.repo import FriendshipRepository
from friendgraph.domain.social.schemas import FriendInfo, FriendshipEdge
from friendgraph.infra.auth import AuthenticatedUser
from friendgraph.infra.postgres import get_pool
from friendgraph.obs import metrics as obs_metrics
from friendgraph.settings import settings

logger = logging.getLogger(__name__)
_repo = FriendshipRepository()


def _record_to_edge(record: asyncpg.Record) -> FriendshipEdge:
	edge = Friendship.from_record(record)
	return FriendshipEdge(
		user_id=edge.user_id,
		friend_user_id=edge.friend_user_id,
		status=edge.status.value,
		created_at=edge.created_at,
		updated_at=edge.updated_at,
	)


def _build_friend_info(detail: Mapping, mutual_friend_count: int) -> FriendInfo:
	friend = User.from_record(detail)
	return FriendInfo(
		id=friend.id,
		full_name=friend.full_name,
		phone_number=friend.phone_number,
		total_friend_count=detail["total_friend_count"],
		mutual_friend_count=mutual_friend_count,
	)


def _observe(op: str, result: str, start: float) -> None:
	obs_metrics.observe_friend_query(op, result, time.perf_counter() - start)


def guard_not_self(user_id: str, target_id: str) -> None:
	if str(user_id) == str(target_id):
		raise FriendshipSelfRequest()


async def _load_friend_info(
	conn: asyncpg.Connection,
	user_id: str,
	friend_user_id: str,
	*,
	missing: type[SocialError],
) -> FriendInfo:
	detail = await _repo.select_friend_detail(conn, user_id, friend_user_id)
	if detail is None:
		raise missing()
	mutual = await _repo.select_mutual_friend_count(conn, user_id, friend_user_id)
	if mutual is None:
		raise FriendEnrichmentFailed("mutual_count_missing")
	return _build_friend_info(detail, mutual)


async def get_friend_by_id(auth_user: AuthenticatedUser, friend_user_id: UUID) -> FriendInfo:
	user_id = str(auth_user.id)
	target_id = str(friend_user_id)
	start = time.perf_counter()
	pool = await get_pool()
	try:
		async with pool.acquire() as conn:
			async with conn.transaction(readonly=True):
				info = await _load_friend_info(conn, user_id, target_id, missing=FriendNotFound)
	except SocialError as exc:
		_observe("get_by_id", exc.reason, start)
		raise
	_observe("get_by_id", "ok", start)
	return info


async def _list_batched(conn: asyncpg.Connection, user_id: str) -> List[FriendInfo]:
	rows = await _repo.select_friends_with_counts(conn, user_id)
	return [_build_friend_info(row, row["mutual_friend_count"]) for row in rows]


async def _list_per_friend(conn: asyncpg.Connection, user_id: str) -> List[FriendInfo]:
	friend_ids = await _repo.select_friend_ids(conn, user_id)
	friends: List[FriendInfo] = []
	for friend_id in friend_ids:
		friends.append(
			await _load_friend_info(conn, user_id, friend_id, missing=FriendEnrichmentFailed)
		)
	return friends


async def get_all_friends(auth_user: AuthenticatedUser) -> List[FriendInfo]:
	user_id = str(auth_user.id)
	strategy = settings.friends_list_strategy
	start = time.perf_counter()
	pool = await get_pool()
	try:
		async with pool.acquire() as conn:
			if strategy == "per_friend":
				# One snapshot for the whole loop so candidates cannot vanish mid-call.
				async with conn.transaction(isolation="repeatable_read", readonly=True):
					friends = await _list_per_friend(conn, user_id)
			else:
				async with conn.transaction(readonly=True):
					friends = await _list_batched(conn, user_id)
	except SocialError as exc:
		_observe("get_all", exc.reason, start)
		logger.warning("friends_list_failed", extra={"strategy": strategy, "reason": exc.reason})
		raise
	_observe("get_all", "ok", start)
	obs_metrics.observe_friends_list_size(len(friends))
	return friends


async def send_friendship_request(auth_user: AuthenticatedUser, friend_user_id: UUID) -> FriendshipEdge:
	user_id = str(auth_user.id)
	target_id = str(friend_user_id)
	guard_not_self(user_id, target_id)

	pool = await get_pool()
	async with pool.acquire() as conn:
		if not await _repo.user_exists(conn, target_id):
			raise UserNotFound()
		# A valid token can still name a user that was deleted since it was issued.
		if not await _repo.user_exists(conn, user_id):
			raise UserNotFound("requester_missing")
		async with conn.transaction():
			record = await _repo.upsert_request(conn, user_id, target_id)
			if record is None:
				record = await _repo.select_edge(conn, user_id, target_id)
			else:
				obs_metrics.inc_friendship_transition(FriendshipStatus.REQUESTED.value)
				logger.info("friendship_requested", extra={"from_user": user_id, "to_user": target_id})
	return _record_to_edge(record)


async def _resolve_incoming(
	auth_user: AuthenticatedUser,
	friend_user_id: UUID,
	new_status: FriendshipStatus,
) -> FriendshipEdge:
	user_id = str(auth_user.id)
	requester_id = str(friend_user_id)
	pool = await get_pool()
	async with pool.acquire() as conn:
		async with conn.transaction():
			incoming = await _repo.resolve_request(conn, requester_id, user_id, new_status.value)
			if incoming is None:
				raise FriendshipRequestNotFound()
			if new_status is FriendshipStatus.ACCEPTED:
				record = await _repo.upsert_accepted(conn, user_id, requester_id)
			else:
				record = incoming
	obs_metrics.inc_friendship_transition(new_status.value)
	logger.info(
		"friendship_request_resolved",
		extra={"from_user": requester_id, "to_user": user_id, "status": new_status.value},
	)
	return _record_to_edge(record)


async def accept_friendship_request(auth_user: AuthenticatedUser, friend_user_id: UUID) -> FriendshipEdge:
	"""Accept the pending request sent by ``friend_user_id``.

	The incoming edge becomes ``accepted`` and the caller's own edge towards the
	requester is upserted as ``accepted`` in the same transaction. Returns the
	caller's edge.
	"""
	return await _resolve_incoming(auth_user, friend_user_id, FriendshipStatus.ACCEPTED)


async def decline_friendship_request(auth_user: AuthenticatedUser, friend_user_id: UUID) -> FriendshipEdge:
	"""Decline the pending request sent by ``friend_user_id`` and return that edge."""
	return await _resolve_incoming(auth_user, friend_user_id, FriendshipStatus.DECLINED)


async def list_outgoing_requests(auth_user: AuthenticatedUser) -> List[FriendshipEdge]:
	pool = await get_pool()
	async with pool.acquire() as conn:
		rows = await _repo.select_outgoing(conn, str(auth_user.id))
	return [_record_to_edge(row) for row in rows]
