from contextlib import asynccontextmanager
from datetime import datetime, timezone
from uuid import uuid4

import pytest

from friendgraph.domain.social import service
from friendgraph.domain.social.exceptions import (
	FriendEnrichmentFailed,
	FriendNotFound,
	FriendshipRequestNotFound,
	FriendshipSelfRequest,
	UserNotFound,
)
from friendgraph.infra.auth import AuthenticatedUser
from friendgraph.settings import settings


class _FakeTransaction:
	async def __aenter__(self):
		return self

	async def __aexit__(self, *exc):
		return False


class FakeConn:
	def __init__(self) -> None:
		self.transactions: list[dict] = []

	def transaction(self, **kwargs):
		self.transactions.append(kwargs)
		return _FakeTransaction()


class FakePool:
	def __init__(self, conn: FakeConn) -> None:
		self.conn = conn

	@asynccontextmanager
	async def acquire(self):
		yield self.conn


class InMemoryFriendshipRepository:
	"""Dict-backed stand-in mirroring FriendshipRepository's contract."""

	def __init__(self) -> None:
		self.users: dict[str, dict] = {}
		self.edges: dict[tuple[str, str], dict] = {}
		self.detail_calls = 0

	def add_user(self, name: str) -> str:
		user_id = str(uuid4())
		self.users[user_id] = {"id": user_id, "full_name": name, "phone_number": f"+1555{len(self.users):04d}"}
		return user_id

	def _accepted(self, user_id: str) -> set[str]:
		return {f for (u, f), e in self.edges.items() if u == user_id and e["status"] == "accepted"}

	def _edge(self, user_id: str, friend_user_id: str, status: str) -> dict:
		now = datetime.now(timezone.utc)
		current = self.edges.get((user_id, friend_user_id))
		record = {
			"user_id": user_id,
			"friend_user_id": friend_user_id,
			"status": status,
			"created_at": current["created_at"] if current else now,
			"updated_at": now,
		}
		self.edges[(user_id, friend_user_id)] = record
		return record

	async def select_friend_ids(self, conn, user_id):
		return sorted(f for f in self._accepted(user_id) if f in self.users)

	async def select_friend_detail(self, conn, user_id, friend_user_id):
		self.detail_calls += 1
		if friend_user_id not in self._accepted(user_id) or friend_user_id not in self.users:
			return None
		return {**self.users[friend_user_id], "total_friend_count": len(self._accepted(friend_user_id))}

	async def select_mutual_friend_count(self, conn, user_id, friend_user_id):
		shared = self._accepted(user_id) & self._accepted(friend_user_id)
		return len(shared - {user_id, friend_user_id})

	async def select_friends_with_counts(self, conn, user_id):
		rows = []
		for friend_id in await self.select_friend_ids(conn, user_id):
			rows.append(
				{
					**self.users[friend_id],
					"total_friend_count": len(self._accepted(friend_id)),
					"mutual_friend_count": await self.select_mutual_friend_count(conn, user_id, friend_id),
				}
			)
		return rows

	async def user_exists(self, conn, user_id):
		return user_id in self.users

	async def select_edge(self, conn, user_id, friend_user_id):
		return self.edges.get((user_id, friend_user_id))

	async def select_outgoing(self, conn, user_id):
		return [e for (u, _), e in self.edges.items() if u == user_id]

	async def upsert_request(self, conn, user_id, friend_user_id):
		current = self.edges.get((user_id, friend_user_id))
		if current is not None and current["status"] != "declined":
			return None
		return self._edge(user_id, friend_user_id, "requested")

	async def resolve_request(self, conn, requester_id, recipient_id, status):
		current = self.edges.get((requester_id, recipient_id))
		if current is None or current["status"] != "requested":
			return None
		return self._edge(requester_id, recipient_id, status)

	async def upsert_accepted(self, conn, user_id, friend_user_id):
		return self._edge(user_id, friend_user_id, "accepted")


@pytest.fixture
def conn():
	return FakeConn()


@pytest.fixture
def repo(monkeypatch, conn):
	fake = InMemoryFriendshipRepository()

	async def fake_get_pool():
		return FakePool(conn)

	monkeypatch.setattr(service, "_repo", fake)
	monkeypatch.setattr(service, "get_pool", fake_get_pool)
	return fake


def _auth(user_id: str) -> AuthenticatedUser:
	return AuthenticatedUser(id=user_id)


async def _befriend(requester: str, recipient: str) -> None:
	await service.send_friendship_request(_auth(requester), recipient)
	await service.accept_friendship_request(_auth(recipient), requester)


@pytest.mark.asyncio
async def test_get_friend_by_id_requires_accepted_edge(repo):
	a = repo.add_user("A")
	b = repo.add_user("B")
	await service.send_friendship_request(_auth(a), b)

	with pytest.raises(FriendNotFound):
		await service.get_friend_by_id(_auth(a), b)
	with pytest.raises(FriendNotFound):
		await service.get_friend_by_id(_auth(b), a)


@pytest.mark.asyncio
async def test_accept_makes_both_sides_friends(repo, conn):
	a = repo.add_user("A")
	b = repo.add_user("B")
	await _befriend(a, b)

	info_ab = await service.get_friend_by_id(_auth(a), b)
	info_ba = await service.get_friend_by_id(_auth(b), a)
	assert str(info_ab.id) == b
	assert info_ba.full_name == "A"
	assert info_ab.total_friend_count == 1
	assert info_ab.mutual_friend_count == 0
	assert {"readonly": True} in conn.transactions


@pytest.mark.asyncio
async def test_total_friend_count_after_four_accepts(repo):
	a = repo.add_user("A")
	others = [repo.add_user(name) for name in "BCDE"]
	for other in others:
		await service.send_friendship_request(_auth(other), a)
	for other in others:
		await service.accept_friendship_request(_auth(a), other)

	info = await service.get_friend_by_id(_auth(others[0]), a)
	assert info.total_friend_count == 4


@pytest.mark.asyncio
async def test_mutual_friend_count_single_shared_friend(repo):
	a, b, c, d, e = (repo.add_user(name) for name in "ABCDE")
	for other in (b, c, d, e):
		await service.send_friendship_request(_auth(other), a)
	await service.send_friendship_request(_auth(c), b)
	for other in (b, c, d, e):
		await service.accept_friendship_request(_auth(a), other)
	await service.accept_friendship_request(_auth(b), c)

	info = await service.get_friend_by_id(_auth(b), a)
	assert info.mutual_friend_count == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("strategy", ["batched", "per_friend"])
async def test_get_all_friends_five_user_graph(repo, conn, strategy):
	settings.friends_list_strategy = strategy
	a, b, c, d, e = (repo.add_user(name) for name in "ABCDE")
	for requester, recipient in [(b, a), (c, a), (d, a), (e, a), (c, b), (e, d), (e, b)]:
		await service.send_friendship_request(_auth(requester), recipient)
	for recipient, requester in [(a, b), (a, c), (a, d), (a, e), (b, c), (b, e), (d, e)]:
		await service.accept_friendship_request(_auth(recipient), requester)

	friends = await service.get_all_friends(_auth(a))

	by_name = {f.full_name: (f.mutual_friend_count, f.total_friend_count) for f in friends}
	assert by_name == {"E": (2, 3), "B": (2, 3), "C": (1, 2), "D": (1, 2)}
	if strategy == "per_friend":
		assert {"isolation": "repeatable_read", "readonly": True} in conn.transactions
		assert repo.detail_calls == 4
	else:
		assert repo.detail_calls == 0


@pytest.mark.asyncio
async def test_get_all_friends_skips_pending_and_declined(repo):
	a, b, c, d = (repo.add_user(name) for name in "ABCD")
	await _befriend(a, b)
	await service.send_friendship_request(_auth(a), c)
	await service.send_friendship_request(_auth(a), d)
	await service.decline_friendship_request(_auth(d), a)

	for strategy in ("batched", "per_friend"):
		settings.friends_list_strategy = strategy
		friends = await service.get_all_friends(_auth(a))
		assert [f.full_name for f in friends] == ["B"]


@pytest.mark.asyncio
async def test_per_friend_missing_detail_aborts_whole_call(repo, monkeypatch):
	settings.friends_list_strategy = "per_friend"
	a, b, c = (repo.add_user(name) for name in "ABC")
	await _befriend(a, b)
	await _befriend(a, c)

	original = repo.select_friend_detail

	async def vanishing_detail(conn, user_id, friend_user_id):
		if friend_user_id == c:
			return None
		return await original(conn, user_id, friend_user_id)

	monkeypatch.setattr(repo, "select_friend_detail", vanishing_detail)

	with pytest.raises(FriendEnrichmentFailed):
		await service.get_all_friends(_auth(a))


@pytest.mark.asyncio
async def test_missing_mutual_count_is_bad_request(repo, monkeypatch):
	a, b = (repo.add_user(name) for name in "AB")
	await _befriend(a, b)

	async def no_row(conn, user_id, friend_user_id):
		return None

	monkeypatch.setattr(repo, "select_mutual_friend_count", no_row)

	with pytest.raises(FriendEnrichmentFailed) as exc_info:
		await service.get_friend_by_id(_auth(a), b)
	assert exc_info.value.reason == "mutual_count_missing"


@pytest.mark.asyncio
async def test_rerequest_after_decline_reuses_edge(repo):
	a, b = (repo.add_user(name) for name in "AB")
	await service.send_friendship_request(_auth(a), b)
	declined = await service.decline_friendship_request(_auth(b), a)
	assert declined.status == "declined"

	edge = await service.send_friendship_request(_auth(a), b)
	assert edge.status == "requested"

	outgoing = await service.list_outgoing_requests(_auth(a))
	assert [(str(e.friend_user_id), e.status) for e in outgoing] == [(b, "requested")]


@pytest.mark.asyncio
async def test_repeat_request_leaves_accepted_edge(repo):
	a, b = (repo.add_user(name) for name in "AB")
	await _befriend(a, b)

	edge = await service.send_friendship_request(_auth(a), b)
	assert edge.status == "accepted"


@pytest.mark.asyncio
async def test_request_guards(repo):
	a = repo.add_user("A")
	with pytest.raises(FriendshipSelfRequest):
		await service.send_friendship_request(_auth(a), a)
	with pytest.raises(UserNotFound):
		await service.send_friendship_request(_auth(a), str(uuid4()))

	target = repo.add_user("B")
	with pytest.raises(UserNotFound) as exc_info:
		await service.send_friendship_request(_auth(str(uuid4())), target)
	assert exc_info.value.reason == "requester_missing"
	assert repo.edges == {}


@pytest.mark.asyncio
async def test_accept_without_pending_request(repo):
	a, b = (repo.add_user(name) for name in "AB")
	with pytest.raises(FriendshipRequestNotFound):
		await service.accept_friendship_request(_auth(a), b)

	await service.send_friendship_request(_auth(a), b)
	await service.decline_friendship_request(_auth(b), a)
	with pytest.raises(FriendshipRequestNotFound):
		await service.accept_friendship_request(_auth(b), a)


@pytest.mark.asyncio
async def test_acceptance_is_not_assumed_symmetric(repo):
	a, b = (repo.add_user(name) for name in "AB")
	# B only owns the edge towards A once B accepts; a lone accepted edge is one-sided.
	repo._edge(a, b, "accepted")

	info = await service.get_friend_by_id(_auth(a), b)
	assert info.total_friend_count == 0
	with pytest.raises(FriendNotFound):
		await service.get_friend_by_id(_auth(b), a)
