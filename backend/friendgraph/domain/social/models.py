"""Domain models for users and friendship edges."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Mapping
from uuid import UUID


class FriendshipStatus(str, Enum):
	"""Status of one directed friendship edge."""

	REQUESTED = "requested"
	ACCEPTED = "accepted"
	DECLINED = "declined"


@dataclass(slots=True)
class User:
	id: UUID
	full_name: str
	phone_number: str

	@classmethod
	def from_record(cls, record: Mapping) -> "User":
		return cls(
			id=UUID(str(record["id"])),
			full_name=record["full_name"],
			phone_number=record["phone_number"],
		)


@dataclass(slots=True)
class Friendship:
	"""Represents the directional edge owned by ``user_id``."""

	user_id: UUID
	friend_user_id: UUID
	status: FriendshipStatus
	created_at: datetime
	updated_at: datetime

	@classmethod
	def from_record(cls, record: Mapping) -> "Friendship":
		return cls(
			user_id=UUID(str(record["user_id"])),
			friend_user_id=UUID(str(record["friend_user_id"])),
			status=FriendshipStatus(record["status"]),
			created_at=record["created_at"],
			updated_at=record["updated_at"],
		)
