"""Pydantic schemas for friend lists and friendship requests."""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FriendInfo(_CamelModel):
	"""A friend of the requester with counts computed at read time."""

	model_config = ConfigDict(frozen=True)

	id: UUID
	full_name: str = Field(..., min_length=1)
	phone_number: str = Field(..., min_length=1)
	total_friend_count: int = Field(..., ge=0)
	mutual_friend_count: int = Field(..., ge=0)


class FriendshipRequestPayload(_CamelModel):
	friend_user_id: UUID = Field(..., description="User the request is addressed to")


class FriendshipEdge(_CamelModel):
	user_id: UUID
	friend_user_id: UUID
	status: Literal["requested", "accepted", "declined"]
	created_at: datetime
	updated_at: datetime
