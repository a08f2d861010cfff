"""REST API surface for friend lists & friendship requests."""

from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from friendgraph.domain.social import service
from friendgraph.domain.social.exceptions import (
	FriendNotFound,
	FriendshipRequestNotFound,
	FriendshipSelfRequest,
	SocialError,
	UserNotFound,
)
from friendgraph.domain.social.schemas import FriendInfo, FriendshipEdge, FriendshipRequestPayload
from friendgraph.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["social"])


def _map_error(exc: SocialError) -> HTTPException:
	if isinstance(exc, (FriendNotFound, FriendshipRequestNotFound, UserNotFound)):
		return HTTPException(status.HTTP_404_NOT_FOUND, detail=exc.reason)
	if isinstance(exc, FriendshipSelfRequest):
		return HTTPException(status.HTTP_409_CONFLICT, detail=exc.reason)
	return HTTPException(status.HTTP_400_BAD_REQUEST, detail=exc.reason)


@router.get("/friends", response_model=List[FriendInfo])
async def get_all_friends(auth_user: AuthenticatedUser = Depends(get_current_user)) -> List[FriendInfo]:
	try:
		return await service.get_all_friends(auth_user)
	except SocialError as exc:
		raise _map_error(exc) from None


@router.get("/friends/{friend_user_id}", response_model=FriendInfo)
async def get_friend_by_id(
	friend_user_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> FriendInfo:
	try:
		return await service.get_friend_by_id(auth_user, friend_user_id)
	except SocialError as exc:
		raise _map_error(exc) from None


@router.post("/friendships/requests", response_model=FriendshipEdge, status_code=status.HTTP_201_CREATED)
async def send_friendship_request(
	payload: FriendshipRequestPayload,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> FriendshipEdge:
	try:
		return await service.send_friendship_request(auth_user, payload.friend_user_id)
	except SocialError as exc:
		raise _map_error(exc) from None


@router.post("/friendships/requests/{friend_user_id}/accept", response_model=FriendshipEdge)
async def accept_friendship_request(
	friend_user_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> FriendshipEdge:
	try:
		return await service.accept_friendship_request(auth_user, friend_user_id)
	except SocialError as exc:
		raise _map_error(exc) from None


@router.post("/friendships/requests/{friend_user_id}/decline", response_model=FriendshipEdge)
async def decline_friendship_request(
	friend_user_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> FriendshipEdge:
	try:
		return await service.decline_friendship_request(auth_user, friend_user_id)
	except SocialError as exc:
		raise _map_error(exc) from None


@router.get("/friendships/requests/outgoing", response_model=List[FriendshipEdge])
async def outgoing_requests(auth_user: AuthenticatedUser = Depends(get_current_user)) -> List[FriendshipEdge]:
	return await service.list_outgoing_requests(auth_user)
