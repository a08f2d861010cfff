"""Domain-level exceptions for friendships and friend lists."""

from __future__ import annotations


class SocialError(Exception):
	"""Base class for social feature errors."""

	reason: str = "unknown"

	def __init__(self, reason: str | None = None) -> None:
		super().__init__(reason or self.reason)
		if reason:
			self.reason = reason


class FriendNotFound(SocialError):
	"""No accepted friendship from the requester to the target."""

	reason = "not_found"


class FriendEnrichmentFailed(SocialError):
	"""A friend could not be enriched while building the friends list."""

	reason = "enrichment_failed"


class FriendshipRequestNotFound(SocialError):
	reason = "request_not_found"


class UserNotFound(SocialError):
	reason = "user_missing"


class FriendshipSelfRequest(SocialError):
	reason = "self_request"
