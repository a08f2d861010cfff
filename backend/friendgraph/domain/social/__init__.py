"""Social domain exports."""

from . import service  # noqa: F401
from .models import Friendship, FriendshipStatus, User  # noqa: F401
from .schemas import FriendInfo, FriendshipEdge, FriendshipRequestPayload  # noqa: F401
