from app.models.user import User
from app.models.listing import Listing
from app.models.friendship import Friendship
from app.models.group import LuckyGroup, GroupMember
from app.models.booking import Booking

__all__ = ["User", "Listing", "Friendship", "LuckyGroup", "GroupMember", "Booking"]
