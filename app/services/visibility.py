from sqlalchemy.ext.asyncio import AsyncSession
from geopy.distance import geodesic
from typing import List, Set

from app.repositories.friendship import FriendshipRepository
from app.repositories.group import GroupRepository
from app.repositories.listing import ListingRepository
from app.models.listing import Listing as ListingModel
from app.schemas.listing import Listing, NearbyListing, MapMarker
from app.utils.exceptions import ValidationError


def to_listing(listing: ListingModel) -> Listing:
    result = Listing.model_validate(listing)
    result.owner_name = listing.owner.full_name if listing.owner else None
    return result


def distance_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Geodesic distance in kilometers"""
    return geodesic((lat1, lng1), (lat2, lng2)).km


class VisibilityService:
    """Which users, and so which listings, a viewer may see.

    A viewer sees themselves, their accepted friends (either direction) and
    every accepted co-member of a group they accepted. One hop only, friends
    of friends are not included. Recomputed on every call.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.friendship_repo = FriendshipRepository(db)
        self.group_repo = GroupRepository(db)
        self.listing_repo = ListingRepository(db)

    async def visible_peers(self, user_id: int) -> Set[int]:
        peers = {user_id}
        peers |= await self.friendship_repo.get_friend_ids(user_id)
        peers |= await self.group_repo.get_co_member_ids(user_id)
        return peers

    async def can_see(self, viewer_id: int, user_id: int) -> bool:
        return user_id in await self.visible_peers(viewer_id)

    async def visible_listings(self, viewer_id: int, only_available: bool = False) -> List[Listing]:
        peers = await self.visible_peers(viewer_id)
        listings = await self.listing_repo.get_by_owners(peers, only_available=only_available)
        return [to_listing(listing) for listing in listings]

    async def search_listings(self, viewer_id: int, location: str) -> List[Listing]:
        """Visible available listings by city, state or zip code"""
        location = (location or "").strip()
        if not location:
            raise ValidationError("Location is required")
        peers = await self.visible_peers(viewer_id)
        return [to_listing(listing) for listing in await self.listing_repo.search(peers, location)]

    async def nearby_listings(self, viewer_id: int, latitude: float, longitude: float,
                              radius_km: float = 5.0) -> List[NearbyListing]:
        """Visible available listings within radius_km, nearest first"""
        if not -90 <= latitude <= 90 or not -180 <= longitude <= 180:
            raise ValidationError("Coordinates out of range")
        if radius_km <= 0:
            raise ValidationError("Radius must be positive")

        peers = await self.visible_peers(viewer_id)
        nearby = []
        for listing in await self.listing_repo.get_by_owners(peers, only_available=True):
            distance = distance_km(latitude, longitude, listing.latitude, listing.longitude)
            if distance <= radius_km:
                nearby.append(NearbyListing(
                    **to_listing(listing).model_dump(),
                    distance_km=round(distance, 3)
                ))
        nearby.sort(key=lambda item: item.distance_km)
        return nearby

    async def map_markers(self, viewer_id: int) -> List[MapMarker]:
        """Read-only projection consumed by the map view"""
        return [
            MapMarker(
                id=listing.id,
                latitude=listing.latitude,
                longitude=listing.longitude,
                price_per_hour=listing.price_per_hour,
                is_available=listing.is_available,
                owner_name=listing.owner_name
            )
            for listing in await self.visible_listings(viewer_id)
        ]
