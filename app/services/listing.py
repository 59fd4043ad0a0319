from typing import Any, Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import UploadFile
import io
import logging
import os
import uuid

from app.core.config import settings
from app.core.minio import MinioClient
from app.models.listing import Listing as ListingModel
from app.repositories.listing import ListingRepository
from app.repositories.user import UserRepository
from app.schemas.listing import Address, Listing, ListingCreate, ListingUpdate
from app.schemas.user import UserRole
from app.services.geocoding import GeocodingService
from app.services.visibility import VisibilityService, to_listing
from app.utils.exceptions import NotAuthorized, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class ListingService:
    def __init__(self, db: AsyncSession, geocoder: Optional[GeocodingService] = None,
                 storage: Optional[MinioClient] = None):
        self.repo = ListingRepository(db)
        self.user_repo = UserRepository(db)
        self.visibility = VisibilityService(db)
        self.geocoder = geocoder
        self.storage = storage

    async def _address_fields(self, address: Address) -> Dict[str, Any]:
        coordinates = address.coordinates
        if coordinates is None:
            if self.geocoder is None:
                raise ValidationError("Coordinates are required")
            coordinates = await self.geocoder.geocode(address)
        return {
            "street": address.street,
            "city": address.city,
            "state": address.state,
            "zip_code": address.zip_code,
            "country": address.country,
            "latitude": coordinates.latitude,
            "longitude": coordinates.longitude,
        }

    async def _get_owned(self, listing_id: int, actor_id: int) -> ListingModel:
        listing = await self.repo.get_by_id(listing_id)
        if not listing:
            raise NotFoundError("Listing not found")
        if listing.owner_id != actor_id:
            raise NotAuthorized("You can only change your own listings")
        return listing

    async def create_listing(self, owner_id: int, listing_data: ListingCreate) -> Listing:
        """Create a listing owned by owner_id (owners only)"""
        owner = await self.user_repo.get_by_id(owner_id)
        if not owner:
            raise NotFoundError("User not found")
        if owner.role != UserRole.OWNER:
            raise NotAuthorized("Only owners can list parking spaces")

        fields = listing_data.model_dump(exclude={"address"})
        fields.update(await self._address_fields(listing_data.address))

        listing = await self.repo.create(owner_id, fields)
        logger.info("Listing %s created by user %s", listing.id, owner_id)
        return to_listing(listing)

    async def update_listing(self, listing_id: int, actor_id: int, listing_data: ListingUpdate) -> Listing:
        """Partial update by the listing's owner"""
        listing = await self._get_owned(listing_id, actor_id)

        changes = listing_data.model_dump(exclude_unset=True, exclude={"address"})
        for field in ("instructions", "price_per_hour", "is_available", "amenities"):
            if field in changes and changes[field] is None:
                raise ValidationError(f"{field} cannot be empty")
        if listing_data.address is not None:
            changes.update(await self._address_fields(listing_data.address))

        listing = await self.repo.update(listing, changes)
        logger.info("Listing %s updated: %s", listing_id, ", ".join(sorted(changes)))
        return to_listing(listing)

    async def set_availability(self, listing_id: int, actor_id: int, is_available: bool) -> Listing:
        listing = await self._get_owned(listing_id, actor_id)
        listing = await self.repo.update(listing, {"is_available": is_available})
        logger.info("Listing %s availability set to %s", listing_id, is_available)
        return to_listing(listing)

    async def get_listing(self, listing_id: int, viewer_id: int) -> Listing:
        """A listing the viewer is allowed to see"""
        listing = await self.repo.get_by_id(listing_id)
        if not listing or not await self.visibility.can_see(viewer_id, listing.owner_id):
            raise NotFoundError("Listing not found")
        return to_listing(listing)

    async def list_my_listings(self, owner_id: int) -> List[Listing]:
        return [to_listing(listing) for listing in await self.repo.get_by_owner(owner_id)]

    async def upload_photo(self, listing_id: int, actor_id: int, file: UploadFile) -> Listing:
        """Store a photo and keep its URL on the listing"""
        if self.storage is None:
            raise ValidationError("Photo storage is not configured")

        listing = await self._get_owned(listing_id, actor_id)

        file_content = await file.read()
        if not file_content:
            raise ValidationError("Photo is empty")
        if len(file_content) > settings.MAX_PHOTO_SIZE_BYTES:
            raise ValidationError(f"Photo exceeds {settings.MAX_PHOTO_SIZE_MB} MB")

        file_extension = os.path.splitext(file.filename or "")[1].lower()
        if file_extension not in settings.ALLOWED_PHOTO_EXTENSIONS:
            raise ValidationError(f"Unsupported photo type {file_extension or '(none)'}")

        object_name = f"listings/{listing_id}/{uuid.uuid4()}{file_extension}"
        photo_url = await self.storage.upload_file(
            io.BytesIO(file_content),
            object_name,
            file.content_type or "application/octet-stream",
            metadata={"listing_id": str(listing_id), "owner_id": str(actor_id)}
        )

        listing = await self.repo.update(listing, {"photo_url": photo_url})
        logger.info("Photo %s stored for listing %s", object_name, listing_id)
        return to_listing(listing)
