from fastapi import APIRouter, Depends, File as FastAPIFile, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from app.core.database import get_db
from app.core.minio import MinioClient, get_minio
from app.api.deps import get_current_user
from app.schemas.listing import (
    AvailabilityUpdate, Listing, ListingCreate, ListingUpdate, MapMarker, NearbyListing
)
from app.schemas.user import UserRole
from app.models.user import User as UserModel
from app.services.geocoding import GeocodingService, get_geocoder
from app.services.listing import ListingService
from app.services.visibility import VisibilityService

router = APIRouter()


@router.post("/", response_model=Listing, status_code=status.HTTP_201_CREATED)
async def create_listing(
    listing_data: ListingCreate,
    current_user: UserModel = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    geocoder: GeocodingService = Depends(get_geocoder)
):
    """List a parking space; coordinates are geocoded when omitted"""
    service = ListingService(db, geocoder=geocoder)
    return await service.create_listing(current_user.id, listing_data)


@router.get("/", response_model=List[Listing])
async def browse_listings(
    only_available: Optional[bool] = Query(None, description="Defaults to true for renters"),
    current_user: UserModel = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Listings of the current user, their friends and their group co-members"""
    if only_available is None:
        only_available = current_user.role == UserRole.RENTER
    service = VisibilityService(db)
    return await service.visible_listings(current_user.id, only_available=only_available)


@router.get("/mine", response_model=List[Listing])
async def my_listings(
    current_user: UserModel = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = ListingService(db)
    return await service.list_my_listings(current_user.id)


@router.get("/search", response_model=List[Listing])
async def search_listings(
    location: str = Query(..., min_length=1, description="City, state or zip code"),
    current_user: UserModel = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = VisibilityService(db)
    return await service.search_listings(current_user.id, location)


@router.get("/nearby", response_model=List[NearbyListing])
async def nearby_listings(
    latitude: float = Query(..., ge=-90, le=90),
    longitude: float = Query(..., ge=-180, le=180),
    radius_km: float = Query(5.0, gt=0, le=100),
    current_user: UserModel = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = VisibilityService(db)
    return await service.nearby_listings(current_user.id, latitude, longitude, radius_km)


@router.get("/map", response_model=List[MapMarker])
async def map_markers(
    current_user: UserModel = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Marker data for the map view"""
    service = VisibilityService(db)
    return await service.map_markers(current_user.id)


@router.get("/{listing_id}", response_model=Listing)
async def get_listing(
    listing_id: int,
    current_user: UserModel = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = ListingService(db)
    return await service.get_listing(listing_id, current_user.id)


@router.patch("/{listing_id}", response_model=Listing)
async def update_listing(
    listing_id: int,
    listing_data: ListingUpdate,
    current_user: UserModel = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    geocoder: GeocodingService = Depends(get_geocoder)
):
    service = ListingService(db, geocoder=geocoder)
    return await service.update_listing(listing_id, current_user.id, listing_data)


@router.put("/{listing_id}/availability", response_model=Listing)
async def set_availability(
    listing_id: int,
    availability: AvailabilityUpdate,
    current_user: UserModel = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = ListingService(db)
    return await service.set_availability(listing_id, current_user.id, availability.is_available)


@router.post("/{listing_id}/photo", response_model=Listing)
async def upload_photo(
    listing_id: int,
    file: UploadFile = FastAPIFile(...),
    current_user: UserModel = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: MinioClient = Depends(get_minio)
):
    """Upload a photo of the parking space"""
    service = ListingService(db, storage=storage)
    return await service.upload_photo(listing_id, current_user.id, file)
