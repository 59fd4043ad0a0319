import io
from decimal import Decimal

import pytest
from fastapi import UploadFile
from geopy.exc import GeocoderUnavailable
from geopy.location import Location
from starlette.datastructures import Headers

from app.core.redis import RedisClient
from app.schemas.listing import Address, Coordinates, ListingCreate, ListingUpdate
from app.schemas.user import UserRole
from app.services.geocoding import GeocodingService
from app.services.listing import ListingService
from app.utils.exceptions import GeocodingError, NotAuthorized, NotFoundError, ValidationError


class StubGeopy:
    """Stands in for a geopy geocoder"""

    def __init__(self, location=None, error=None):
        self.location = location
        self.error = error
        self.queries = []

    def geocode(self, query):
        self.queries.append(query)
        if self.error:
            raise self.error
        return self.location


class FakeStorage:
    def __init__(self):
        self.uploads = []

    async def upload_file(self, file_data, object_name, content_type="application/octet-stream", metadata=None):
        self.uploads.append((object_name, content_type, file_data.read()))
        return f"http://photos.test/parkshare/{object_name}"


def _address(**overrides):
    data = dict(street="742 Evergreen Terrace", city="Springfield", state="IL", zip_code="62704")
    data.update(overrides)
    return Address(**data)


def _upload(filename, content, content_type="image/jpeg"):
    return UploadFile(file=io.BytesIO(content), filename=filename, headers=Headers({"content-type": content_type}))


async def test_create_listing_with_coordinates(db, make_user):
    owner = await make_user("Owner", UserRole.OWNER)
    data = ListingCreate(
        address=_address(coordinates=Coordinates(latitude=39.78, longitude=-89.65)),
        instructions="Left bay",
        price_per_hour=Decimal("12.50"),
        amenities=[" covered ", "EV charger", "covered", ""],
    )

    listing = await ListingService(db).create_listing(owner.id, data)

    assert listing.owner_id == owner.id
    assert listing.owner_name == "Owner"
    assert (listing.latitude, listing.longitude) == (39.78, -89.65)
    assert listing.amenities == ["covered", "EV charger"]
    assert listing.price_per_hour == Decimal("12.50")
    assert listing.is_available


async def test_renters_cannot_list(db, make_user):
    renter = await make_user("Renter")
    data = ListingCreate(
        address=_address(coordinates=Coordinates(latitude=1, longitude=1)),
        instructions="x",
        price_per_hour=Decimal("1"),
    )

    with pytest.raises(NotAuthorized):
        await ListingService(db).create_listing(renter.id, data)


async def test_missing_coordinates_are_geocoded(db, make_user):
    owner = await make_user("Owner", UserRole.OWNER)
    geopy = StubGeopy(Location("Springfield", (39.8, -89.6, 0), {}))
    service = ListingService(db, geocoder=GeocodingService(geocoder=geopy, cache=RedisClient()))

    listing = await service.create_listing(
        owner.id,
        ListingCreate(address=_address(), instructions="Gate", price_per_hour=Decimal("3")),
    )

    assert (listing.latitude, listing.longitude) == (39.8, -89.6)
    assert geopy.queries == ["742 Evergreen Terrace, Springfield, IL 62704, United States"]


async def test_missing_coordinates_without_geocoder(db, make_user):
    owner = await make_user("Owner", UserRole.OWNER)

    with pytest.raises(ValidationError):
        await ListingService(db).create_listing(
            owner.id,
            ListingCreate(address=_address(), instructions="Gate", price_per_hour=Decimal("3")),
        )


async def test_geocoding_failures():
    unknown = GeocodingService(geocoder=StubGeopy(None), cache=RedisClient())
    with pytest.raises(ValidationError):
        await unknown.geocode(_address())

    down = GeocodingService(geocoder=StubGeopy(error=GeocoderUnavailable("down")), cache=RedisClient())
    with pytest.raises(GeocodingError):
        await down.geocode(_address())


async def test_update_listing_by_owner_only(db, make_user, make_listing):
    owner = await make_user("Owner", UserRole.OWNER)
    other = await make_user("Other", UserRole.OWNER)
    listing = await make_listing(owner)
    service = ListingService(db)

    updated = await service.update_listing(
        listing.id, owner.id, ListingUpdate(price_per_hour=Decimal("20.00"), notes="Tight spot")
    )
    assert updated.price_per_hour == Decimal("20.00")
    assert updated.notes == "Tight spot"
    assert updated.instructions == listing.instructions

    with pytest.raises(NotAuthorized):
        await service.update_listing(listing.id, other.id, ListingUpdate(notes="mine now"))
    with pytest.raises(NotFoundError):
        await service.update_listing(999, owner.id, ListingUpdate(notes="?"))


async def test_required_fields_cannot_be_cleared(db, make_user, make_listing):
    owner = await make_user("Owner", UserRole.OWNER)
    listing = await make_listing(owner)

    with pytest.raises(ValidationError):
        await ListingService(db).update_listing(listing.id, owner.id, ListingUpdate(price_per_hour=None))


async def test_set_availability(db, make_user, make_listing):
    owner = await make_user("Owner", UserRole.OWNER)
    listing = await make_listing(owner)
    service = ListingService(db)

    hidden = await service.set_availability(listing.id, owner.id, False)

    assert not hidden.is_available
    assert [l.is_available for l in await service.list_my_listings(owner.id)] == [False]


async def test_get_listing_respects_visibility(db, make_user, make_listing, befriend):
    owner = await make_user("Owner", UserRole.OWNER)
    friend = await make_user("Friend")
    stranger = await make_user("Stranger")
    listing = await make_listing(owner)
    await befriend(owner, friend)
    service = ListingService(db)

    assert (await service.get_listing(listing.id, friend.id)).id == listing.id
    with pytest.raises(NotFoundError):
        await service.get_listing(listing.id, stranger.id)


async def test_upload_photo(db, make_user, make_listing):
    owner = await make_user("Owner", UserRole.OWNER)
    listing = await make_listing(owner)
    storage = FakeStorage()
    service = ListingService(db, storage=storage)

    updated = await service.upload_photo(listing.id, owner.id, _upload("spot.JPG", b"jpeg-bytes"))

    object_name, content_type, content = storage.uploads[0]
    assert object_name.startswith(f"listings/{listing.id}/")
    assert object_name.endswith(".jpg")
    assert content_type == "image/jpeg"
    assert content == b"jpeg-bytes"
    assert updated.photo_url == f"http://photos.test/parkshare/{object_name}"


async def test_upload_photo_rejects_bad_files(db, make_user, make_listing):
    owner = await make_user("Owner", UserRole.OWNER)
    listing = await make_listing(owner)
    storage = FakeStorage()
    service = ListingService(db, storage=storage)

    with pytest.raises(ValidationError):
        await service.upload_photo(listing.id, owner.id, _upload("notes.txt", b"hello", "text/plain"))
    with pytest.raises(ValidationError):
        await service.upload_photo(listing.id, owner.id, _upload("empty.png", b""))
    assert storage.uploads == []
