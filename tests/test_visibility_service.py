import pytest

from app.schemas.friendship import ResponseDecision
from app.schemas.user import UserRole
from app.services.friendship import FriendshipService
from app.services.group import GroupService
from app.services.visibility import VisibilityService, distance_km
from app.utils.exceptions import ValidationError


async def test_user_always_sees_themselves(db, make_user, make_listing):
    alice = await make_user("Alice", UserRole.OWNER)
    listing = await make_listing(alice, is_available=False)

    visibility = VisibilityService(db)

    assert await visibility.visible_peers(alice.id) == {alice.id}
    assert await visibility.can_see(alice.id, alice.id)
    assert [l.id for l in await visibility.visible_listings(alice.id)] == [listing.id]


async def test_no_relation_means_not_visible(db, make_user, make_listing):
    owner = await make_user("Owner", UserRole.OWNER)
    stranger = await make_user("Stranger")
    await make_listing(owner)

    visibility = VisibilityService(db)

    assert not await visibility.can_see(stranger.id, owner.id)
    assert await visibility.visible_listings(stranger.id) == []


async def test_friendship_visibility_is_symmetric(db, make_user, make_listing, befriend):
    owner = await make_user("Owner", UserRole.OWNER)
    renter = await make_user("Renter")
    listing = await make_listing(owner)
    await befriend(renter, owner)

    visibility = VisibilityService(db)

    assert await visibility.can_see(owner.id, renter.id)
    assert await visibility.can_see(renter.id, owner.id)
    assert [l.id for l in await visibility.visible_listings(renter.id)] == [listing.id]


async def test_pending_and_rejected_edges_grant_nothing(db, make_user, make_listing):
    owner = await make_user("Owner", UserRole.OWNER)
    renter = await make_user("Renter")
    other = await make_user("Other")
    await make_listing(owner)
    friendships = FriendshipService(db)
    await friendships.propose_friendship(renter.id, owner.id)
    edge = await friendships.propose_friendship(other.id, owner.id)
    await friendships.respond_friendship(edge.id, owner.id, ResponseDecision.REJECT)

    visibility = VisibilityService(db)

    assert await visibility.visible_listings(renter.id) == []
    assert await visibility.visible_listings(other.id) == []


async def test_friends_of_friends_are_not_visible(db, make_user, make_listing, befriend):
    owner = await make_user("Owner", UserRole.OWNER)
    middle = await make_user("Middle")
    renter = await make_user("Renter")
    await make_listing(owner)
    await befriend(owner, middle)
    await befriend(middle, renter)

    assert await VisibilityService(db).visible_listings(renter.id) == []


async def test_unfriending_hides_listings(db, make_user, make_listing, befriend):
    owner = await make_user("Owner", UserRole.OWNER)
    renter = await make_user("Renter")
    await make_listing(owner)
    await befriend(owner, renter)
    visibility = VisibilityService(db)
    assert len(await visibility.visible_listings(renter.id)) == 1

    await FriendshipService(db).remove_friendship(renter.id, owner.id)

    assert await visibility.visible_listings(renter.id) == []


async def test_group_co_members_see_each_other(db, make_user, make_listing):
    owner = await make_user("Owner", UserRole.OWNER)
    renter = await make_user("Renter")
    invited = await make_user("Invited")
    listing = await make_listing(owner)
    groups = GroupService(db)
    group = await groups.create_group(renter.id, "Lucky")
    invite = await groups.invite_to_group(group.id, renter.id, owner.id)
    await groups.invite_to_group(group.id, renter.id, invited.id)
    await groups.respond_group_invite(invite.id, owner.id, ResponseDecision.ACCEPT)

    visibility = VisibilityService(db)

    assert [l.id for l in await visibility.visible_listings(renter.id)] == [listing.id]
    # Still pending
    assert await visibility.visible_listings(invited.id) == []


async def test_only_available_filter(db, make_user, make_listing):
    owner = await make_user("Owner", UserRole.OWNER)
    available = await make_listing(owner)
    await make_listing(owner, is_available=False)

    visibility = VisibilityService(db)

    assert len(await visibility.visible_listings(owner.id)) == 2
    assert [l.id for l in await visibility.visible_listings(owner.id, only_available=True)] == [available.id]


async def test_search_by_city_state_or_zip(db, make_user, make_listing):
    owner = await make_user("Owner", UserRole.OWNER)
    springfield = await make_listing(owner, city="Springfield")
    await make_listing(owner, city="Shelbyville")
    visibility = VisibilityService(db)

    assert [l.id for l in await visibility.search_listings(owner.id, "spring")] == [springfield.id]
    assert len(await visibility.search_listings(owner.id, "il")) == 2
    assert len(await visibility.search_listings(owner.id, "62701")) == 2
    assert await visibility.search_listings(owner.id, "Ogdenville") == []

    with pytest.raises(ValidationError):
        await visibility.search_listings(owner.id, "  ")


async def test_nearby_sorted_by_distance(db, make_user, make_listing):
    owner = await make_user("Owner", UserRole.OWNER)
    near = await make_listing(owner, latitude=40.001, longitude=-75.0)
    nearer = await make_listing(owner, latitude=40.0, longitude=-75.0)
    await make_listing(owner, latitude=41.0, longitude=-75.0)

    nearby = await VisibilityService(db).nearby_listings(owner.id, 40.0, -75.0, radius_km=5)

    assert [l.id for l in nearby] == [nearer.id, near.id]
    assert nearby[0].distance_km == 0
    assert 0.1 < nearby[1].distance_km < 0.12


async def test_nearby_rejects_bad_input(db, make_user):
    owner = await make_user("Owner", UserRole.OWNER)
    visibility = VisibilityService(db)

    with pytest.raises(ValidationError):
        await visibility.nearby_listings(owner.id, 91, 0)
    with pytest.raises(ValidationError):
        await visibility.nearby_listings(owner.id, 0, 0, radius_km=0)


async def test_map_markers(db, make_user, make_listing, befriend):
    owner = await make_user("Owner", UserRole.OWNER)
    renter = await make_user("Renter")
    listing = await make_listing(owner, price_per_hour="7.50")
    await befriend(owner, renter)

    markers = await VisibilityService(db).map_markers(renter.id)

    assert len(markers) == 1
    assert markers[0].id == listing.id
    assert markers[0].owner_name == "Owner"
    assert str(markers[0].price_per_hour) == "7.50"


def test_distance_km():
    # One degree of latitude is about 111 km
    assert 110 < distance_km(40.0, -75.0, 41.0, -75.0) < 112


async def test_search_treats_wildcards_literally(db, make_user, make_listing):
    owner = await make_user("Owner", UserRole.OWNER)
    await make_listing(owner, city="Springfield")
    visibility = VisibilityService(db)

    assert await visibility.search_listings(owner.id, "%") == []
    assert await visibility.search_listings(owner.id, "Spr_ngfield") == []
