import pytest

from app.schemas.friendship import ResponseDecision
from app.schemas.group import MembershipStatus
from app.services.group import GroupService
from app.services.visibility import VisibilityService
from app.utils.exceptions import (
    AlreadyMember, DuplicateRequest, InvalidState, NotAuthorized, NotFoundError, ValidationError
)


async def test_creator_is_accepted_member(db, make_user):
    alice = await make_user("Alice")

    group = await GroupService(db).create_group(alice.id, "  Neighbours ")

    assert group.name == "Neighbours"
    assert group.created_by == alice.id
    assert [(m.user_id, m.status) for m in group.members] == [(alice.id, MembershipStatus.ACCEPTED)]


async def test_group_name_required(db, make_user):
    alice = await make_user("Alice")

    with pytest.raises(ValidationError):
        await GroupService(db).create_group(alice.id, "   ")


async def test_initial_invitees_must_be_friends(db, make_user, befriend):
    alice = await make_user("Alice")
    bob = await make_user("Bob")
    carol = await make_user("Carol")
    await befriend(alice, bob)
    service = GroupService(db)

    with pytest.raises(NotAuthorized):
        await service.create_group(alice.id, "Block", invitee_ids=[bob.id, carol.id])

    group = await service.create_group(alice.id, "Block", invitee_ids=[bob.id, bob.id, alice.id])
    statuses = {m.user_id: m.status for m in group.members}
    assert statuses == {alice.id: MembershipStatus.ACCEPTED, bob.id: MembershipStatus.PENDING}


async def test_invite_and_accept_grants_visibility(db, make_user):
    alice = await make_user("Alice")
    bob = await make_user("Bob")
    service = GroupService(db)
    visibility = VisibilityService(db)
    group = await service.create_group(alice.id, "Lucky")

    invite = await service.invite_to_group(group.id, alice.id, bob.id)
    assert invite.status == MembershipStatus.PENDING
    assert not await visibility.can_see(bob.id, alice.id)

    accepted = await service.respond_group_invite(invite.id, bob.id, ResponseDecision.ACCEPT)
    assert accepted.status == MembershipStatus.ACCEPTED
    assert await visibility.can_see(bob.id, alice.id)
    assert await visibility.can_see(alice.id, bob.id)


async def test_only_creator_invites(db, make_user):
    alice = await make_user("Alice")
    bob = await make_user("Bob")
    carol = await make_user("Carol")
    service = GroupService(db)
    group = await service.create_group(alice.id, "Lucky")

    with pytest.raises(NotAuthorized):
        await service.invite_to_group(group.id, bob.id, carol.id)


async def test_invite_unknown_group_or_user(db, make_user):
    alice = await make_user("Alice")
    service = GroupService(db)
    group = await service.create_group(alice.id, "Lucky")

    with pytest.raises(NotFoundError):
        await service.invite_to_group(999, alice.id, alice.id)
    with pytest.raises(NotFoundError):
        await service.invite_to_group(group.id, alice.id, 999)


async def test_repeated_invites(db, make_user):
    alice = await make_user("Alice")
    bob = await make_user("Bob")
    service = GroupService(db)
    group = await service.create_group(alice.id, "Lucky")
    invite = await service.invite_to_group(group.id, alice.id, bob.id)

    with pytest.raises(DuplicateRequest):
        await service.invite_to_group(group.id, alice.id, bob.id)

    await service.respond_group_invite(invite.id, bob.id, ResponseDecision.REJECT)
    again = await service.invite_to_group(group.id, alice.id, bob.id)
    assert again.id == invite.id
    assert again.status == MembershipStatus.PENDING

    await service.respond_group_invite(again.id, bob.id, ResponseDecision.ACCEPT)
    with pytest.raises(AlreadyMember):
        await service.invite_to_group(group.id, alice.id, bob.id)


async def test_only_invitee_responds_once(db, make_user):
    alice = await make_user("Alice")
    bob = await make_user("Bob")
    service = GroupService(db)
    group = await service.create_group(alice.id, "Lucky")
    invite = await service.invite_to_group(group.id, alice.id, bob.id)

    with pytest.raises(NotAuthorized):
        await service.respond_group_invite(invite.id, alice.id, ResponseDecision.ACCEPT)

    await service.respond_group_invite(invite.id, bob.id, ResponseDecision.ACCEPT)
    with pytest.raises(InvalidState):
        await service.respond_group_invite(invite.id, bob.id, ResponseDecision.REJECT)


async def test_remove_member_revokes_visibility(db, make_user):
    alice = await make_user("Alice")
    bob = await make_user("Bob")
    service = GroupService(db)
    visibility = VisibilityService(db)
    group = await service.create_group(alice.id, "Lucky")
    invite = await service.invite_to_group(group.id, alice.id, bob.id)
    await service.respond_group_invite(invite.id, bob.id, ResponseDecision.ACCEPT)

    with pytest.raises(NotAuthorized):
        await service.remove_member(group.id, bob.id, alice.id)
    with pytest.raises(NotAuthorized):
        await service.remove_member(group.id, alice.id, alice.id)

    await service.remove_member(group.id, alice.id, bob.id)

    assert not await visibility.can_see(bob.id, alice.id)
    remaining = await service.get_group(group.id, alice.id)
    assert [m.user_id for m in remaining.members] == [alice.id]


async def test_leave_group(db, make_user):
    alice = await make_user("Alice")
    bob = await make_user("Bob")
    service = GroupService(db)
    group = await service.create_group(alice.id, "Lucky")
    invite = await service.invite_to_group(group.id, alice.id, bob.id)

    with pytest.raises(NotFoundError):
        await service.leave_group(group.id, bob.id)

    await service.respond_group_invite(invite.id, bob.id, ResponseDecision.ACCEPT)
    with pytest.raises(NotAuthorized):
        await service.leave_group(group.id, alice.id)

    await service.leave_group(group.id, bob.id)
    assert await service.list_groups(bob.id) == []


async def test_group_listing_and_invitations(db, make_user):
    alice = await make_user("Alice")
    bob = await make_user("Bob")
    service = GroupService(db)
    group = await service.create_group(alice.id, "Lucky")
    await service.invite_to_group(group.id, alice.id, bob.id)

    invitations = await service.pending_invites(bob.id)
    assert [(i.group_name, i.sender_id) for i in invitations] == [("Lucky", alice.id)]

    # Pending invitees do not see the group yet
    assert await service.list_groups(bob.id) == []
    with pytest.raises(NotFoundError):
        await service.get_group(group.id, 999)

    groups = await service.list_groups(alice.id)
    assert [g.id for g in groups] == [group.id]
    assert {m.full_name for m in groups[0].members} == {"Alice", "Bob"}


async def test_pending_or_rejected_invitees_cannot_read_group(db, make_user):
    alice = await make_user("Alice")
    bob = await make_user("Bob")
    carol = await make_user("Carol")
    service = GroupService(db)
    group = await service.create_group(alice.id, "Lucky")
    await service.invite_to_group(group.id, alice.id, bob.id)
    invite = await service.invite_to_group(group.id, alice.id, carol.id)
    await service.respond_group_invite(invite.id, carol.id, ResponseDecision.REJECT)

    with pytest.raises(NotFoundError):
        await service.get_group(group.id, bob.id)
    with pytest.raises(NotFoundError):
        await service.get_group(group.id, carol.id)
