from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Dict, FrozenSet, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
import asyncio
import logging
import math

from app.core.config import settings
from app.models.booking import Booking as BookingModel
from app.repositories.booking import BookingRepository
from app.repositories.listing import ListingRepository
from app.schemas.booking import Booking, BookingDecision, BookingRole, BookingStatus, BookingView
from app.services.visibility import VisibilityService
from app.utils.exceptions import (
    InThePast, InvalidState, NotAuthorized, NotAvailable, NotFoundError, ValidationError
)
from app.utils.pricing import compute_price, duration_hours, ensure_utc, utcnow

logger = logging.getLogger(__name__)

# Declined is its own terminal state, reachable only from pending
TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.DECLINED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.PAID, BookingStatus.CANCELLED}),
    BookingStatus.PAID: frozenset({BookingStatus.COMPLETED}),
    BookingStatus.DECLINED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
}

TERMINAL_STATES = frozenset(status for status, targets in TRANSITIONS.items() if not targets)

# Largest value a Numeric(10, 2) price column holds
MAX_PRICE = Decimal("99999999.99")


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return target in TRANSITIONS[current]


def to_booking(booking: BookingModel) -> Booking:
    owner = booking.listing.owner
    return Booking(
        id=booking.id,
        listing_id=booking.listing_id,
        listing_address=booking.listing_address,
        renter_id=booking.renter_id,
        owner_id=booking.listing.owner_id,
        renter_name=booking.renter.full_name if booking.renter else None,
        owner_name=owner.full_name if owner else None,
        start_time=ensure_utc(booking.start_time),
        duration_hours=booking.duration_hours,
        price=booking.price,
        status=BookingStatus(booking.status),
        cancelled_by=booking.cancelled_by,
        created_at=booking.created_at,
        updated_at=booking.updated_at
    )


class BookingService:
    """Booking lifecycle.

    pending -> confirmed | declined | cancelled
    confirmed -> paid | cancelled
    paid -> completed
    """

    def __init__(self, db: AsyncSession, clock: Callable[[], datetime] = utcnow,
                 payment_delay: Optional[float] = None):
        self.repo = BookingRepository(db)
        self.listing_repo = ListingRepository(db)
        self.visibility = VisibilityService(db)
        self.clock = clock
        self.payment_delay = settings.PAYMENT_SIMULATION_DELAY_SECONDS if payment_delay is None else payment_delay

    async def _get(self, booking_id: int) -> BookingModel:
        booking = await self.repo.get_by_id(booking_id)
        if not booking:
            raise NotFoundError("Booking not found")
        return booking

    async def _transition(self, booking: BookingModel, target: BookingStatus,
                          cancelled_by: Optional[int] = None) -> BookingModel:
        current = BookingStatus(booking.status)
        if not can_transition(current, target):
            raise InvalidState(f"Cannot move booking from {current.value} to {target.value}")
        booking = await self.repo.set_status(booking, target, cancelled_by=cancelled_by)
        logger.info("Booking %s: %s -> %s", booking.id, current.value, target.value)
        return booking

    async def request_booking(self, renter_id: int, listing_id: int, start_time: datetime,
                              end_time: datetime) -> Booking:
        """Create a pending booking priced at rate x hours.

        Availability is read from the store at call time. Overlapping
        bookings on the same listing are not prevented: a listing is a
        single slot that its owner toggles by hand.
        """
        start_time = ensure_utc(start_time)
        end_time = ensure_utc(end_time)
        if end_time <= start_time:
            raise ValidationError("End time must be after start time")

        listing = await self.listing_repo.get_by_id(listing_id)
        if not listing or not await self.visibility.can_see(renter_id, listing.owner_id):
            raise NotFoundError("Listing not found")
        if listing.owner_id == renter_id:
            raise ValidationError("You cannot book your own listing")
        if not listing.is_available:
            raise NotAvailable("Listing is not available")
        if start_time < self.clock():
            raise InThePast("Start time is in the past")

        hours = duration_hours(start_time, end_time)
        price = compute_price(listing.price_per_hour, hours)
        if price > MAX_PRICE:
            raise ValidationError("Booking is too long for this listing's rate")

        booking = await self.repo.create(
            listing_id=listing.id,
            renter_id=renter_id,
            listing_address=listing.display_address,
            start_time=start_time,
            duration_hours=hours,
            price=price
        )
        logger.info("Booking %s requested by user %s for listing %s (%.2f h, %s)",
                    booking.id, renter_id, listing_id, hours, booking.price)
        return to_booking(booking)

    async def request_booking_for_hours(self, renter_id: int, listing_id: int, start_time: datetime,
                                        hours: float) -> Booking:
        """Booking form variant: start plus a number of hours"""
        if not math.isfinite(hours) or hours <= 0:
            raise ValidationError("Duration must be a positive number of hours")
        try:
            end_time = ensure_utc(start_time) + timedelta(hours=hours)
        except OverflowError:
            raise ValidationError("Duration is too long")
        return await self.request_booking(renter_id, listing_id, start_time, end_time)

    async def respond_to_booking(self, booking_id: int, owner_id: int, decision: BookingDecision) -> Booking:
        """Listing owner confirms or declines a pending booking"""
        booking = await self._get(booking_id)
        if booking.listing.owner_id != owner_id:
            raise NotAuthorized("Only the listing owner can respond to this booking")
        if booking.status != BookingStatus.PENDING:
            raise InvalidState(f"Booking is already {booking.status}")

        target = BookingStatus.CONFIRMED if decision == BookingDecision.CONFIRM else BookingStatus.DECLINED
        return to_booking(await self._transition(booking, target))

    async def mark_paid(self, booking_id: int, renter_id: int) -> Booking:
        """Renter pays a confirmed booking (payment is simulated)"""
        booking = await self._get(booking_id)
        if booking.renter_id != renter_id:
            raise NotAuthorized("Only the renter can pay for this booking")
        if booking.status != BookingStatus.CONFIRMED:
            raise InvalidState("Only confirmed bookings can be paid")

        if self.payment_delay > 0:
            await asyncio.sleep(self.payment_delay)
        return to_booking(await self._transition(booking, BookingStatus.PAID))

    async def complete_booking(self, booking_id: int, actor_id: Optional[int] = None) -> Booking:
        """Move a paid booking to completed.

        actor_id None is a system caller (scheduler): a booking that is no
        longer paid is left as it is. A user caller must be a party to the
        booking and gets InvalidState instead.
        """
        booking = await self._get(booking_id)
        if actor_id is not None and actor_id not in (booking.renter_id, booking.listing.owner_id):
            raise NotAuthorized("Only the renter or the owner can complete this booking")

        if booking.status != BookingStatus.PAID:
            if actor_id is None:
                logger.info("Booking %s is %s, skipping completion", booking_id, booking.status)
                return to_booking(booking)
            raise InvalidState("Only paid bookings can be completed")

        return to_booking(await self._transition(booking, BookingStatus.COMPLETED))

    async def cancel_booking(self, booking_id: int, actor_id: int) -> Booking:
        """Renter or owner cancels a pending or confirmed booking"""
        booking = await self._get(booking_id)
        if actor_id not in (booking.renter_id, booking.listing.owner_id):
            raise NotAuthorized("Only the renter or the owner can cancel this booking")
        return to_booking(await self._transition(booking, BookingStatus.CANCELLED, cancelled_by=actor_id))

    async def complete_elapsed_bookings(self, now: Optional[datetime] = None) -> int:
        """Scheduler entry point: complete paid bookings whose period has ended"""
        now = ensure_utc(now or self.clock())
        completed = 0
        for booking in await self.repo.get_paid_started_before(now):
            end_time = ensure_utc(booking.start_time) + timedelta(hours=booking.duration_hours)
            if end_time <= now:
                result = await self.complete_booking(booking.id)
                if result.status == BookingStatus.COMPLETED:
                    completed += 1
        logger.info("Auto-completed %d bookings", completed)
        return completed

    async def get_booking(self, booking_id: int, viewer_id: int) -> Booking:
        booking = await self.repo.get_by_id(booking_id)
        if not booking or viewer_id not in (booking.renter_id, booking.listing.owner_id):
            raise NotFoundError("Booking not found")
        return to_booking(booking)

    async def list_bookings_for(self, user_id: int) -> List[BookingView]:
        """Bookings where the user rents or owns the listing, newest start first"""
        views = []
        for booking in await self.repo.get_for_user(user_id):
            data = to_booking(booking)
            if booking.renter_id == user_id:
                role, counterpart = BookingRole.RENTER, data.owner_name
            else:
                role, counterpart = BookingRole.OWNER, data.renter_name
            views.append(BookingView(**data.model_dump(), role=role, counterpart_name=counterpart))
        return views
