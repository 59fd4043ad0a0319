from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from sqlalchemy.orm import selectinload

from app.models.booking import Booking
from app.models.listing import Listing
from app.schemas.booking import BookingStatus


class BookingRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    def _query(self):
        return select(Booking).options(
            selectinload(Booking.listing).selectinload(Listing.owner),
            selectinload(Booking.renter)
        )

    async def create(
        self,
        listing_id: int,
        renter_id: int,
        listing_address: str,
        start_time: datetime,
        duration_hours: float,
        price: Decimal
    ) -> Booking:
        """Create a pending booking"""
        booking = Booking(
            listing_id=listing_id,
            renter_id=renter_id,
            listing_address=listing_address,
            start_time=start_time,
            duration_hours=duration_hours,
            price=price,
            status=BookingStatus.PENDING.value
        )
        self.db.add(booking)
        await self.db.commit()
        return await self.get_by_id(booking.id)

    async def get_by_id(self, booking_id: int) -> Optional[Booking]:
        """Get booking by ID, always read fresh so transitions check the stored status"""
        query = self._query().where(Booking.id == booking_id).execution_options(populate_existing=True)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def set_status(self, booking: Booking, status: BookingStatus,
                         cancelled_by: Optional[int] = None) -> Booking:
        booking.status = status.value
        if cancelled_by is not None:
            booking.cancelled_by = cancelled_by
        await self.db.commit()
        return await self.get_by_id(booking.id)

    async def get_for_user(self, user_id: int) -> List[Booking]:
        """Bookings where the user is the renter or owns the listing"""
        query = self._query().join(Booking.listing).where(
            or_(Booking.renter_id == user_id, Listing.owner_id == user_id)
        ).order_by(Booking.start_time.desc(), Booking.id.desc())
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_paid_started_before(self, now: datetime) -> List[Booking]:
        query = self._query().where(
            Booking.status == BookingStatus.PAID.value,
            Booking.start_time <= now
        ).order_by(Booking.id)
        result = await self.db.execute(query)
        return list(result.scalars().all())
