from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from app.core.database import get_db
from app.api.deps import get_current_user
from app.schemas.booking import Booking, BookingAction, BookingCreate, BookingView
from app.models.user import User as UserModel
from app.services.booking import BookingService

router = APIRouter()


@router.post("/", response_model=Booking, status_code=status.HTTP_201_CREATED)
async def request_booking(
    booking_data: BookingCreate,
    current_user: UserModel = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Request a booking, by end time or by number of hours"""
    service = BookingService(db)
    if booking_data.end_time is not None:
        return await service.request_booking(
            current_user.id, booking_data.listing_id, booking_data.start_time, booking_data.end_time
        )
    return await service.request_booking_for_hours(
        current_user.id, booking_data.listing_id, booking_data.start_time, booking_data.hours
    )


@router.get("/", response_model=List[BookingView])
async def my_bookings(
    current_user: UserModel = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Bookings I made and bookings on my listings"""
    service = BookingService(db)
    return await service.list_bookings_for(current_user.id)


@router.get("/{booking_id}", response_model=Booking)
async def get_booking(
    booking_id: int,
    current_user: UserModel = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = BookingService(db)
    return await service.get_booking(booking_id, current_user.id)


@router.put("/{booking_id}/respond", response_model=Booking)
async def respond_to_booking(
    booking_id: int,
    action: BookingAction,
    current_user: UserModel = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Owner confirms or declines a pending booking"""
    service = BookingService(db)
    return await service.respond_to_booking(booking_id, current_user.id, action.decision)


@router.post("/{booking_id}/pay", response_model=Booking)
async def pay_booking(
    booking_id: int,
    current_user: UserModel = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Renter pays a confirmed booking (simulated payment)"""
    service = BookingService(db)
    return await service.mark_paid(booking_id, current_user.id)


@router.post("/{booking_id}/complete", response_model=Booking)
async def complete_booking(
    booking_id: int,
    current_user: UserModel = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = BookingService(db)
    return await service.complete_booking(booking_id, current_user.id)


@router.post("/{booking_id}/cancel", response_model=Booking)
async def cancel_booking(
    booking_id: int,
    current_user: UserModel = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = BookingService(db)
    return await service.cancel_booking(booking_id, current_user.id)
