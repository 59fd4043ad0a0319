from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Float, Numeric, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from app.core.database import Base


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    listing_id = Column(Integer, ForeignKey("listings.id"), nullable=False)
    renter_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    # Snapshot taken at request time, later listing edits do not touch it
    listing_address = Column(String, nullable=False)

    start_time = Column(DateTime(timezone=True), nullable=False)
    duration_hours = Column(Float, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    status = Column(String, nullable=False, default="pending")
    cancelled_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    listing = relationship("Listing", back_populates="bookings")
    renter = relationship("User", foreign_keys=[renter_id])

    __table_args__ = (
        Index('idx_booking_renter_status', 'renter_id', 'status'),
        Index('idx_booking_listing_status', 'listing_id', 'status'),
    )
