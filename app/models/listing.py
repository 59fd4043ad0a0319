from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Boolean, Float, Numeric, JSON, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from app.core.database import Base


class Listing(Base):
    __tablename__ = "listings"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    # Address
    street = Column(String, nullable=False)
    city = Column(String, nullable=False)
    state = Column(String, nullable=False)
    zip_code = Column(String, nullable=False)
    country = Column(String, nullable=False, default="United States")
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)

    # Spot details
    floor = Column(String, nullable=True)
    number = Column(String, nullable=True)
    restriction = Column(String, nullable=True)
    instructions = Column(Text, nullable=False)  # access instructions
    notes = Column(Text, nullable=True)
    photo_url = Column(String, nullable=True)
    amenities = Column(JSON, nullable=False, default=list)

    # Offer
    price_per_hour = Column(Numeric(10, 2), nullable=False)
    is_available = Column(Boolean, nullable=False, default=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    owner = relationship("User", back_populates="listings")
    bookings = relationship("Booking", back_populates="listing")

    __table_args__ = (
        Index('idx_listing_owner', 'owner_id'),
    )

    @property
    def display_address(self) -> str:
        return f"{self.street}, {self.city}, {self.state}"
