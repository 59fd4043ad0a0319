from typing import Any, Dict, Iterable, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, or_, func
from sqlalchemy.orm import selectinload

from app.models.listing import Listing
from app.utils.search import LIKE_ESCAPE, contains_pattern


class ListingRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    def _query(self):
        return select(Listing).options(selectinload(Listing.owner))

    async def create(self, owner_id: int, listing_data: Dict[str, Any]) -> Listing:
        """Create a new listing"""
        db_listing = Listing(owner_id=owner_id, **listing_data)
        self.db.add(db_listing)
        await self.db.commit()
        return await self.get_by_id(db_listing.id)

    async def get_by_id(self, listing_id: int) -> Optional[Listing]:
        """Get listing by ID, always read fresh from the database"""
        query = self._query().filter(Listing.id == listing_id).execution_options(populate_existing=True)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_by_owner(self, owner_id: int) -> List[Listing]:
        query = self._query().filter(Listing.owner_id == owner_id).order_by(Listing.id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_by_owners(self, owner_ids: Iterable[int], only_available: bool = False) -> List[Listing]:
        """Listings where owner in set, in insertion order"""
        ids = list(owner_ids)
        if not ids:
            return []
        query = self._query().filter(Listing.owner_id.in_(ids))
        if only_available:
            query = query.filter(Listing.is_available.is_(True))
        result = await self.db.execute(query.order_by(Listing.id))
        return list(result.scalars().all())

    async def search(self, owner_ids: Iterable[int], location: str) -> List[Listing]:
        """Available listings of the given owners matching city, state or zip code"""
        ids = list(owner_ids)
        if not ids:
            return []
        query = self._query().filter(
            and_(
                Listing.owner_id.in_(ids),
                Listing.is_available.is_(True),
                or_(
                    Listing.city.ilike(contains_pattern(location), escape=LIKE_ESCAPE),
                    Listing.state.ilike(contains_pattern(location), escape=LIKE_ESCAPE),
                    func.lower(Listing.zip_code) == location.lower()
                )
            )
        ).order_by(Listing.id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def update(self, listing: Listing, changes: Dict[str, Any]) -> Listing:
        """Apply a partial update"""
        for field, value in changes.items():
            setattr(listing, field, value)
        await self.db.commit()
        return await self.get_by_id(listing.id)
