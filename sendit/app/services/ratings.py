"""
Courier ratings.

There is no rating system yet. Earnings and stats read the average through
this provider so a real implementation can replace the constant.
"""

from sqlalchemy.ext.asyncio import AsyncSession

DEFAULT_AVERAGE_RATING = 4.5


class RatingsProvider:

    async def average_rating(self, db: AsyncSession, courier_id: int) -> float:
        return DEFAULT_AVERAGE_RATING


ratings_provider = RatingsProvider()
