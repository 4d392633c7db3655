from sqlalchemy.ext.asyncio import AsyncSession


class BaseRepository:
    """Repositories built on the same session share one transaction"""

    def __init__(self, session: AsyncSession):
        self.session = session

    def add(self, instance):
        self.session.add(instance)
        return instance

    async def flush(self):
        await self.session.flush()

    async def commit(self):
        await self.session.commit()

    async def rollback(self):
        await self.session.rollback()
