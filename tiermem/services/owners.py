"""
Owner registry: the users whose memories are managed.
"""

from datetime import datetime, timedelta

from tiermem.core.memory_store.base import MemoryRepository
from tiermem.models import Owner
from tiermem.utils.exceptions import NotFoundError, ValidationError
from tiermem.utils.id_generator import generate_owner_id
from tiermem.utils.logger import get_logger

logger = get_logger(__name__)


class OwnerService:
    def __init__(self, repository: MemoryRepository):
        self.repository = repository

    async def get_or_create_owner(
        self, external_id: str, name: str | None = None, email: str | None = None
    ) -> Owner:
        """
        Look up an owner by external id, creating it on first sight.

        Either way the owner's activity time is refreshed.
        """
        if not external_id or not external_id.strip():
            raise ValidationError("External ID cannot be empty")

        now = datetime.now()
        existing = await self.repository.get_owner_by_external_id(external_id)
        if existing:
            await self.repository.touch_owner(existing.id, now)
            return existing.model_copy(update={"last_active_at": now})

        owner = Owner(
            id=generate_owner_id(),
            external_id=external_id,
            name=name,
            email=email,
            last_active_at=now,
            created_at=now,
        )
        await self.repository.insert_owner(owner)
        logger.info(f"Created owner {owner.id}", extra={"owner_id": owner.id})
        return owner

    async def get_owner(self, owner_id: str) -> Owner:
        """
        Raises:
            NotFoundError: If the owner does not exist
        """
        owner = await self.repository.get_owner(owner_id)
        if owner is None:
            raise NotFoundError(f"Owner not found: {owner_id}", context={"owner_id": owner_id})
        return owner

    async def touch_owner(self, owner_id: str) -> None:
        await self.repository.touch_owner(owner_id, datetime.now())

    async def list_active_owners(self, days: int = 7, limit: int = 100) -> list[Owner]:
        since = datetime.now() - timedelta(days=days)
        return await self.repository.list_active_owners(since, limit)
