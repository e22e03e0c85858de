"""
Collection service: favorites, named collections and collection membership.
Service layer for business logic.
"""
import logging
from typing import List, Set
from uuid import UUID

from repositories.collection_repository import CollectionRepository
from repositories.favorite_repository import FavoriteRepository
from repositories.generation_repository import GenerationRepository
from models.collection import (
    CollectionCreate,
    CollectionUpdate,
    CollectionResponse,
    CollectionDetail,
    CollectionItem,
    FavoriteToggleResponse,
    MembershipResponse,
    MAX_THUMBNAILS,
)
from utils.exceptions import NotFoundError

logger = logging.getLogger(__name__)


class CollectionService:
    """Favorites and collections for one user at a time."""

    def __init__(
        self,
        collection_repo: CollectionRepository,
        favorite_repo: FavoriteRepository,
        generation_repo: GenerationRepository
    ):
        self.collection_repo = collection_repo
        self.favorite_repo = favorite_repo
        self.generation_repo = generation_repo

    async def _require_generation(self, user_id: str, generation_id: str) -> None:
        if not await self.generation_repo.get_generation(generation_id, user_id):
            raise NotFoundError("Generation not found", resource_id=str(generation_id), resource_type="generation")

    async def _require_collection(self, user_id: str, collection_id: str) -> dict:
        collection = await self.collection_repo.get_collection(collection_id, user_id)
        if not collection:
            raise NotFoundError("Collection not found", resource_id=str(collection_id), resource_type="collection")
        return collection

    # === Favorites ===

    async def toggle_favorite(self, user_id: str, generation_id: str) -> FavoriteToggleResponse:
        """Unfavorite (every row, collection links included) if favorited, else add one plain favorite."""
        await self._require_generation(user_id, generation_id)

        existing = await self.favorite_repo.get_for_generation(user_id, generation_id)
        if existing:
            await self.favorite_repo.delete_for_generation(user_id, generation_id)
            is_favorite = False
        else:
            await self.favorite_repo.add_favorite(user_id, generation_id)
            is_favorite = True

        logger.info(f"[FAVORITES] User {user_id} {'added' if is_favorite else 'removed'} {generation_id}")
        return FavoriteToggleResponse(generation_id=UUID(str(generation_id)), is_favorite=is_favorite)

    async def list_favorite_ids(self, user_id: str) -> List[UUID]:
        rows = await self.favorite_repo.list_user_favorites(user_id)
        seen: List[UUID] = []
        for row in rows:
            generation_id = UUID(str(row["generation_id"]))
            if generation_id not in seen:
                seen.append(generation_id)
        return seen

    # === Collections ===

    async def create_collection(self, user_id: str, data: CollectionCreate) -> CollectionResponse:
        row = await self.collection_repo.create_collection(user_id, data.name, data.description)
        logger.info(f"[COLLECTIONS] User {user_id} created collection {row.get('id')}")
        return CollectionResponse(**row)

    async def update_collection(self, user_id: str, collection_id: str,
                                data: CollectionUpdate) -> CollectionResponse:
        await self._require_collection(user_id, collection_id)
        row = await self.collection_repo.update_collection(collection_id, user_id, data.name, data.description)
        if not row:
            raise NotFoundError("Collection not found", resource_id=str(collection_id), resource_type="collection")
        return await self._with_summary(user_id, row)

    async def list_collections(self, user_id: str) -> List[CollectionResponse]:
        """Newest first, each with its item count and up to four thumbnails."""
        collections = await self.collection_repo.list_user_collections(user_id)
        if not collections:
            return []

        favorites = await self.favorite_repo.list_for_collections([c["id"] for c in collections])
        by_collection = {}
        for fav in favorites:
            by_collection.setdefault(str(fav["collection_id"]), []).append(str(fav["generation_id"]))

        thumb_ids = {gid for ids in by_collection.values() for gid in ids[:MAX_THUMBNAILS]}
        generations = await self.generation_repo.get_generations_by_ids(thumb_ids, user_id)
        images = {str(g["id"]): g["image_data"] for g in generations}

        result = []
        for collection in collections:
            generation_ids = by_collection.get(str(collection["id"]), [])
            thumbnails = [images[g] for g in generation_ids[:MAX_THUMBNAILS] if g in images]
            result.append(CollectionResponse(
                **collection,
                item_count=len(generation_ids),
                thumbnail_images=thumbnails
            ))
        return result

    async def _with_summary(self, user_id: str, collection: dict) -> CollectionResponse:
        favorites = await self.favorite_repo.list_for_collections([collection["id"]])
        generation_ids = [str(f["generation_id"]) for f in favorites]
        generations = await self.generation_repo.get_generations_by_ids(generation_ids[:MAX_THUMBNAILS], user_id)
        images = {str(g["id"]): g["image_data"] for g in generations}
        return CollectionResponse(
            **collection,
            item_count=len(generation_ids),
            thumbnail_images=[images[g] for g in generation_ids[:MAX_THUMBNAILS] if g in images]
        )

    async def get_collection(self, user_id: str, collection_id: str) -> CollectionDetail:
        collection = await self._require_collection(user_id, collection_id)
        favorites = await self.favorite_repo.list_for_collections([collection_id])
        favorite_by_generation = {str(f["generation_id"]): f["id"] for f in favorites}

        generations = await self.generation_repo.get_generations_by_ids(favorite_by_generation.keys(), user_id)
        items = [
            CollectionItem(**g, is_favorite=True, favorite_id=favorite_by_generation[str(g["id"])])
            for g in generations
        ]
        thumbnails = [item.image_data for item in items[:MAX_THUMBNAILS]]
        return CollectionDetail(
            **collection,
            item_count=len(items),
            thumbnail_images=thumbnails,
            items=items
        )

    async def delete_collection(self, user_id: str, collection_id: str) -> None:
        deleted = await self.collection_repo.delete_collection(collection_id, user_id)
        if not deleted:
            raise NotFoundError("Collection not found", resource_id=str(collection_id), resource_type="collection")
        logger.info(f"[COLLECTIONS] User {user_id} deleted collection {collection_id}")

    async def get_membership(self, user_id: str, generation_id: str) -> MembershipResponse:
        ids = await self.favorite_repo.collection_ids_for_generation(user_id, generation_id)
        return MembershipResponse(
            generation_id=UUID(str(generation_id)),
            collection_ids=sorted({UUID(i) for i in ids}, key=str)
        )

    async def set_membership(self, user_id: str, generation_id: str,
                             collection_ids: List[UUID]) -> MembershipResponse:
        """
        Make the generation belong to exactly the given collections:
        insert links that are missing, delete links for collections not listed.
        """
        await self._require_generation(user_id, generation_id)

        wanted: Set[str] = {str(c) for c in collection_ids}
        owned = set(await self.collection_repo.get_owned_ids(wanted, user_id))
        unknown = wanted - owned
        if unknown:
            raise NotFoundError("Collection not found", resource_id=sorted(unknown)[0], resource_type="collection")

        current = set(await self.favorite_repo.collection_ids_for_generation(user_id, generation_id))

        for collection_id in sorted(wanted - current):
            await self.favorite_repo.add_favorite(user_id, generation_id, collection_id)
        to_remove = current - wanted
        if to_remove:
            await self.favorite_repo.delete_from_collections(user_id, generation_id, to_remove)

        logger.info(f"[COLLECTIONS] Generation {generation_id}: +{len(wanted - current)} -{len(to_remove)}")
        return MembershipResponse(
            generation_id=UUID(str(generation_id)),
            collection_ids=sorted((UUID(c) for c in wanted), key=str)
        )

    async def remove_item(self, user_id: str, favorite_id: str) -> None:
        deleted = await self.favorite_repo.delete_by_id(favorite_id, user_id)
        if not deleted:
            raise NotFoundError("Collection item not found", resource_id=str(favorite_id), resource_type="favorite")
