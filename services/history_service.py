"""
History service: a user's past generations with favorite flags and downloads.
"""
import logging
from dataclasses import dataclass
from typing import List
from urllib.parse import quote

from repositories.generation_repository import GenerationRepository
from repositories.favorite_repository import FavoriteRepository
from services.storage_service import StorageService
from models.generation import GenerationResponse
from utils.exceptions import NotFoundError

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 20
MAX_HISTORY_LIMIT = 100
FILENAME_PROMPT_CHARS = 30


def download_filename(prompt: str) -> str:
    """First 30 characters of the prompt plus .png."""
    return f"{prompt[:FILENAME_PROMPT_CHARS]}.png"


def content_disposition(filename: str) -> str:
    """attachment header with an ASCII fallback and an RFC 5987 UTF-8 name."""
    ascii_name = "".join(
        c if 32 <= ord(c) < 127 and c not in '"\\' else "_" for c in filename
    )
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename)}"


@dataclass
class ImageDownload:
    content: bytes
    content_type: str
    filename: str


class HistoryService:
    """Read and delete operations on the caller's generation history."""

    def __init__(self, generation_repo: GenerationRepository, favorite_repo: FavoriteRepository):
        self.generation_repo = generation_repo
        self.favorite_repo = favorite_repo

    async def list_history(self, user_id: str, limit: int = DEFAULT_HISTORY_LIMIT,
                           offset: int = 0) -> List[GenerationResponse]:
        rows = await self.generation_repo.list_user_generations(user_id, limit=limit, offset=offset)
        favorites = await self.favorite_repo.list_user_favorites(user_id)
        favorite_ids = {str(f["generation_id"]) for f in favorites}
        return [
            GenerationResponse(**row, is_favorite=str(row["id"]) in favorite_ids)
            for row in rows
        ]

    async def get_generation(self, user_id: str, generation_id: str) -> GenerationResponse:
        row = await self.generation_repo.get_generation(generation_id, user_id)
        if not row:
            raise NotFoundError("Generation not found", resource_id=str(generation_id), resource_type="generation")
        favorites = await self.favorite_repo.get_for_generation(user_id, generation_id)
        return GenerationResponse(**row, is_favorite=bool(favorites))

    async def delete_generation(self, user_id: str, generation_id: str) -> None:
        deleted = await self.generation_repo.delete_generation(generation_id, user_id)
        if not deleted:
            raise NotFoundError("Generation not found", resource_id=str(generation_id), resource_type="generation")
        logger.info(f"[HISTORY] User {user_id} deleted generation {generation_id}")

    async def download(self, user_id: str, generation_id: str, storage: StorageService) -> ImageDownload:
        generation = await self.get_generation(user_id, generation_id)
        content, content_type = await storage.fetch_image(generation.image_data)
        return ImageDownload(
            content=content,
            content_type=content_type if content_type.startswith("image/") else "image/png",
            filename=download_filename(generation.prompt)
        )
