"""
Prompt library service: saved prompts, the public gallery, likes and share links.
"""
import logging
from typing import List, Optional
from urllib.parse import quote

from config import settings
from repositories.prompt_repository import PromptRepository
from models.prompt import PromptCreate, PromptResponse, PromptSort, ShareLinks, DEFAULT_PUBLIC_LIMIT, MAX_PUBLIC_LIMIT
from utils.exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

SHARE_TEXT_PROMPT_CHARS = 100

SORT_COLUMNS = {
    PromptSort.LIKES: "likes_count:desc",
    PromptSort.RECENT: "created_at:desc",
}


def encode_uri_component(value: str) -> str:
    """Percent-encode like the browser's encodeURIComponent."""
    return quote(value, safe="-_.!~*'()")


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so the term matches literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def build_share_links(prompt_id: str, prompt_text: str, base_url: Optional[str] = None) -> ShareLinks:
    share_url = f"{(base_url or settings.public_app_url).rstrip('/')}/gallery?prompt={prompt_id}"
    share_text = f'Check out this AI art prompt: "{prompt_text[:SHARE_TEXT_PROMPT_CHARS]}..."'
    encoded_text = encode_uri_component(share_text)
    encoded_url = encode_uri_component(share_url)
    return ShareLinks(
        prompt_id=prompt_id,
        share_url=share_url,
        share_text=share_text,
        intents={
            "twitter": f"https://twitter.com/intent/tweet?text={encoded_text}&url={encoded_url}",
            "facebook": f"https://www.facebook.com/sharer/sharer.php?u={encoded_url}",
            "pinterest": f"https://pinterest.com/pin/create/button/?url={encoded_url}&description={encoded_text}",
        }
    )


class PromptService:
    """Business rules for the prompt library."""

    def __init__(self, prompt_repo: PromptRepository):
        self.prompt_repo = prompt_repo

    async def save_prompt(self, user_id: str, data: PromptCreate) -> PromptResponse:
        row = await self.prompt_repo.create_prompt({
            "user_id": str(user_id),
            "prompt": data.prompt,
            "description": data.description,
            "style": data.style,
            "is_public": data.is_public,
            "example_image_url": data.example_image_url,
            "likes_count": 0,
        })
        logger.info(f"[PROMPTS] User {user_id} saved prompt {row.get('id')} (public={data.is_public})")
        return PromptResponse(**row)

    async def list_my_prompts(self, user_id: str) -> List[PromptResponse]:
        rows = await self.prompt_repo.list_user_prompts(user_id)
        return [PromptResponse(**row) for row in rows]

    async def list_public_prompts(self, sort: PromptSort = PromptSort.LIKES, limit: int = DEFAULT_PUBLIC_LIMIT,
                                  search: Optional[str] = None) -> List[PromptResponse]:
        if limit < 1 or limit > MAX_PUBLIC_LIMIT:
            raise ValidationError(f"limit must be between 1 and {MAX_PUBLIC_LIMIT}")
        term = escape_like((search or "").strip()) or None
        rows = await self.prompt_repo.list_public_prompts(SORT_COLUMNS[sort], limit, term)
        return [PromptResponse(**row) for row in rows]

    async def delete_prompt(self, user_id: str, prompt_id: str) -> None:
        deleted = await self.prompt_repo.delete_prompt(prompt_id, user_id)
        if not deleted:
            raise NotFoundError("Prompt not found", resource_id=str(prompt_id), resource_type="prompt")
        logger.info(f"[PROMPTS] User {user_id} deleted prompt {prompt_id}")

    async def like_prompt(self, prompt_id: str) -> PromptResponse:
        """
        Increment likes_count on a public prompt.
        Read then write, so concurrent likes may collapse into one.
        """
        row = await self.prompt_repo.get_prompt(prompt_id)
        if not row or not row.get("is_public"):
            raise NotFoundError("Prompt not found", resource_id=str(prompt_id), resource_type="prompt")

        updated = await self.prompt_repo.update_likes(prompt_id, int(row.get("likes_count") or 0) + 1)
        return PromptResponse(**(updated or row))

    async def get_share_links(self, user_id: Optional[str], prompt_id: str) -> ShareLinks:
        row = await self.prompt_repo.get_prompt(prompt_id)
        if not row or not (row.get("is_public") or str(row.get("user_id")) == str(user_id)):
            raise NotFoundError("Prompt not found", resource_id=str(prompt_id), resource_type="prompt")
        return build_share_links(str(row["id"]), row["prompt"])
