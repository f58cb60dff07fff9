"""
Catalog API client.

Food items, categories and reviews.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from spicebite.api.http_client import AuthenticatedClient
from spicebite.core.errors import ValidationError
from spicebite.utils.logger import get_logger

logger = get_logger(__name__)

ItemId = Union[int, str]


async def list_foods(
    client: AuthenticatedClient,
    *,
    category: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """List food items, optionally filtered by category."""
    params = {"category": category} if category else None

    return await client.fetch_json(
        "GET",
        client.config.FOODS_PATH,
        action="fetch food items",
        params=params,
    )


async def get_food(client: AuthenticatedClient, item_id: ItemId) -> Dict[str, Any]:
    return await client.fetch_json(
        "GET",
        f"{client.config.FOODS_PATH}{item_id}/",
        action="fetch food item",
    )


async def list_categories(client: AuthenticatedClient) -> List[Dict[str, Any]]:
    return await client.fetch_json(
        "GET",
        client.config.CATEGORIES_PATH,
        action="fetch categories",
    )


async def list_reviews(client: AuthenticatedClient, item_id: ItemId) -> List[Dict[str, Any]]:
    return await client.fetch_json(
        "GET",
        client.config.REVIEWS_PATH,
        action="fetch reviews",
        params={"food_item": item_id},
    )


async def post_review(
    client: AuthenticatedClient,
    item_id: ItemId,
    *,
    rating: int,
    comment: str,
    image_path: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Post a review for a food item.

    Args:
        client: Authenticated client.
        item_id: Reviewed food item.
        rating: Star rating, 1 to 5.
        comment: Review text.
        image_path: Optional local photo to attach.

    Raises:
        ValidationError: If the rating is out of range.
    """
    if not 1 <= rating <= 5:
        raise ValidationError("Rating must be between 1 and 5")

    files = None
    if image_path:
        path = Path(image_path)
        files = {"image": (path.name, path.read_bytes(), "image/jpeg")}

    logger.info("Posting review", extra={"item_id": item_id, "rating": rating})

    return await client.fetch_json(
        "POST",
        client.config.REVIEWS_PATH,
        action="post review",
        data={"food_item": str(item_id), "rating": str(rating), "comment": comment},
        files=files,
    )
