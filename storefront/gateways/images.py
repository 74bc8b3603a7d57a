import logging
from typing import Optional

import cloudinary
import cloudinary.uploader

from storefront.config import settings

logger = logging.getLogger(__name__)

PRODUCT_FOLDER = "products"


def public_id_from_url(image_url: str) -> str:
    """https://res.cloudinary.com/x/image/upload/v1/products/abc.jpg -> products/abc"""
    name = image_url.rsplit("/", 1)[-1].split(".", 1)[0]
    return f"{PRODUCT_FOLDER}/{name}"


class ImageStorage:
    """Thin adapter over Cloudinary uploads."""

    def __init__(self):
        cloudinary.config(
            cloud_name=settings.CLOUDINARY_CLOUD_NAME,
            api_key=settings.CLOUDINARY_API_KEY,
            api_secret=settings.CLOUDINARY_API_SECRET,
            secure=True,
        )

    def upload(self, image: str) -> Optional[str]:
        response = cloudinary.uploader.upload(image, folder=PRODUCT_FOLDER)
        return response.get("secure_url")

    def delete(self, image_url: str) -> None:
        public_id = public_id_from_url(image_url)
        cloudinary.uploader.destroy(public_id)
        logger.info(f"Deleted image {public_id}")


def get_image_storage() -> ImageStorage:
    return ImageStorage()
