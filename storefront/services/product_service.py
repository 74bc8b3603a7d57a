import json
import logging
from typing import Any, Dict, List

import redis
from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from storefront.gateways.images import ImageStorage
from storefront.models.product import Product
from storefront.schemas.product import ProductCreate, ProductResponse

logger = logging.getLogger(__name__)

FEATURED_CACHE_KEY = "featuredProducts"
RECOMMENDATION_SAMPLE_SIZE = 4


def serialize_product(product: Product) -> Dict[str, Any]:
    return ProductResponse.model_validate(product).model_dump(mode="json", by_alias=True)


class ProductService:
    """Catalog reads and writes, plus the cached featured snapshot."""

    def __init__(self, db: Session, cache: redis.Redis, images: ImageStorage):
        self.db = db
        self.cache = cache
        self.images = images

    def get_product(self, product_id: int) -> Product:
        product = self.db.query(Product).filter(Product.id == product_id).first()
        if not product:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
        return product

    def get_all_products(self) -> List[Product]:
        return self.db.query(Product).order_by(Product.id).all()

    def get_products_by_category(self, category: str) -> List[Product]:
        return self.db.query(Product).filter(Product.category == category).order_by(Product.id).all()

    def get_recommended_products(self) -> List[Product]:
        return self.db.query(Product).order_by(func.random()).limit(RECOMMENDATION_SAMPLE_SIZE).all()

    # ---------------------------------------------------------
    # FEATURED SNAPSHOT
    # ---------------------------------------------------------
    def _load_featured(self) -> List[Dict[str, Any]]:
        products = self.db.query(Product).filter(Product.is_featured == True).order_by(Product.id).all()
        return [serialize_product(p) for p in products]

    def get_featured(self) -> List[Dict[str, Any]]:
        cached = self.cache.get(FEATURED_CACHE_KEY)
        if cached:
            return json.loads(cached)

        featured = self._load_featured()
        self.cache.set(FEATURED_CACHE_KEY, json.dumps(featured))
        return featured

    def rebuild_featured_cache(self) -> List[Dict[str, Any]]:
        """Always a full snapshot, never patched in place."""
        featured = self._load_featured()
        self.cache.set(FEATURED_CACHE_KEY, json.dumps(featured))
        logger.info(f"Rebuilt featured cache with {len(featured)} products")
        return featured

    def set_featured(self, product_id: int, value: bool) -> Product:
        product = self.get_product(product_id)
        product.is_featured = value
        self.db.commit()
        self.db.refresh(product)
        self.rebuild_featured_cache()
        return product

    def toggle_featured(self, product_id: int) -> Product:
        product = self.get_product(product_id)
        return self.set_featured(product_id, not product.is_featured)

    # ---------------------------------------------------------
    # CREATE / DELETE
    # ---------------------------------------------------------
    def create_product(self, data: ProductCreate) -> Product:
        image_url = ""
        if data.image:
            image_url = self.images.upload(data.image) or ""

        product = Product(
            name=data.name,
            description=data.description,
            price=data.price,
            image=image_url,
            category=data.category,
        )
        self.db.add(product)
        self.db.commit()
        self.db.refresh(product)
        return product

    def delete_product(self, product_id: int) -> None:
        product = self.get_product(product_id)
        image_url = product.image
        was_featured = product.is_featured

        self.db.delete(product)
        self.db.commit()
        if was_featured:
            self.rebuild_featured_cache()

        if image_url:
            # the record stays deleted even if the remote image survives
            try:
                self.images.delete(image_url)
            except Exception as e:
                logger.error(f"Error deleting image for product {product_id}: {e}")
                raise HTTPException(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    detail="Error deleting image from image storage",
                )
