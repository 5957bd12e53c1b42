"""
Catalog: products and categories.

Plain CRUD over the "product" and "category" collections. Products are
addressable by either their Mongo _id or their product_id business key,
see `find_product`.
"""

import re
from typing import List, Optional

import structlog
from pymongo import DESCENDING
from pymongo.errors import DuplicateKeyError

from database import (
    create_document,
    delete_document,
    get_document,
    get_documents,
    is_object_id,
    serialize_document,
    serialize_documents,
    to_object_id,
    update_document,
)
from errors import Conflict, NotFound, ValidationError
from schemas import Category, CategoryPayload, Product, ProductPayload

logger = structlog.get_logger(__name__)

PRODUCT_REQUIRED = ("product_id", "name", "description", "price", "category", "images")
NEW_ARRIVALS_LIMIT = 10


def slugify(name: str) -> str:
    slug = re.sub(r"[^\w\s-]", "", name.lower())
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-{2,}", "-", slug)
    return slug.strip("-")


# -----------------------------
# Products
# -----------------------------

def find_product(key: Optional[str], projection: Optional[dict] = None) -> Optional[dict]:
    """
    Look a product up by any of its identifiers.

    Precedence: an exact _id match when `key` is a valid ObjectId, then a
    match on the product_id business key.
    """
    if not key:
        return None
    if is_object_id(key):
        product = get_document("product", {"_id": to_object_id(key)}, projection)
        if product is not None:
            return product
    return get_document("product", {"product_id": str(key)}, projection)


def _with_category(product: dict) -> dict:
    category_id = product.get("category")
    if category_id and is_object_id(category_id):
        category = get_document("category", {"_id": to_object_id(category_id)}, {"name": 1})
        if category is not None:
            product["category"] = category
    return serialize_document(product)


def list_products() -> List[dict]:
    products = get_documents("product", sort=[("created_at", DESCENDING)])
    return [_with_category(p) for p in products]


def list_new_arrivals(limit: int = NEW_ARRIVALS_LIMIT) -> List[dict]:
    return serialize_documents(get_documents("product", sort=[("created_at", DESCENDING)], limit=limit))


def get_product(key: str) -> dict:
    product = find_product(key)
    if product is None:
        raise NotFound("Product not found")
    return _with_category(product)


def create_product(payload: ProductPayload) -> dict:
    fields = payload.model_dump(exclude_none=True)
    if any(not fields.get(name) for name in PRODUCT_REQUIRED):
        raise ValidationError("Missing required fields")
    if get_document("product", {"product_id": fields["product_id"]}) is not None:
        raise Conflict("Product ID already exists")

    product = Product(**fields)
    try:
        product_id = create_document("product", product)
    except DuplicateKeyError:
        raise Conflict("Product ID already exists")
    logger.info("Product created", id=product_id, product_id=product.product_id)
    return get_product(product_id)


def update_product(key: str, payload: ProductPayload) -> dict:
    product = find_product(key)
    if product is None:
        raise NotFound("Product not found")

    changes = payload.model_dump(exclude_unset=True)
    new_business_key = changes.get("product_id")
    if new_business_key and new_business_key != product.get("product_id"):
        taken = get_document("product", {"product_id": new_business_key, "_id": {"$ne": product["_id"]}})
        if taken is not None:
            raise Conflict("Product ID already exists")

    try:
        updated = update_document("product", {"_id": product["_id"]}, changes)
    except DuplicateKeyError:
        raise Conflict("Product ID already exists")
    logger.info("Product updated", id=str(product["_id"]), fields=sorted(changes))
    return _with_category(updated)


def delete_product(key: str):
    product = find_product(key)
    if product is None:
        raise NotFound("Product not found")
    delete_document("product", {"_id": product["_id"]})
    logger.info("Product deleted", id=str(product["_id"]))


# -----------------------------
# Categories
# -----------------------------

def list_categories() -> List[dict]:
    """Active categories that have products, with a product count and a display image."""
    categories = []
    for category in get_documents("category", {"is_active": True}):
        products = get_documents("product", {"category": str(category["_id"])})
        if not products:
            continue
        display_image = category.get("image")
        if not display_image:
            display_image = next((p["images"][0] for p in products if p.get("images")), "")
        categories.append({
            "_id": str(category["_id"]),
            "name": category["name"],
            "slug": category["slug"],
            "description": category.get("description") or "",
            "image": category.get("image") or "",
            "display_image": display_image,
            "product_count": len(products),
        })
    return categories


def create_category(payload: CategoryPayload) -> dict:
    if not payload.name or not payload.name.strip():
        raise ValidationError("Category name is required")

    slug = payload.slug or slugify(payload.name.strip())
    if get_document("category", {"slug": slug}) is not None:
        raise Conflict("Category with this name already exists")

    category = Category(
        name=payload.name.strip(),
        slug=slug,
        description=payload.description or "",
        image=payload.image or "",
        parent_category=payload.parent_category or None,
        is_active=True if payload.is_active is None else payload.is_active,
    )
    try:
        category_id = create_document("category", category)
    except DuplicateKeyError:
        raise Conflict("Category with this name already exists")
    logger.info("Category created", id=category_id, slug=slug)
    return {"_id": category_id, **category.model_dump(exclude={"parent_category", "is_active"}), "product_count": 0}


def get_category(category_id: str) -> dict:
    category = get_document("category", {"_id": to_object_id(category_id, "category ID")})
    if category is None:
        raise NotFound("Category not found")
    return serialize_document(category)


def update_category(category_id: str, payload: CategoryPayload) -> dict:
    object_id = to_object_id(category_id, "category ID")
    if not payload.name or not payload.name.strip():
        raise ValidationError("Category name is required")

    changes = payload.model_dump(exclude_unset=True)
    changes["name"] = payload.name.strip()
    try:
        category = update_document("category", {"_id": object_id}, changes)
    except DuplicateKeyError:
        raise Conflict("Category with this name already exists")
    if category is None:
        raise NotFound("Category not found")
    logger.info("Category updated", id=category_id)
    return serialize_document(category)


def delete_category(category_id: str):
    category = delete_document("category", {"_id": to_object_id(category_id, "category ID")})
    if category is None:
        raise NotFound("Category not found")
    logger.info("Category deleted", id=category_id)
