"""
Wishlists

Two independent representations exist and are not kept in sync:

* the list embedded in each user document (`/users/wishlist`), with the
  user resolved from the session email;
* a standalone "wishlist" collection holding one document per user id
  (`/wishlist`).

Both reject duplicate products and treat removal of a missing product as a
no-op.
"""

from typing import List, Optional

import structlog

from auth import Identity, require_identity
from catalog import find_product
from database import (
    create_document,
    get_document,
    now,
    replace_document,
    serialize_document,
)
from errors import Conflict, NotFound, ValidationError
from schemas import Wishlist, WishlistItem
from users import resolve_user

logger = structlog.get_logger(__name__)

DISPLAY_FIELDS = {"name": 1, "price": 1, "images": 1, "category": 1, "slug": 1}


def _contains(items: List[dict], product_id: str) -> bool:
    return any(str(item.get("product_id")) == product_id for item in items)


def _without(items: List[dict], keys: set) -> List[dict]:
    return [item for item in items if str(item.get("product_id")) not in keys]


def _resolve_product(product_id: Optional[str]) -> dict:
    if not product_id:
        raise ValidationError("Product ID is required")
    product = find_product(product_id)
    if product is None:
        raise NotFound("Product not found")
    return product


def _removal_keys(product_id: str) -> set:
    keys = {product_id}
    product = find_product(product_id, {"_id": 1})
    if product is not None:
        keys.add(str(product["_id"]))
    return keys


# -----------------------------
# Embedded in the user document
# -----------------------------

def _resolved(items: List[dict]) -> List[dict]:
    """Entries with each product reference expanded to its display projection."""
    resolved = []
    for item in items:
        product = find_product(str(item["product_id"]), DISPLAY_FIELDS)
        resolved.append({
            "product_id": str(item["product_id"]),
            "product": serialize_document(product) if product is not None else None,
            "added_at": serialize_document(item.get("added_at")),
        })
    return resolved


def get_wishlist(identity: Optional[Identity]) -> List[dict]:
    user = resolve_user(identity)
    return _resolved(user.get("wishlist", []))


def add_item(identity: Optional[Identity], product_id: Optional[str]) -> List[dict]:
    require_identity(identity)
    product = _resolve_product(product_id)
    user = resolve_user(identity)
    items = user.get("wishlist", [])

    key = str(product["_id"])
    if _contains(items, key):
        logger.warning("Duplicate wishlist item", user_id=str(user["_id"]), product_id=key)
        raise Conflict("Product already in wishlist", wishlist=_resolved(items))

    items.append(WishlistItem(product_id=key, added_at=now()).model_dump())
    user["wishlist"] = items
    replace_document("user", user)
    logger.info("Wishlist item added", user_id=str(user["_id"]), product_id=key)
    return _resolved(items)


def remove_item(identity: Optional[Identity], product_id: Optional[str]) -> List[dict]:
    require_identity(identity)
    if not product_id:
        raise ValidationError("Product ID is required")
    user = resolve_user(identity)

    items = _without(user.get("wishlist", []), _removal_keys(product_id))
    user["wishlist"] = items
    replace_document("user", user)
    logger.info("Wishlist item removed", user_id=str(user["_id"]), product_id=product_id)
    return _resolved(items)


# -----------------------------
# Standalone wishlist collection
# -----------------------------

def _expanded(items: List[dict]) -> List[dict]:
    """Full product documents plus the time each was added; vanished products are skipped."""
    expanded = []
    for item in items:
        product = find_product(str(item["product_id"]))
        if product is None:
            continue
        expanded.append({**serialize_document(product), "added_at": serialize_document(item.get("added_at"))})
    return expanded


def get_items(identity: Optional[Identity]) -> List[dict]:
    identity = require_identity(identity)
    wishlist = get_document("wishlist", {"user_id": identity.id})
    if wishlist is None:
        return []
    return _expanded(wishlist.get("items", []))


def add_to_collection(identity: Optional[Identity], product_id: Optional[str]) -> List[dict]:
    identity = require_identity(identity)
    product = _resolve_product(product_id)
    key = str(product["_id"])
    item = WishlistItem(product_id=key, added_at=now()).model_dump()

    wishlist = get_document("wishlist", {"user_id": identity.id})
    if wishlist is None:
        create_document("wishlist", Wishlist(user_id=identity.id, items=[item]))
        logger.info("Wishlist created", user_id=identity.id, product_id=key)
        return _expanded([item])

    if _contains(wishlist["items"], key):
        raise Conflict("Product already in wishlist")
    wishlist["items"].append(item)
    replace_document("wishlist", wishlist)
    logger.info("Wishlist item added", user_id=identity.id, product_id=key)
    return _expanded(wishlist["items"])


def remove_from_collection(identity: Optional[Identity], product_id: Optional[str] = None) -> List[dict]:
    """Remove one product, or clear the whole wishlist when no product is given."""
    identity = require_identity(identity)
    wishlist = get_document("wishlist", {"user_id": identity.id})
    if wishlist is None:
        raise NotFound("Wishlist not found")

    if product_id:
        wishlist["items"] = _without(wishlist.get("items", []), _removal_keys(product_id))
    else:
        wishlist["items"] = []
    replace_document("wishlist", wishlist)
    logger.info("Wishlist updated", user_id=identity.id, removed=product_id or "all")
    return _expanded(wishlist["items"])
