import os
from contextlib import asynccontextmanager
from typing import Any, Optional

import structlog
from fastapi import Depends, FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic.alias_generators import to_camel
from pymongo.errors import DuplicateKeyError

import addresses
import catalog
import database
import orders
import users
import wishlist
from auth import Identity, authenticate, current_identity
from errors import StoreError
from schemas import (
    AddressPayload,
    CategoryPayload,
    CreateOrderPayload,
    LoginPayload,
    OrderStatusPayload,
    ProductPayload,
    ProfilePayload,
    RegisterPayload,
    StatusPayload,
    UserPayload,
    WishlistPayload,
)

logger = structlog.get_logger(__name__)


def camelize(value: Any) -> Any:
    """Rename snake_case keys to camelCase all the way down; `_id` stays as stored."""
    if isinstance(value, dict):
        return {
            key if key.startswith("_") else to_camel(key): camelize(item)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [camelize(item) for item in value]
    return value


class CamelJSONResponse(JSONResponse):
    def render(self, content: Any) -> bytes:
        return super().render(camelize(content))


@asynccontextmanager
async def lifespan(app: FastAPI):
    database.ensure_indexes()
    yield


app = FastAPI(title="Store API", default_response_class=CamelJSONResponse, lifespan=lifespan)

_origins = [o.strip() for o in os.getenv("CORS_ALLOWED_ORIGINS", "*").split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes whose error bodies also carry "success": false
_FLAGGED_PREFIXES = ("/categories",)


def _error(request: Request, status_code: int, message: str, **extra) -> JSONResponse:
    body = {"error": message, **jsonable_encoder(extra)}
    if request.url.path.startswith(_FLAGGED_PREFIXES):
        body = {"success": False, **body}
    return CamelJSONResponse(status_code=status_code, content=body)


@app.exception_handler(StoreError)
def handle_store_error(request: Request, exc: StoreError):
    if exc.status_code >= 500:
        logger.error("Request failed", path=request.url.path, error=exc.message)
    else:
        logger.warning("Request rejected", path=request.url.path, status=exc.status_code, error=exc.message)
    return _error(request, exc.status_code, exc.message, **exc.extra)


@app.exception_handler(RequestValidationError)
def handle_request_validation(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(part) for part in first.get("loc", ())[1:])
    message = f"{field}: {first.get('msg')}" if field else "Invalid request body"
    logger.warning("Request rejected", path=request.url.path, status=400, error=message)
    return _error(request, 400, message)


@app.exception_handler(DuplicateKeyError)
def handle_duplicate_key(request: Request, exc: DuplicateKeyError):
    logger.warning("Duplicate key", path=request.url.path, error=str(exc))
    return _error(request, 400, "Duplicate value")


@app.exception_handler(Exception)
def handle_unexpected(request: Request, exc: Exception):
    logger.error("Unhandled error", path=request.url.path, exc_info=exc)
    return _error(request, 500, "Internal server error")


@app.get("/")
def read_root():
    return {"message": "Store Backend Running"}


@app.get("/test")
def test_database():
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set",
        "database_name": None,
        "connection_status": "Not Connected",
        "collections": [],
    }

    db = database.db
    if db is None:
        return response

    response["database_name"] = db.name
    response["connection_status"] = "Connected"
    try:
        response["collections"] = db.list_collection_names()[:10]
        response["database"] = "✅ Connected & Working"
    except Exception as e:
        response["database"] = f"⚠️ Connected but Error: {str(e)[:50]}"
    return response


# -----------------------------
# Session
# -----------------------------

@app.post("/auth/login")
def login(payload: LoginPayload):
    token, user = authenticate(payload.email, payload.password)
    return {"access_token": token, "token_type": "bearer", "user": user}


@app.post("/register", status_code=201)
def register(payload: RegisterPayload):
    users.register(payload)
    return {"message": "User registered successfully"}


# -----------------------------
# Orders
# -----------------------------

@app.post("/orders", status_code=201)
def create_order(payload: CreateOrderPayload):
    order_id = orders.create_order(payload)
    return {"orderId": order_id, "message": "Order created successfully"}


@app.get("/orders")
def list_orders(order_id: Optional[str] = Query(None, alias="orderId")):
    if order_id:
        return {"order": orders.get_order(order_id)}
    return orders.list_orders()


@app.post("/orders/update-status")
def update_order_status(payload: OrderStatusPayload):
    if not payload.order_id or not payload.status:
        return CamelJSONResponse(status_code=400, content={"error": "Order ID and status are required"})
    order = orders.update_status(payload.order_id, payload.status)
    return {"success": True, "order": order}


@app.get("/orders/{order_id}")
def get_order(order_id: str):
    return orders.get_order(order_id)


@app.put("/orders/{order_id}")
def put_order_status(order_id: str, payload: StatusPayload):
    return orders.update_status(order_id, payload.status)


# -----------------------------
# Address book
# -----------------------------

@app.get("/users/address")
def list_addresses(identity: Optional[Identity] = Depends(current_identity)):
    return {"addresses": addresses.list_addresses(identity)}


@app.post("/users/address")
def add_address(payload: AddressPayload, identity: Optional[Identity] = Depends(current_identity)):
    result = addresses.add_address(identity, payload)
    return {"success": True, "message": "Address added successfully", "addresses": result}


@app.put("/users/address")
def update_address(payload: AddressPayload, identity: Optional[Identity] = Depends(current_identity)):
    result = addresses.update_address(identity, payload)
    return {"success": True, "message": "Address updated successfully", "addresses": result}


@app.delete("/users/address")
def remove_address(address_id: Optional[str] = Query(None, alias="id"), identity: Optional[Identity] = Depends(current_identity)):
    result = addresses.remove_address(identity, address_id)
    return {"success": True, "message": "Address deleted successfully", "addresses": result}


# -----------------------------
# Wishlists
# -----------------------------

@app.get("/users/wishlist")
def get_user_wishlist(identity: Optional[Identity] = Depends(current_identity)):
    return {"wishlist": wishlist.get_wishlist(identity)}


@app.post("/users/wishlist")
def add_user_wishlist(payload: WishlistPayload, identity: Optional[Identity] = Depends(current_identity)):
    items = wishlist.add_item(identity, payload.product_id)
    return {"success": True, "message": "Product added to wishlist", "wishlist": items}


@app.delete("/users/wishlist")
def remove_user_wishlist(product_id: Optional[str] = Query(None, alias="productId"), identity: Optional[Identity] = Depends(current_identity)):
    items = wishlist.remove_item(identity, product_id)
    return {"success": True, "message": "Product removed from wishlist", "wishlist": items}


@app.get("/wishlist")
def get_wishlist(identity: Optional[Identity] = Depends(current_identity)):
    return {"items": wishlist.get_items(identity)}


@app.post("/wishlist")
def add_wishlist(payload: WishlistPayload, identity: Optional[Identity] = Depends(current_identity)):
    return {"items": wishlist.add_to_collection(identity, payload.product_id)}


@app.delete("/wishlist")
def remove_wishlist(product_id: Optional[str] = Query(None, alias="productId"), identity: Optional[Identity] = Depends(current_identity)):
    return {"items": wishlist.remove_from_collection(identity, product_id)}


# -----------------------------
# Users
# -----------------------------

@app.get("/users/profile")
def get_profile(identity: Optional[Identity] = Depends(current_identity)):
    return users.get_profile(identity)


@app.put("/users/profile")
def update_profile(payload: ProfilePayload, identity: Optional[Identity] = Depends(current_identity)):
    user = users.update_profile(identity, payload)
    return {"success": True, "message": "Profile updated successfully", "user": user}


@app.get("/users")
def list_users():
    return users.list_users()


@app.post("/users", status_code=201)
def create_user(payload: UserPayload):
    return {"user": users.create_user(payload)}


@app.delete("/users")
def delete_user_by_body(payload: dict):
    if not payload.get("id"):
        return CamelJSONResponse(status_code=400, content={"error": "ID required"})
    users.delete_user(payload["id"])
    return {"message": "User deleted"}


@app.get("/users/{user_id}")
def get_user(user_id: str):
    return users.get_user(user_id)


@app.put("/users/{user_id}")
def update_user(user_id: str, payload: UserPayload):
    return users.update_user(user_id, payload)


@app.delete("/users/{user_id}")
def delete_user(user_id: str):
    users.delete_user(user_id)
    return {"message": "User deleted"}


# -----------------------------
# Catalog
# -----------------------------

@app.get("/products")
def list_products():
    return catalog.list_products()


@app.post("/products", status_code=201)
def create_product(payload: ProductPayload):
    return catalog.create_product(payload)


@app.get("/products/new")
def list_new_arrivals():
    return catalog.list_new_arrivals()


@app.get("/products/{product_key}")
def get_product(product_key: str):
    return catalog.get_product(product_key)


@app.put("/products/{product_key}")
def update_product(product_key: str, payload: ProductPayload):
    return catalog.update_product(product_key, payload)


@app.delete("/products/{product_key}")
def delete_product(product_key: str):
    catalog.delete_product(product_key)
    return {"message": "Product deleted successfully"}


@app.get("/categories")
def list_categories():
    return catalog.list_categories()


@app.post("/categories", status_code=201)
def create_category(payload: CategoryPayload):
    category = catalog.create_category(payload)
    return {"success": True, "data": category, "message": "Category created successfully"}


@app.get("/categories/{category_id}")
def get_category(category_id: str):
    return {"success": True, "data": catalog.get_category(category_id)}


@app.put("/categories/{category_id}")
def update_category(category_id: str, payload: CategoryPayload):
    return {"success": True, "data": catalog.update_category(category_id, payload)}


@app.delete("/categories/{category_id}")
def delete_category(category_id: str):
    catalog.delete_category(category_id)
    return {"success": True, "message": "Category deleted successfully", "data": {"id": category_id}}


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
