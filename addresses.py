"""
Address book

Each user document embeds an ordered list of addresses. When the list is
non-empty exactly one entry is the default; `AddressBook.normalize_default`
restores that after every mutation and runs before each write.

Mutations are read-modify-write on the whole user document, so two
concurrent "set default" requests for one user can still race.
"""

from typing import Iterator, List, Optional

import structlog
from bson import ObjectId

from auth import Identity, require_identity
from database import now, replace_document, serialize_documents
from errors import NotFound, ValidationError
from schemas import Address, AddressPayload
from users import resolve_user

logger = structlog.get_logger(__name__)

REQUIRED_FIELDS = ("street", "city", "state", "zip_code")
NON_BLANK_FIELDS = REQUIRED_FIELDS + ("country",)
TRIMMED_FIELDS = ("street", "city", "state", "zip_code", "country", "phone")


class AddressBook:
    """Ordered address sequence owned by one user document."""

    def __init__(self, addresses: Optional[List[dict]] = None):
        self._addresses = [dict(address) for address in addresses or []]

    def __iter__(self) -> Iterator[dict]:
        return iter(self._addresses)

    def __len__(self) -> int:
        return len(self._addresses)

    def __getitem__(self, index: int) -> dict:
        return self._addresses[index]

    def to_list(self) -> List[dict]:
        return [dict(address) for address in self._addresses]

    def index_of(self, address_id: str) -> int:
        for index, address in enumerate(self._addresses):
            if str(address.get("_id")) == address_id:
                return index
        raise NotFound("Address not found")

    def clear_default(self):
        for address in self._addresses:
            address["is_default"] = False

    def append(self, address: dict) -> dict:
        if not self._addresses:
            address["is_default"] = True
        elif address.get("is_default"):
            self.clear_default()
        self._addresses.append(address)
        return address

    def update(self, address_id: str, changes: dict) -> dict:
        address = self._addresses[self.index_of(address_id)]
        is_default = changes.pop("is_default", None)
        address.update(changes)
        if is_default is not None:
            if is_default:
                self.clear_default()
            address["is_default"] = is_default
        address["updated_at"] = now()
        return address

    def remove(self, address_id: str) -> dict:
        removed = self._addresses.pop(self.index_of(address_id))
        if removed.get("is_default") and self._addresses:
            self._addresses[0]["is_default"] = True
        return removed

    def normalize_default(self):
        """Keep the first default if several are flagged; promote the first entry if none are."""
        if not self._addresses:
            return
        first = next((i for i, a in enumerate(self._addresses) if a.get("is_default")), 0)
        for index, address in enumerate(self._addresses):
            address["is_default"] = index == first


def _trimmed(fields: dict) -> dict:
    return {
        key: value.strip() if key in TRIMMED_FIELDS and isinstance(value, str) else value
        for key, value in fields.items()
    }


def _save(user: dict, book: AddressBook) -> List[dict]:
    book.normalize_default()
    user["addresses"] = book.to_list()
    replace_document("user", user)
    return serialize_documents(user["addresses"])


def list_addresses(identity: Optional[Identity]) -> List[dict]:
    user = resolve_user(identity)
    return serialize_documents(user.get("addresses", []))


def add_address(identity: Optional[Identity], payload: AddressPayload) -> List[dict]:
    require_identity(identity)
    fields = _trimmed(payload.model_dump(exclude={"address_id"}))
    if not all(fields.get(name) for name in REQUIRED_FIELDS):
        raise ValidationError("Street, city, state, and ZIP code are required")

    user = resolve_user(identity)
    book = AddressBook(user.get("addresses"))

    address = Address(
        street=fields["street"],
        city=fields["city"],
        state=fields["state"],
        zip_code=fields["zip_code"],
        country=fields.get("country") or "Bangladesh",
        is_default=bool(fields.get("is_default")),
        label=fields.get("label") or "home",
        phone=fields.get("phone") or "",
    ).model_dump()
    timestamp = now()
    address.update({"_id": ObjectId(), "created_at": timestamp, "updated_at": timestamp})
    book.append(address)

    addresses = _save(user, book)
    logger.info("Address added", user_id=str(user["_id"]), address_id=str(address["_id"]))
    return addresses


def update_address(identity: Optional[Identity], payload: AddressPayload) -> List[dict]:
    require_identity(identity)
    if not payload.address_id:
        raise ValidationError("Address ID is required")

    user = resolve_user(identity)
    book = AddressBook(user.get("addresses"))
    changes = _trimmed(payload.model_dump(exclude={"address_id"}, exclude_unset=True))
    # An explicit null leaves the field untouched.
    changes = {key: value for key, value in changes.items() if value is not None}
    if any(name in changes and not changes[name] for name in NON_BLANK_FIELDS):
        raise ValidationError("Street, city, state, ZIP code, and country cannot be empty")
    book.update(payload.address_id, changes)

    addresses = _save(user, book)
    logger.info("Address updated", user_id=str(user["_id"]), address_id=payload.address_id)
    return addresses


def remove_address(identity: Optional[Identity], address_id: Optional[str]) -> List[dict]:
    require_identity(identity)
    if not address_id:
        raise ValidationError("Address ID is required")

    user = resolve_user(identity)
    book = AddressBook(user.get("addresses"))
    book.remove(address_id)

    addresses = _save(user, book)
    logger.info("Address removed", user_id=str(user["_id"]), address_id=address_id)
    return addresses
