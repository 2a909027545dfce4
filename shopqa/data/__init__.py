"""Test data templates and payload factory."""

from shopqa.data.factory import (
    UniqueIdGenerator,
    build_add_item_payload,
    build_address_payload,
    build_customer_payload,
    build_product_payload,
    build_variant_payload,
    generate_email,
    generate_product_code,
    generate_slug,
    generate_unique_identifier,
)
from shopqa.data.templates import ADDRESSES, DEFAULT_PASSWORD, HOSTILE_INPUTS, USERS

__all__ = [
    "ADDRESSES",
    "DEFAULT_PASSWORD",
    "HOSTILE_INPUTS",
    "USERS",
    "UniqueIdGenerator",
    "build_add_item_payload",
    "build_address_payload",
    "build_customer_payload",
    "build_product_payload",
    "build_variant_payload",
    "generate_email",
    "generate_product_code",
    "generate_slug",
    "generate_unique_identifier",
]
