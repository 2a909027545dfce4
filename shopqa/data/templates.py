"""Static test data templates.

Add new data sets here without touching scenario code. Templates are
configuration, never computed; the factory copies them before use.
"""

from typing import Any

DEFAULT_PASSWORD = "qauser1"
DEFAULT_LOCALE = "en_US"
DEFAULT_CHANNEL = "FASHION_WEB"

# The platform stores a customer (profile) and a shop user (credentials)
# separately; templates describe the profile part only.
USERS: dict[str, dict[str, Any]] = {
    "checkout": {
        "firstName": "Checkout",
        "lastName": "Tester",
        "subscribedToNewsletter": True,
    },
    "cart": {
        "firstName": "QA",
        "lastName": "User",
        "subscribedToNewsletter": True,
        "birthday": "2006-01-01T16:49:05.002Z",
        "localeCode": DEFAULT_LOCALE,
    },
    "basic": {
        "firstName": "QA",
        "lastName": "User",
        "subscribedToNewsletter": True,
        "birthday": "2006-01-01T16:49:05.002Z",
        "localeCode": DEFAULT_LOCALE,
    },
}

ADDRESSES: dict[str, dict[str, str]] = {
    "us": {
        "firstName": "John",
        "lastName": "Doe",
        "street": "123 Fashion St",
        "countryCode": "US",
        "city": "New York",
        "postcode": "10001",
    },
}

# Query strings that must never surface as a server error
HOSTILE_INPUTS: list[str] = [
    "'; DROP TABLE sylius_order; --",
    "1 OR 1=1",
    "<script>alert('xss')</script>",
    "../../../etc/passwd",
]
