"""In-process fake of the e-commerce platform API."""

from tests.fakeshop.app import create_app
from tests.fakeshop.behaviour import Fault, PlatformBehaviour, StockMode
from tests.fakeshop.store import ShopStore

__all__ = ["Fault", "PlatformBehaviour", "ShopStore", "StockMode", "create_app"]
