# API Routes Module
from travelmate.api.routes import (
    auth,
    payment,
    webhooks,
)

__all__ = [
    "auth",
    "payment",
    "webhooks",
]
