# Routers package
from . import providers_router
from . import appointments_router

__all__ = [
    "providers_router",
    "appointments_router",
]
