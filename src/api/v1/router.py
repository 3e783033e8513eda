"""
API v1 router.

Combines all v1 endpoint routers.
"""

from fastapi import APIRouter

from src.api.v1.endpoints import order_forms

# Create main v1 router
api_router = APIRouter()

# V1 root endpoint
@api_router.get("/", tags=["info"])
async def api_v1_info():
    """
    API v1 information endpoint.

    Returns:
        API version and available endpoints
    """
    return {
        "title": "Order Form Engine API",
        "version": "1.0.0",
        "endpoints": {
            "order_forms": "/api/v1/order-forms",
            "health": "/health",
            "docs": "/docs"
        }
    }

# Include endpoint routers
api_router.include_router(order_forms.router)
