"""
wholesale/api/products.py
Products API: create (plan-limited) and list.
"""

from fastapi import APIRouter, Depends

from wholesale.core.auth import get_current_user_id
from wholesale.core.feature_gating import require_product_limits
from wholesale.features.catalog.service import create_product, list_products
from wholesale.models.catalog import ProductCreateRequest
from wholesale.models.usage import FeatureLimitCheck

router = APIRouter(prefix="/api/products", tags=["products"])


@router.post("", status_code=201)
async def create_product_endpoint(
    request: ProductCreateRequest,
    check: FeatureLimitCheck = Depends(require_product_limits()),
    user_id: str = Depends(get_current_user_id),
):
    """Create a product once the product limit allows it."""
    product = create_product(user_id, request)
    return {"data": product.model_dump(mode="json"), "limits": check.to_response()}


@router.get("")
async def list_products_endpoint(user_id: str = Depends(get_current_user_id)):
    items = list_products(user_id)
    return {"data": [p.model_dump(mode="json") for p in items], "count": len(items)}
