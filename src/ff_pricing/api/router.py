"""ff_pricing REST endpoints.

GET    /pricing/data      public pricing document
GET    /pricing/history   price history for one (item, tier)
GET    /pricing/suggest   reference price used to pre-fill orders
GET    /admin/pricing     pricing document (admin)
POST   /admin/pricing     replace the whole document (admin)
PUT    /admin/pricing     replace one item's tier prices (admin)
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from src.ff_common.database import get_db_session
from src.ff_common.response import ApiResponse, success_response
from src.ff_gateway.auth.dependencies import require_admin
from src.ff_gateway.user.db_models import UserModel
from src.ff_pricing.application.schemas import ItemPricesRequest, PricingDocument
from src.ff_pricing.application.service import PricingService
from src.ff_pricing.domain.models import MAX_TIER, MIN_TIER

router = APIRouter(prefix="/pricing", tags=["pricing"])
admin_router = APIRouter(prefix="/admin/pricing", tags=["admin"])

_service = PricingService()


@router.get("/data")
async def get_pricing_data(
    request: Request,
    response: Response,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    response.headers["Cache-Control"] = "public, max-age=30"
    return success_response(await _service.get_document(db), request=request)


@router.get("/history")
async def get_price_history(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    item_name: str = Query(..., min_length=1),
    tier: int = Query(..., ge=MIN_TIER, le=MAX_TIER),
    days: int = Query(30, ge=1, le=365),
) -> ApiResponse:
    result = await _service.history(item_name, tier, days, db)
    return success_response(result.model_dump(), request=request)


@router.get("/suggest")
async def suggest_price(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    item_name: str = Query(..., min_length=1),
    tier: int = Query(..., ge=MIN_TIER, le=MAX_TIER),
) -> ApiResponse:
    result = await _service.suggest(item_name, tier, db)
    return success_response(result.model_dump(mode="json"), request=request)


@admin_router.get("")
async def admin_get_pricing(
    request: Request,
    _admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    return success_response(await _service.get_document(db), request=request)


@admin_router.post("")
async def admin_replace_pricing(
    request: Request,
    body: PricingDocument,
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    document = await _service.replace_all(body, str(admin.id), db)
    return success_response(document, message="Pricing data updated successfully", request=request)


@admin_router.put("")
async def admin_replace_item_pricing(
    request: Request,
    body: ItemPricesRequest,
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    document = await _service.replace_item(body, str(admin.id), db)
    return success_response(
        document, message=f"Prices for {body.item_name} updated", request=request
    )
