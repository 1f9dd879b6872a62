from fastapi import APIRouter, Depends
from pydantic import BaseModel

from fintrack.models.rates import ConversionSummary
from fintrack.routers.deps import get_preference_service
from fintrack.services.preferences import CurrencyPreferenceService

router = APIRouter(prefix="/users/{user_id}/preferences", tags=["preferences"])


class CurrencyPreferenceOut(BaseModel):
    user_id: str
    currency: str


class CurrencyPreferenceIn(BaseModel):
    currency: str


class CurrencyChangeOut(CurrencyPreferenceOut):
    conversion: ConversionSummary


@router.get(
    "/currency",
    response_model=CurrencyPreferenceOut,
    summary="Get the user's default currency",
)
def get_currency(
    user_id: str,
    svc: CurrencyPreferenceService = Depends(get_preference_service),
):
    return CurrencyPreferenceOut(user_id=user_id, currency=svc.get_default_currency(user_id))


@router.put(
    "/currency",
    response_model=CurrencyChangeOut,
    summary="Change the default currency and re-price stored records",
)
async def change_currency(
    user_id: str,
    payload: CurrencyPreferenceIn,
    svc: CurrencyPreferenceService = Depends(get_preference_service),
):
    # Conversion errors (including partial conversions) go to the app's error handler
    summary = await svc.change_default_currency(user_id, payload.currency)
    return CurrencyChangeOut(
        user_id=user_id, currency=summary.to_currency, conversion=summary
    )
