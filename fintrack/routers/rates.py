from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from fintrack.models.constants import CURRENCY_NAMES, parse_currency
from fintrack.models.rates import RateSnapshot
from fintrack.routers.deps import get_conversion_engine
from fintrack.services.rates.conversion import CurrencyConversionEngine

"""Currency and exchange rate endpoints.

Endpoints:
    - GET  /currencies                 -> supported currency codes and names
    - GET  /rates/cache/{currency}     -> fresh cached rates for a source currency
    - GET  /rates/{from}/{to}          -> rate (cache first, then provider)
    - POST /rates/convert              -> convert a single amount
"""

router = APIRouter(tags=["rates"])


class CurrencyOut(BaseModel):
    code: str
    name: str


class RateOut(BaseModel):
    from_currency: str
    to_currency: str
    rate: float


class ConvertIn(BaseModel):
    amount: float = Field(..., ge=0)
    from_currency: str
    to_currency: str


class ConvertOut(ConvertIn):
    converted_amount: float


@router.get("/currencies", response_model=List[CurrencyOut], summary="List supported currencies")
async def list_currencies():
    return [CurrencyOut(code=code.value, name=name) for code, name in CURRENCY_NAMES.items()]


@router.get(
    "/rates/cache/{currency}",
    response_model=RateSnapshot,
    summary="Inspect fresh cached rates for a source currency",
)
async def cached_rates(
    currency: str,
    engine: CurrencyConversionEngine = Depends(get_conversion_engine),
):
    snapshot = engine.cache.snapshot(parse_currency(currency).value)
    if snapshot is None:
        raise HTTPException(status_code=404, detail="no fresh cached rates")
    return snapshot


@router.get("/rates/{from_currency}/{to_currency}", response_model=RateOut, summary="Get an exchange rate")
async def get_rate(
    from_currency: str,
    to_currency: str,
    engine: CurrencyConversionEngine = Depends(get_conversion_engine),
):
    from_code = parse_currency(from_currency).value
    to_code = parse_currency(to_currency).value
    rate = await engine.resolve_rate(from_code, to_code)
    return RateOut(from_currency=from_code, to_currency=to_code, rate=rate)


@router.post("/rates/convert", response_model=ConvertOut, summary="Convert an amount")
async def convert(
    payload: ConvertIn,
    engine: CurrencyConversionEngine = Depends(get_conversion_engine),
):
    converted = await engine.convert_amount(
        payload.amount, payload.from_currency, payload.to_currency
    )
    return ConvertOut(
        amount=payload.amount,
        from_currency=parse_currency(payload.from_currency).value,
        to_currency=parse_currency(payload.to_currency).value,
        converted_amount=converted,
    )
