"""
Currency API endpoints.
"""

from dataclasses import asdict
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from typing import Dict, List, Literal, Optional

from app.calculations import currency
from app.services.exchange_rates import ExchangeRateService, get_exchange_rate_service

router = APIRouter()


class CurrencyOut(BaseModel):
    code: str
    name: str
    symbol: str
    symbol_native: str
    decimal_digits: int


class RatesResponse(BaseModel):
    base: str
    rates: Dict[str, float]
    fetched_at: Optional[datetime]
    source: str


class ConvertInput(BaseModel):
    amount: float
    currency: str
    direction: Literal["from_usd", "to_usd"] = "from_usd"


class ConvertResponse(BaseModel):
    amount: float
    converted: float
    currency: str
    rate: float
    formatted: str


@router.get("/", response_model=List[CurrencyOut])
async def list_currencies():
    """List supported display currencies."""
    return [CurrencyOut(**asdict(c)) for c in currency.CURRENCIES]


@router.get("/rates", response_model=RatesResponse)
def get_rates(
    rates_service: ExchangeRateService = Depends(get_exchange_rate_service),
):
    """Current USD exchange rates (cached)."""
    table = rates_service.get_rates()
    return RatesResponse(
        base=table.base,
        rates=table.rates,
        fetched_at=table.fetched_at,
        source=table.source,
    )


@router.post("/convert", response_model=ConvertResponse)
def convert_amount(
    inputs: ConvertInput,
    rates_service: ExchangeRateService = Depends(get_exchange_rate_service),
):
    """Convert an amount between USD and a supported currency."""
    try:
        target = currency.get_currency(inputs.currency)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    table = rates_service.get_rates()

    if inputs.direction == "from_usd":
        converted = currency.convert_from_usd(inputs.amount, target.code, table)
        formatted = currency.format_amount(converted, target)
    else:
        converted = currency.convert_to_usd(inputs.amount, target.code, table)
        formatted = currency.format_amount(converted, currency.get_currency("USD"))

    return ConvertResponse(
        amount=inputs.amount,
        converted=converted,
        currency=target.code,
        rate=table.rate_for(target.code),
        formatted=formatted,
    )
