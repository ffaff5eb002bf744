"""Currency schemas for request/response validation."""

from pydantic import BaseModel, Field


class CurrencyBase(BaseModel):
    """Base currency schema."""

    code: str = Field(..., min_length=3, max_length=3, pattern="^[A-Z]{3}$")
    name: str = Field(..., min_length=1, max_length=100)
    symbol: str = Field(..., min_length=1, max_length=10)
    decimal_places: int = Field(2, ge=0, le=4)


class CurrencyResponse(CurrencyBase):
    """Schema for currency response."""

    is_active: bool
    is_system: bool

    model_config = {"from_attributes": True}


class CurrencyLookupResponse(BaseModel):
    """Schema for a resolved free-text currency lookup.

    Codes found only through the provider search are best-effort and may not
    be ISO 4217 codes, so the code pattern is not enforced here.
    """

    code: str
    name: str
    symbol: str
    decimal_places: int
    source: str  # "code", "name" or "search"
    verified: bool | None = None

    model_config = {"from_attributes": True}


class CurrencyUsage(BaseModel):
    """Usage counts for one currency code."""

    accounts: int = 0
    securities: int = 0


class CurrencyUsageResponse(BaseModel):
    """Schema for currency usage across accounts and securities."""

    usage: dict[str, CurrencyUsage]
    codes_in_use: list[str]
