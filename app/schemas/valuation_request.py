"""
Inbound payloads.

VehicleAttributes is what the scoring core consumes. It is deliberately
lenient: unknown brand / body / fuel / transmission values are accepted and
degrade to documented defaults inside the engine.

VehicleSubmission is what the HTTP layer accepts from the customer form and
is strict (enums, VIN length, plausible year). It converts to
VehicleAttributes before anything is scored.
"""
from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ── Enums matching the customer form ──

class BodyType(str, Enum):
    SEDAN = "sedan"
    HATCHBACK = "hatchback"
    WAGON = "wagon"
    SUV = "suv"
    COUPE = "coupe"
    CONVERTIBLE = "convertible"
    PICKUP = "pickup"
    VAN = "van"
    MINIVAN = "minivan"


class FuelType(str, Enum):
    PETROL = "petrol"
    DIESEL = "diesel"
    ELECTRIC = "electric"
    HYBRID = "hybrid"
    LPG = "lpg"


class Transmission(str, Enum):
    MANUAL = "manual"
    AUTOMATIC = "automatic"
    SEMI_AUTOMATIC = "semi-automatic"


class Tier(str, Enum):
    REGULAR = "regular"
    PREMIUM = "premium"
    BUSINESS = "business"


class PaymentMethod(str, Enum):
    PAYPAL = "paypal"
    REVOLUT = "revolut"


# ── Core input ──

class VehicleAttributes(BaseModel):
    """Declared vehicle attributes. Immutable once submitted."""
    model_config = ConfigDict(frozen=True)

    brand: str
    model: str
    year: int
    body_type: str
    mileage: int = Field(ge=0, description="Odometer reading in km")
    fuel_type: str
    transmission: str
    vin: Optional[str] = Field(None, description="17-character vehicle identifier")
    visible_damages: Optional[str] = None
    mechanical_damages: Optional[str] = None
    additional_info: Optional[str] = None


# ── HTTP input ──

class VehicleSubmission(BaseModel):
    """Customer form payload: validated strictly before scoring."""
    vin: str = Field(min_length=17, max_length=17)
    brand: str = Field(min_length=1)
    model: str = Field(min_length=1)
    year: int = Field(ge=1990)
    body_type: BodyType
    mileage: int = Field(ge=1, le=1_000_000)
    fuel_type: FuelType
    transmission: Transmission
    visible_damages: Optional[str] = None
    mechanical_damages: Optional[str] = None
    additional_info: Optional[str] = None

    @field_validator("year")
    @classmethod
    def validate_year(cls, v: int) -> int:
        if v > date.today().year + 1:
            raise ValueError("year cannot be in the future")
        return v

    def to_attributes(self) -> VehicleAttributes:
        return VehicleAttributes(
            brand=self.brand,
            model=self.model,
            year=self.year,
            body_type=self.body_type.value,
            mileage=self.mileage,
            fuel_type=self.fuel_type.value,
            transmission=self.transmission.value,
            vin=self.vin,
            visible_damages=self.visible_damages,
            mechanical_damages=self.mechanical_damages,
            additional_info=self.additional_info,
        )


class PaymentEvent(BaseModel):
    """Payment-succeeded event handed over by the payment collaborator."""
    transaction_id: str = Field(min_length=1)
    amount_paid: float = Field(gt=0)
    tier: Tier
    payment_method: Optional[PaymentMethod] = None


class ValuationRequest(BaseModel):
    """
    POST /v1/valuations

    Sent once the customer's tier selection has been paid for.
    """
    vehicle: VehicleSubmission
    payment: PaymentEvent
