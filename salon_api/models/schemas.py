from datetime import date, datetime
from typing import List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from salon_api.models.db_models import AppointmentStatus


class CamelModel(BaseModel):
    """Request bodies use camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Auth
class LoginRequest(CamelModel):
    email: str
    password: str


class RegisterRequest(CamelModel):
    name: str = Field(min_length=1)
    email: str
    password: str = Field(min_length=6)

    @field_validator("email")
    @classmethod
    def email_shape(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v or "." not in v.split("@")[-1]:
            raise ValueError("Email inválido")
        return v


class RefreshRequest(CamelModel):
    refresh_token: Optional[str] = None


# Appointments
class AppointmentCreate(CamelModel):
    client_name: str = Field(min_length=1)
    client_phone: str = Field(min_length=6)
    client_email: Optional[str] = None
    date: datetime
    service_id: str
    notes: Optional[str] = None


class AppointmentUpdate(CamelModel):
    status: Optional[AppointmentStatus] = None
    date: Optional[datetime] = None
    notes: Optional[str] = None
    service_id: Optional[str] = None


class AppointmentStatusUpdate(CamelModel):
    status: AppointmentStatus


# Catalog
class OrderItem(CamelModel):
    id: str
    order: int


class ServiceOrderUpdate(CamelModel):
    services: List[OrderItem]


class CategoryOrderUpdate(CamelModel):
    categories: List[OrderItem]


class CategoryCreate(CamelModel):
    name: str


class CategoryUpdate(CamelModel):
    name: Optional[str] = None
    order: Optional[int] = None


class ServiceCreate(CamelModel):
    name: str = Field(min_length=1)
    description: str = ""
    price: float = Field(gt=0)
    offer_price: Optional[float] = None
    # "H:MM", decimal hours string, or number of hours
    duration: Union[str, float]
    category_id: str
    is_active: bool = True
    is_highlight: bool = False
    has_offer: bool = False
    images: List[str] = []


class ServiceUpdate(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, gt=0)
    offer_price: Optional[float] = None
    duration: Optional[Union[str, float]] = None
    category_id: Optional[str] = None
    is_active: Optional[bool] = None
    is_highlight: Optional[bool] = None
    has_offer: Optional[bool] = None
    order: Optional[int] = None
    images: Optional[List[str]] = None


# Images
class BeforeAfterPair(CamelModel):
    before: str
    after: str


class ImageUpdate(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    service_id: Optional[str] = None
    display_service_name: Optional[str] = None
    display_service_category: Optional[str] = None
    tags: Optional[List[str]] = None
    is_active: Optional[bool] = None
    is_highlight: Optional[bool] = None
    order: Optional[int] = None
    before_after_pair: Optional[BeforeAfterPair] = None


# Reviews
class ReviewCreate(CamelModel):
    client_name: str = Field(min_length=1)
    client_email: Optional[str] = None
    rating: int
    comment: str = Field(min_length=1)


class ReviewReply(CamelModel):
    reply: str = Field(min_length=1)


# Availability
class AvailabilityDay(CamelModel):
    date: date


class AvailabilityRange(CamelModel):
    start_date: date
    end_date: date


class PublicHourCreate(CamelModel):
    availability_id: str
    hour: str
    is_available: bool = True


class PublicHourUpdate(CamelModel):
    hour: Optional[str] = None
    is_available: Optional[bool] = None


class PublicHoursMultiple(CamelModel):
    date: date
    hours: List[str]


# Notifications
class WhatsAppRequest(CamelModel):
    appointment_id: Optional[str] = None
    phone: Optional[str] = None
    message: Optional[str] = None
    # confirmation | reminder | cancellation
    kind: str = "confirmation"
    send: bool = False
