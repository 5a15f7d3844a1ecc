import enum
import uuid
from sqlalchemy import (
    Column, String, Integer, Numeric, Boolean, DateTime, Date, Text, JSON,
    ForeignKey, UniqueConstraint, Enum as SQLEnum,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from salon_api.db.database import Base


def generate_uuid() -> str:
    return str(uuid.uuid4())


class Role(str, enum.Enum):
    ADMIN = "ADMIN"
    USER = "USER"


class AppointmentStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class ImageType(str, enum.Enum):
    GALLERY = "GALLERY"
    BEFORE_AFTER = "BEFORE_AFTER"
    SERVICE = "SERVICE"
    TEMP = "TEMP"


class TimestampMixin:
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(120), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password = Column(String(255), nullable=False)
    role = Column(SQLEnum(Role), default=Role.USER, nullable=False)

    refresh_tokens = relationship("RefreshToken", back_populates="user", cascade="all, delete-orphan")


class RefreshToken(Base):
    __tablename__ = "refresh_tokens"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    token = Column(String(512), unique=True, nullable=False)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    user = relationship("User", back_populates="refresh_tokens")


class Category(TimestampMixin, Base):
    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(120), unique=True, nullable=False)
    order = Column(Integer, default=0, nullable=False)

    services = relationship("Service", back_populates="category")


class Service(TimestampMixin, Base):
    __tablename__ = "services"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(160), nullable=False)
    description = Column(Text, nullable=False, default="")
    price = Column(Numeric(10, 2), nullable=False)
    offer_price = Column(Numeric(10, 2), nullable=True)
    # Minutes
    duration = Column(Integer, nullable=False, default=60)
    is_active = Column(Boolean, default=True, nullable=False)
    is_highlight = Column(Boolean, default=False, nullable=False)
    has_offer = Column(Boolean, default=False, nullable=False)
    order = Column(Integer, default=0, nullable=False)
    category_id = Column(String(36), ForeignKey("categories.id"), nullable=False)

    category = relationship("Category", back_populates="services")
    images = relationship("Image", back_populates="service", order_by="Image.order")
    appointments = relationship("Appointment", back_populates="service")

    @property
    def effective_price(self) -> float:
        if self.has_offer and self.offer_price is not None:
            return float(self.offer_price)
        return float(self.price)


class Image(TimestampMixin, Base):
    __tablename__ = "images"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    url = Column(String(1024), nullable=False)
    thumbnail_url = Column(String(1024), nullable=True)
    type = Column(SQLEnum(ImageType), default=ImageType.GALLERY, nullable=False)
    category = Column(String(120), nullable=True)
    title = Column(String(200), nullable=True)
    description = Column(Text, nullable=True)
    tags = Column(JSON, default=list)
    order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    is_highlight = Column(Boolean, default=False, nullable=False)
    service_id = Column(String(36), ForeignKey("services.id", ondelete="SET NULL"), nullable=True)
    before_after_pair = Column(JSON, nullable=True)
    is_after_image = Column(Boolean, nullable=True)
    before_image_id = Column(String(36), nullable=True)
    display_service_name = Column(String(160), nullable=True)
    display_service_category = Column(String(120), nullable=True)
    dimensions = Column(JSON, nullable=True)

    service = relationship("Service", back_populates="images")


class Appointment(TimestampMixin, Base):
    __tablename__ = "appointments"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    client_name = Column(String(160), nullable=False)
    client_phone = Column(String(40), nullable=False)
    client_email = Column(String(255), nullable=True)
    # Naive local time in the salon time zone
    date = Column(DateTime, nullable=False, index=True)
    status = Column(SQLEnum(AppointmentStatus), default=AppointmentStatus.PENDING, nullable=False)
    notes = Column(Text, nullable=True)
    service_id = Column(String(36), ForeignKey("services.id"), nullable=False)

    service = relationship("Service", back_populates="appointments")


class Review(TimestampMixin, Base):
    __tablename__ = "reviews"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    client_name = Column(String(160), nullable=False)
    client_email = Column(String(255), nullable=True)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=False)
    is_approved = Column(Boolean, default=False, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    reply = Column(Text, nullable=True)
    reply_date = Column(DateTime, nullable=True)


class Availability(TimestampMixin, Base):
    __tablename__ = "availability"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    date = Column(Date, unique=True, nullable=False, index=True)
    is_available = Column(Boolean, default=True, nullable=False)

    public_hours = relationship("PublicHour", back_populates="availability", cascade="all, delete-orphan")


class PublicHour(TimestampMixin, Base):
    __tablename__ = "public_hours"
    __table_args__ = (UniqueConstraint("availability_id", "hour", name="uq_public_hour_day"),)

    id = Column(String(36), primary_key=True, default=generate_uuid)
    availability_id = Column(String(36), ForeignKey("availability.id", ondelete="CASCADE"), nullable=False)
    hour = Column(String(5), nullable=False)
    is_available = Column(Boolean, default=True, nullable=False)

    availability = relationship("Availability", back_populates="public_hours")
