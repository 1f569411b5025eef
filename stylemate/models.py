import uuid

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_public_id():
    """Generate a unique public ID"""
    return str(uuid.uuid4())


class Salon(Base):
    __tablename__ = "salons"

    id = Column(String(36), primary_key=True, default=generate_public_id)
    name = Column(String(255), nullable=False)
    opening_time = Column(String(5), nullable=True)  # HH:MM, falls back to DEFAULT_OPENING_TIME
    closing_time = Column(String(5), nullable=True)  # HH:MM, falls back to DEFAULT_CLOSING_TIME
    slot_interval_minutes = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    services = relationship("Service", back_populates="salon")
    staff = relationship("Staff", back_populates="salon")


class Service(Base):
    __tablename__ = "services"

    id = Column(String(36), primary_key=True, default=generate_public_id)
    salon_id = Column(String(36), ForeignKey("salons.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    duration_minutes = Column(Integer, nullable=False, default=30)
    price_in_paisa = Column(Integer, nullable=False, default=0)

    salon = relationship("Salon", back_populates="services")


class Staff(Base):
    __tablename__ = "staff"

    id = Column(String(36), primary_key=True, default=generate_public_id)
    salon_id = Column(String(36), ForeignKey("salons.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    salon = relationship("Salon", back_populates="staff")


class Customer(Base):
    __tablename__ = "customers"

    id = Column(String(36), primary_key=True, default=generate_public_id)
    full_name = Column(String(255), nullable=True)
    email = Column(String(255), unique=True, index=True, nullable=True)
    phone = Column(String(50), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(String(36), primary_key=True, default=generate_public_id)
    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=False, index=True)
    salon_id = Column(String(36), ForeignKey("salons.id"), nullable=False, index=True)
    service_id = Column(String(36), ForeignKey("services.id"), nullable=False)
    staff_id = Column(String(36), ForeignKey("staff.id"), nullable=True)
    booking_date = Column(Date, nullable=False, index=True)
    booking_time = Column(String(5), nullable=False)  # HH:MM 24-hour
    duration_minutes = Column(Integer, nullable=False)
    status = Column(String(20), default="confirmed", nullable=False)  # pending, confirmed, cancelled, completed
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    salon = relationship("Salon")
    service = relationship("Service")
    staff = relationship("Staff")


class Product(Base):
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=generate_public_id)
    salon_id = Column(String(36), ForeignKey("salons.id"), nullable=True, index=True)
    name = Column(String(255), nullable=False)
    primary_image = Column(String(500), nullable=True)
    retail_price_in_paisa = Column(Integer, nullable=False)
    stock = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    salon = relationship("Salon")
    variants = relationship("ProductVariant", back_populates="product")


class ProductVariant(Base):
    __tablename__ = "product_variants"

    id = Column(String(36), primary_key=True, default=generate_public_id)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False, index=True)
    value = Column(String(100), nullable=False)  # e.g. "250 ml"
    stock = Column(Integer, default=0, nullable=False)

    product = relationship("Product", back_populates="variants")


class Coupon(Base):
    __tablename__ = "coupons"

    id = Column(String(36), primary_key=True, default=generate_public_id)
    code = Column(String(50), unique=True, index=True, nullable=False)  # stored uppercase
    discount_percent = Column(Integer, nullable=True)
    discount_in_paisa = Column(Integer, nullable=True)
    min_subtotal_in_paisa = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    expires_at = Column(DateTime, nullable=True)


class Cart(Base):
    __tablename__ = "carts"

    id = Column(String(36), primary_key=True, default=generate_public_id)
    customer_id = Column(String(36), ForeignKey("customers.id"), unique=True, nullable=False)
    coupon_code = Column(String(50), nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    items = relationship(
        "CartItem", back_populates="cart", cascade="all, delete-orphan", order_by="CartItem.created_at"
    )


class CartItem(Base):
    __tablename__ = "cart_items"
    __table_args__ = (UniqueConstraint("cart_id", "product_id", "variant_id", name="uq_cart_product_variant"),)

    id = Column(String(36), primary_key=True, default=generate_public_id)
    cart_id = Column(String(36), ForeignKey("carts.id"), nullable=False, index=True)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False)
    variant_id = Column(String(36), ForeignKey("product_variants.id"), nullable=True)
    quantity = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    cart = relationship("Cart", back_populates="items")
    product = relationship("Product")
    variant = relationship("ProductVariant")
