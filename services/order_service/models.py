import enum

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from shared.config.database import Base


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class Order(Base):
    __tablename__ = "orders"

    order_id = Column(String(36), primary_key=True) # client-generated UUID
    user_id = Column(String(64), nullable=True, index=True) # null for guest checkout

    payment_status = Column(String(16), nullable=False, default=PaymentStatus.PENDING.value)
    order_status = Column(String(16), nullable=False, default="pending")
    payment_method = Column(String(32), nullable=False, default="credit_card")
    shipping_method = Column(String(32), nullable=False, default="standard")

    total_amount = Column(Numeric(12, 2), nullable=False) # fixed at creation
    shipping_address = Column(String(512), nullable=False)
    billing_address = Column(String(512), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(32), nullable=True)
    ffl_dealer = Column(JSON, nullable=True)

    payment_processor_response = Column(JSON, nullable=True) # absent until reconciled
    response_message = Column(String(512), nullable=True)

    order_date = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    items = relationship("OrderItem", back_populates="order", lazy="selectin", cascade="all, delete-orphan")


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String(36), ForeignKey("orders.order_id"), nullable=False, index=True)
    product_id = Column(String(64), nullable=False)
    quantity = Column(Integer, nullable=False)
    price_at_time_of_order = Column(Numeric(12, 2), nullable=False) # snapshot, never re-derived
    total_price = Column(Numeric(12, 2), nullable=False)
    options = Column(JSON, nullable=True) # caliber, color, size...

    order = relationship("Order", back_populates="items")
