"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    RETURNED = "RETURNED"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"


class AccountType(str, Enum):
    """Seller account classification used by the admin product filter."""
    ENTERPRISE = "enterprise"
    INDIVIDUAL = "individual"


class MessageTarget(str, Enum):
    SELLER = "seller"
    VIDYUT = "vidyut"


class AuthorRole(str, Enum):
    BUYER = "buyer"
    SELLER = "seller"
    VIDYUT = "vidyut"
    ADMIN = "admin"
