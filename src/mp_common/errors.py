"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth/User/Admin
  2xxx: Catalog (products, categories, reviews, sellers)
  3xxx: Order
  4xxx: Leads
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Auth/User/Admin ---

class EmailExistsError(AppError):
    def __init__(self) -> None:
        super().__init__(1002, "Email already exists", 409)


class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid email or password", 401)


class AccountDisabledError(AppError):
    def __init__(self) -> None:
        super().__init__(1004, "Account is disabled", 403)


class InvalidRefreshTokenError(AppError):
    def __init__(self) -> None:
        super().__init__(1005, "Refresh token is invalid or expired", 401)


class UserNotFoundError(AppError):
    def __init__(self, user_id: str) -> None:
        super().__init__(1006, f"User not found: {user_id}", 404)


class AdminAuthRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(1101, "Admin session required", 401)


class AdminConfigError(AppError):
    def __init__(self) -> None:
        super().__init__(1102, "Server configuration error", 500)


# --- 2xxx: Catalog ---

class ProductNotFoundError(AppError):
    def __init__(self, product_ref: str) -> None:
        super().__init__(2001, f"Product not found: {product_ref}", 404)


class CategoryNotFoundError(AppError):
    def __init__(self, category_ref: str) -> None:
        super().__init__(2002, f"Category not found: {category_ref}", 404)


class SellerProfileRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(2003, "Seller profile required", 403)


class SellerProfileExistsError(AppError):
    def __init__(self) -> None:
        super().__init__(2004, "Seller profile already exists", 409)


class SellerNotFoundError(AppError):
    def __init__(self, slug: str) -> None:
        super().__init__(2005, f"Seller not found: {slug}", 404)


class DuplicateReviewError(AppError):
    def __init__(self) -> None:
        super().__init__(2006, "You have already reviewed this product", 409)


class ReviewNotFoundError(AppError):
    def __init__(self, review_id: str) -> None:
        super().__init__(2007, f"Review not found: {review_id}", 404)


class CategoryInUseError(AppError):
    def __init__(self, category_id: str) -> None:
        super().__init__(2008, f"Category still has products: {category_id}", 409)


class SellerDisabledError(AppError):
    def __init__(self) -> None:
        super().__init__(2009, "Seller account is disabled", 403)


# --- 3xxx: Order ---

class OrderNotFoundError(AppError):
    def __init__(self, order_id: str) -> None:
        super().__init__(3001, f"Order not found: {order_id}", 404)


class InsufficientStockError(AppError):
    def __init__(self, product_id: str) -> None:
        super().__init__(3002, f"Insufficient stock for {product_id}", 409)
        self.product_id = product_id


class InvalidStatusTransitionError(AppError):
    def __init__(self, current: str, target: str) -> None:
        super().__init__(3003, f"Cannot move order from {current} to {target}", 409)


class OrderAccessDeniedError(AppError):
    def __init__(self) -> None:
        super().__init__(3004, "Not a seller on this order", 403)


# --- 4xxx: Leads ---

class InvalidLeadsPayloadError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4001, detail, 400)


# --- 9xxx: System ---

class RateLimitError(AppError):
    def __init__(self, message: str = "Too many requests") -> None:
        super().__init__(9001, message, 429)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class ValidationError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(9003, detail, 400)


class CsrfError(AppError):
    def __init__(self, detail: str = "Invalid CSRF token") -> None:
        super().__init__(9004, f"CSRF validation failed: {detail}", 403)
