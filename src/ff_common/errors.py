"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth/User
  3xxx: Pricing
  4xxx: Order
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


# --- 1xxx: Auth/User ---

class UserNotFoundError(AppError):
    def __init__(self, discord_id: str) -> None:
        super().__init__(1001, f"User not found: {discord_id}", 404)


class ProfileIncompleteError(AppError):
    def __init__(self) -> None:
        super().__init__(1002, "Set your in-game name before trading", 403)


class AdminRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Admin access required", 403)


class InvalidAdminPasswordError(AppError):
    def __init__(self) -> None:
        super().__init__(1004, "Invalid password", 401)


class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1005, "Invalid or expired credentials", 401)


class OAuthExchangeError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(1006, f"Discord sign-in failed: {detail}", 502)


class InvalidProfileError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(1007, detail, 400)


# --- 3xxx: Pricing ---

class PricingNotFoundError(AppError):
    def __init__(self, item_name: str, tier: int) -> None:
        super().__init__(3001, f"No reference price for {item_name} T{tier}", 404)


class InvalidPricingDataError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3002, f"Invalid pricing data: {detail}", 400)


# --- 4xxx: Order ---

class InvalidOrderInputError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4001, detail, 400)


class OrderNotFoundError(AppError):
    def __init__(self, order_id: str) -> None:
        super().__init__(4004, f"Order not found: {order_id}", 404)


class OrderForbiddenError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4010, detail, 403)


class InvalidOrderStateError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4020, detail, 400)


class OrderConflictError(AppError):
    def __init__(self, order_id: str) -> None:
        super().__init__(
            4021, f"Order {order_id} was modified by another request, refresh and retry", 409
        )


# --- 9xxx: System ---

class RequestValidationFailed(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(9001, detail, 400)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
