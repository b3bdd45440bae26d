"""
Error taxonomy for the storefront API.

Every failure the handlers raise on purpose derives from StoreError and
carries the HTTP status it maps to. main.py renders them as
{success: false, statusCode, message}.
"""


class StoreError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(StoreError):
    status_code = 404


class ValidationError(StoreError):
    status_code = 400


class InsufficientStockError(StoreError):
    status_code = 400

    def __init__(self, product_name: str, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for {product_name}: {available} available, {requested} requested"
        )
        self.product_name = product_name
        self.available = available
        self.requested = requested


class UpstreamServiceError(StoreError):
    status_code = 502


class DatabaseUnavailableError(StoreError):
    status_code = 500

    def __init__(self, message: str = "Database not available"):
        super().__init__(message)
