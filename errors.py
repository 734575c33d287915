"""
Domain errors raised by the store services.

Each error carries the HTTP status the API answers with; the route layer
renders them as ``{"detail": message}``.
"""


class StoreError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(StoreError):
    status_code = 404

    def __init__(self, entity: str):
        super().__init__(f"{entity} not found")
        self.entity = entity


class InsufficientStockError(StoreError):
    def __init__(self, product_name: str):
        super().__init__(f"Insufficient stock for product: {product_name}")
        self.product_name = product_name


class DuplicateEmailError(StoreError):
    def __init__(self, email: str):
        super().__init__("Email already in use")
        self.email = email


class InvalidReferenceError(StoreError):
    pass
