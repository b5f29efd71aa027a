"""Custom exceptions for the POS billing application."""


class BillingError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        return rv


class ValidationError(BillingError):
    """Raised for malformed requests: empty cart, bad quantity, missing fields."""
    def __init__(self, message, payload=None):
        super().__init__(message, 400, payload)


class NotFoundError(BillingError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)


class InsufficientStockError(BillingError):
    """Raised when the requested quantity exceeds available inventory."""
    def __init__(self, product_name, requested, available):
        self.product_name = product_name
        self.requested = requested
        self.available = available
        message = (
            f"Product '{product_name}' is not available in required quantity in inventory "
            f"(requested {requested}, available {available})"
        )
        super().__init__(message, status_code=400, payload={'product': product_name})


class PersistenceError(BillingError):
    """Raised when the bill could not be written; the transaction was rolled back."""
    def __init__(self, message="Could not persist bill"):
        super().__init__(message, 500)


class DeliveryError(BillingError):
    """Raised when rendering or sending an invoice fails."""
    def __init__(self, message="Failed to send invoice email"):
        super().__init__(message, 502)
