class CustomerOrdersError(Exception):
    """Base error. ``kind`` is the stable name reported in flow results."""
    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CustomerOrdersError):
    """Malformed or missing input, detected before any store call."""
    kind = "validation"


class NotFound(CustomerOrdersError):
    kind = "not_found"


class ConstraintViolation(CustomerOrdersError):
    """Duplicate email or another rejected row."""
    kind = "constraint_violation"


class StoreUnavailable(CustomerOrdersError):
    """Connection or IO failure; fatal to the current operation only."""
    kind = "store_unavailable"
