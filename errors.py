"""
Error taxonomy for the pledge ledger and dues reconciler
"""


class PortalError(Exception):
    """Base error; carries the HTTP status used when it reaches a route"""
    status_code = 400
    code = 'portal_error'

    def __init__(self, message=None, **details):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__
        self.details = details

    def to_dict(self):
        payload = {'success': False, 'error': self.code, 'message': self.message}
        payload.update(self.details)
        return payload


class InvalidQuantity(PortalError):
    """Quantity must be a positive number"""
    code = 'invalid_quantity'


class InvalidAmount(PortalError):
    """Amount must be a positive number"""
    code = 'invalid_amount'


class QuotaExceeded(PortalError):
    """Pledge exceeds the remaining quantity for this item"""
    status_code = 409
    code = 'quota_exceeded'

    def __init__(self, remaining, message=None):
        super().__init__(message or f'Only {remaining:g} remaining for this item.', remaining=remaining)
        self.remaining = remaining


class InvalidPeriod(PortalError):
    """Month must be between 1 and 12"""
    code = 'invalid_period'


class InvalidTransition(PortalError):
    """Payment is not pending approval"""
    status_code = 409
    code = 'invalid_transition'


class NotFound(PortalError):
    """Record not found"""
    status_code = 404
    code = 'not_found'


class StoreError(PortalError):
    """The data store could not complete the request. Please try again."""
    status_code = 503
    code = 'store_error'
