class ParkShareException(Exception):
    """Base exception for the application"""
    status_code = 500
    code = "error"

    def __init__(self, detail: str = ""):
        super().__init__(detail or self.__class__.__doc__)
        self.detail = detail or self.__class__.__doc__


class AuthenticationError(ParkShareException):
    """Missing or invalid credentials"""
    status_code = 401
    code = "authentication_error"


class ValidationError(ParkShareException):
    """Malformed input"""
    status_code = 400
    code = "validation_error"


class NotAuthorized(ParkShareException):
    """Actor lacks the role or relationship required for the action"""
    status_code = 403
    code = "not_authorized"


class NotFoundError(ParkShareException):
    """Referenced entity does not exist"""
    status_code = 404
    code = "not_found"


class InvalidState(ParkShareException):
    """Transition is not allowed from the current state"""
    status_code = 409
    code = "invalid_state"


class NotAvailable(ParkShareException):
    """Listing is not bookable right now"""
    status_code = 409
    code = "not_available"


class InThePast(ParkShareException):
    """Requested start time has already passed"""
    status_code = 400
    code = "in_the_past"


class DuplicateRequest(ParkShareException):
    """An active request already exists"""
    status_code = 409
    code = "duplicate_request"


class AlreadyMember(ParkShareException):
    """User is already an accepted member of the group"""
    status_code = 409
    code = "already_member"


class StorageError(ParkShareException):
    """Photo storage collaborator failed"""
    status_code = 502
    code = "storage_error"


class GeocodingError(ParkShareException):
    """Geocoding collaborator failed"""
    status_code = 502
    code = "geocoding_error"
