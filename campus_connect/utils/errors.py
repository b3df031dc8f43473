"""
Error types raised by the service layer.

Every error carries the HTTP status and a machine readable code so the API
layer can serialise it without inspecting messages:

    from campus_connect.utils.errors import NotFoundError

    if not room:
        raise NotFoundError('Room', room_id)
"""
from typing import Any, Dict, Optional


class CampusConnectError(Exception):
    """Base exception for all Campus Connect errors"""

    status_code = 500

    def __init__(self, message: str, code: str = 'INTERNAL_ERROR',
                 details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'code': self.code,
            'message': self.message,
            'details': self.details
        }


# ============================================
# Input errors (400)
# ============================================

class ValidationError(CampusConnectError):
    """Submitted data failed validation"""

    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code='VALIDATION_ERROR', details=details)


class InvalidIdError(CampusConnectError):
    """A malformed identifier was supplied to a lookup"""

    status_code = 400

    def __init__(self, entity: str, value: Any):
        super().__init__(
            f'Invalid {entity.lower()} ID',
            code='INVALID_ID',
            details={'entity': entity, 'value': str(value)}
        )


# ============================================
# Missing entities (404)
# ============================================

class NotFoundError(CampusConnectError):
    """Referenced entity does not exist"""

    status_code = 404

    def __init__(self, entity: str, entity_id: Any = None, message: Optional[str] = None):
        super().__init__(
            message or f'{entity} not found',
            code=f"{entity.upper().replace(' ', '_')}_NOT_FOUND",
            details={'entity': entity, 'id': entity_id}
        )


# ============================================
# Authorization errors (403)
# ============================================

class UnauthorizedError(CampusConnectError):
    """Caller lacks the role or relationship the operation requires"""

    status_code = 403

    def __init__(self, message: str = 'Not authorized', code: str = 'UNAUTHORIZED'):
        super().__init__(message, code=code)


class ForbiddenError(UnauthorizedError):
    """Caller tried to act on a record owned by someone else"""

    def __init__(self, message: str = 'Forbidden'):
        super().__init__(message, code='FORBIDDEN')


# ============================================
# State errors (409)
# ============================================

class ConflictError(CampusConnectError):
    """Current state precludes the requested transition"""

    status_code = 409

    def __init__(self, message: str, code: str = 'CONFLICT',
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=code, details=details)


class DuplicateRequestError(ConflictError):
    """Student is already waiting in the join queue"""

    def __init__(self, message: str = 'You have already requested to join this class. Please wait for approval.'):
        super().__init__(message, code='DUPLICATE_REQUEST')


class AlreadyEnrolledError(ConflictError):
    """Student already holds a resolved membership entry for the class"""

    MESSAGES = {
        'pending': ('ENROLLMENT_PENDING',
                    'You have already requested to join this class. Please wait for approval.'),
        'approved': ('ALREADY_ENROLLED', 'You are already enrolled in this class.'),
        'rejected': ('ENROLLMENT_REJECTED',
                     'Your previous request was rejected. Please contact your teacher.'),
    }

    def __init__(self, status: str):
        code, message = self.MESSAGES.get(status, ('ALREADY_ENROLLED', 'You are already enrolled in this class.'))
        super().__init__(message, code=code, details={'status': status})
        self.status = status


class DuplicateAssignmentError(ConflictError):
    """Faculty member already teaches the subject in this class"""

    def __init__(self, subject: str):
        super().__init__(
            f'Faculty is already assigned to teach {subject} in this class',
            code='DUPLICATE_ASSIGNMENT',
            details={'subject': subject}
        )


class NotInQueueError(ConflictError):
    """A decision was requested for someone who is not waiting for one"""

    def __init__(self, message: str = 'Student has no pending request for this class'):
        super().__init__(message, code='NOT_IN_QUEUE')


class InvalidStateError(CampusConnectError):
    """Entity is in a terminal or incompatible state"""

    status_code = 409

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code='INVALID_STATE', details=details)
