"""
Utility helpers for role and ownership checks.
Keeps RBAC logic centralized so services and controllers stay lean.

Every check goes through ``is_allowed(actor, action, resource)``; the rules
table below is the single place that knows which role or relationship an
action needs.
"""
from flask_login import current_user

from campus_connect.utils.errors import UnauthorizedError

ALL_ROLES = ('student', 'faculty', 'hod', 'librarian', 'admin')
TEACHING_ROLES = ('faculty', 'hod')


def _has_role(actor, *roles):
    return bool(actor is not None and getattr(actor, 'role', None) in roles)


def _same_college(actor, resource):
    college_id = getattr(resource, 'college_id', None)
    return college_id is not None and getattr(actor, 'college_id', None) == college_id


def _is_college_hod(actor, resource):
    """HOD of the college the resource belongs to (or of the college itself)."""
    if not _has_role(actor, 'hod'):
        return False
    hod_id = getattr(resource, 'hod_id', None)
    if hod_id is not None:
        return hod_id == actor.user_id
    return _same_college(actor, resource)


def _owns_class(actor, resource):
    return resource is not None and getattr(resource, 'teacher_id', None) == actor.user_id


def _teaches_in_class(actor, resource):
    if resource is None:
        return False
    return _owns_class(actor, resource) or resource.is_assigned_faculty(actor.user_id)


RULES = {
    'college.create': lambda actor, resource: _has_role(actor, 'hod', 'admin'),
    'college.manage': lambda actor, resource: _has_role(actor, 'admin') or _is_college_hod(actor, resource),
    'room.manage': lambda actor, resource: _has_role(actor, 'admin') or _is_college_hod(actor, resource),
    'booking.create': lambda actor, resource: _has_role(actor, *ALL_ROLES),
    'booking.decide': lambda actor, resource: _has_role(actor, 'admin') or _is_college_hod(actor, resource),
    'booking.view': lambda actor, resource: (
        _has_role(actor, 'admin')
        or getattr(resource, 'requested_by', None) == actor.user_id
        or _is_college_hod(actor, resource)
    ),
    'class.create': lambda actor, resource: _has_role(actor, *TEACHING_ROLES),
    'class.manage': lambda actor, resource: _owns_class(actor, resource),
    'class.view': lambda actor, resource: _teaches_in_class(actor, resource),
    'class.join': lambda actor, resource: _has_role(actor, 'student'),
    'faculty.assign': lambda actor, resource: _teaches_in_class(actor, resource),
    'faculty.remove': lambda actor, resource: _owns_class(actor, resource),
}


def is_allowed(actor, action, resource=None):
    """
    Return True if ``actor`` may perform ``action`` on ``resource``.

    Args:
        actor: User model instance (None for anonymous callers)
        action: One of the keys of RULES, e.g. 'booking.decide'
        resource: Entity the action targets (College, Room, RoomBooking,
            CollegeClass) or None for actions without a target

    Returns:
        bool: True if the rule for the action grants access
    """
    if actor is None or getattr(actor, 'user_id', None) is None:
        return False
    rule = RULES.get(action)
    if rule is None:
        raise KeyError(f'Unknown action: {action}')
    return bool(rule(actor, resource))


def require(actor, action, resource=None, message=None):
    """Raise UnauthorizedError unless ``actor`` may perform ``action``."""
    if not is_allowed(actor, action, resource):
        raise UnauthorizedError(message or f'Unauthorized. You cannot perform {action}')


def user_has_role(*roles):
    """Return True if the current user has one of the supplied roles."""
    return bool(current_user.is_authenticated and current_user.role in roles)


def is_admin():
    """Convenience helper for admin checks."""
    return user_has_role('admin')


def current_user_can(action, resource=None):
    """Check an action for the user bound to the current request."""
    if not current_user.is_authenticated:
        return False
    return is_allowed(current_user, action, resource)
