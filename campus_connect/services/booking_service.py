"""
Booking workflow: create, decide and cancel room bookings.

State machine::

    pending -> approved | rejected | canceled
    approved -> canceled

rejected and canceled are terminal.
"""
from __future__ import annotations

import math
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from campus_connect.data_access import get_db
from campus_connect.data_access.booking_dal import BookingDAL
from campus_connect.data_access.college_dal import CollegeDAL
from campus_connect.data_access.room_dal import RoomDAL
from campus_connect.models.models import RoomBooking
from campus_connect.services import get_logger, get_setting, load_user
from campus_connect.services.room_service import RoomService
from campus_connect.utils.errors import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from campus_connect.utils.permissions import is_allowed, require
from campus_connect.utils.validators import Validator

BOOKING_STATUSES = ('pending', 'approved', 'rejected', 'canceled')
DECISION_STATUSES = ('approved', 'rejected')
UNCANCELABLE_STATUSES = ('canceled', 'rejected')


class BookingService:
    """Room booking workflow."""

    def __init__(self, room_service: Optional[RoomService] = None) -> None:
        self.room_service = room_service or RoomService()
        self.logger = get_logger(__name__)

    # Writes ------------------------------------------------------------------

    def create_booking(self, booking_input: Dict, user_id) -> RoomBooking:
        """
        Create a pending booking for ``user_id``.

        The availability check and the insert run in one IMMEDIATE
        transaction, so two requests racing for the same slot cannot both
        pass the check.

        Raises:
            NotFoundError: room or requester does not exist
            ValidationError: bad date/time, inactive room or too many attendees
            ConflictError: the slot overlaps a pending or approved booking
        """
        user_id = Validator.validate_id(user_id, 'User')
        room_id = Validator.validate_id(booking_input.get('room_id'), 'Room')
        booking_date = Validator.normalize_date(booking_input.get('date'))
        start_time = booking_input.get('start_time')
        end_time = booking_input.get('end_time')
        Validator.validate_time_range(start_time, end_time)

        title = (booking_input.get('title') or '').strip()
        valid, message = Validator.validate_string(title, 1, 200, 'Title')
        if not valid:
            raise ValidationError(message, details={'field': 'title'})
        purpose = (booking_input.get('purpose') or 'meeting').strip()
        valid, attendees = Validator.validate_integer(booking_input.get('attendees') or 1, 1, None, 'Attendees')
        if not valid:
            raise ValidationError(attendees, details={'field': 'attendees'})
        notes = Validator.sanitize_html(booking_input.get('additional_notes')) or None

        with get_db(immediate=True) as conn:
            requester = load_user(user_id, conn=conn)
            room = RoomDAL.get_room_by_id(room_id, conn=conn)
            if not room:
                raise NotFoundError('Room', room_id)
            if not room.is_active:
                raise ValidationError('Room is not available for booking', details={'room_id': room_id})
            if attendees > room.capacity:
                raise ValidationError(
                    f'Attendees exceed room capacity of {room.capacity}',
                    details={'capacity': room.capacity, 'attendees': attendees}
                )
            require(requester, 'booking.create', room)

            availability = self.room_service.check_availability(
                room_id, booking_date, start_time, end_time, conn=conn)
            if not availability['is_available']:
                conflicts = availability['conflicting_bookings']
                raise ConflictError(
                    'Room is not available for the selected time slot',
                    code='ROOM_UNAVAILABLE',
                    details={'conflicting_bookings': [b.booking_id for b in conflicts]}
                )

            booking = BookingDAL.create_booking(
                room_id=room_id,
                college_id=room.college_id,
                requested_by=user_id,
                title=title,
                purpose=purpose,
                booking_date=booking_date,
                start_time=start_time,
                end_time=end_time,
                attendees=attendees,
                additional_notes=notes,
                status='pending',
                conn=conn
            )

        self.logger.info('Booking %s created for room %s on %s %s-%s by user %s',
                         booking.booking_id, room_id, booking_date, start_time, end_time, user_id)
        return booking

    def update_booking_status(self, booking_id, status: str, approver_id=None,
                              rejection_reason: Optional[str] = None) -> RoomBooking:
        """
        Approve or reject a pending booking.

        Approval records the approver and timestamp and, unless
        REVALIDATE_ON_APPROVAL is off, re-checks the slot against other
        approved bookings. Rejection records the reason.
        """
        booking_id = Validator.validate_id(booking_id, 'Booking')
        if status not in DECISION_STATUSES:
            raise ValidationError(
                f"Status must be one of: {', '.join(DECISION_STATUSES)}",
                details={'status': status}
            )

        with get_db(immediate=True) as conn:
            booking = BookingDAL.get_booking_by_id(booking_id, conn=conn)
            if not booking:
                raise NotFoundError('Booking', booking_id)

            approver = None
            if approver_id is not None:
                approver = load_user(approver_id, 'Approver', conn=conn)
                college = CollegeDAL.get_college_by_id(booking.college_id, conn=conn)
                require(approver, 'booking.decide', college or booking,
                        'Unauthorized. Only the college HOD or an admin can approve bookings')

            if booking.status != 'pending':
                raise InvalidStateError(
                    f'Booking is already {booking.status}',
                    details={'status': booking.status}
                )

            if status == 'approved':
                if get_setting('REVALIDATE_ON_APPROVAL', True):
                    clashes = BookingDAL.find_conflicts(
                        booking.room_id, booking.booking_date, booking.start_time, booking.end_time,
                        statuses=('approved',), exclude_booking_id=booking_id, conn=conn
                    )
                    if clashes:
                        raise ConflictError(
                            'Another approved booking already holds this time slot',
                            code='ROOM_UNAVAILABLE',
                            details={'conflicting_bookings': [b.booking_id for b in clashes]}
                        )
                updated = BookingDAL.update_booking(
                    booking_id,
                    status='approved',
                    approved_by=approver.user_id if approver else None,
                    approved_at=datetime.now().isoformat(timespec='seconds'),
                    conn=conn
                )
            else:
                updated = BookingDAL.update_booking(
                    booking_id,
                    status='rejected',
                    rejection_reason=(rejection_reason or '').strip() or None,
                    conn=conn
                )

        self.logger.info('Booking %s %s by user %s', booking_id, status,
                         approver.user_id if approver else 'system')
        return updated

    def cancel_booking(self, booking_id, user_id) -> RoomBooking:
        """Cancel a booking on behalf of the user who requested it."""
        booking_id = Validator.validate_id(booking_id, 'Booking')
        user_id = Validator.validate_id(user_id, 'User')

        with get_db(immediate=True) as conn:
            booking = BookingDAL.get_booking_by_id(booking_id, conn=conn)
            if not booking:
                raise NotFoundError('Booking', booking_id)
            if booking.requested_by != user_id:
                raise ForbiddenError('You are not authorized to cancel this booking')
            if booking.status in UNCANCELABLE_STATUSES:
                raise InvalidStateError(
                    f'Booking is already {booking.status}',
                    details={'status': booking.status}
                )
            updated = BookingDAL.update_booking(booking_id, status='canceled', conn=conn)

        self.logger.info('Booking %s canceled by user %s', booking_id, user_id)
        return updated

    # Reads -------------------------------------------------------------------

    def get_booking(self, booking_id, viewer_id=None) -> RoomBooking:
        booking_id = Validator.validate_id(booking_id, 'Booking')
        booking = BookingDAL.get_booking_by_id(booking_id)
        if not booking:
            raise NotFoundError('Booking', booking_id)
        if viewer_id is not None:
            viewer = load_user(viewer_id)
            college = CollegeDAL.get_college_by_id(booking.college_id)
            if not (is_allowed(viewer, 'booking.view', booking)
                    or is_allowed(viewer, 'booking.decide', college)):
                raise ForbiddenError('You are not authorized to view this booking')
        return booking

    def list_for_room(self, room_id, date_from=None, date_to=None,
                      statuses: Iterable[str] = ('approved',)) -> List[RoomBooking]:
        """Bookings for a room from ``date_from`` (default today) up to ``date_to``."""
        room_id = Validator.validate_id(room_id, 'Room')
        filters = {
            'room_id': room_id,
            'date_from': Validator.normalize_date(date_from or datetime.now().date(), 'Start date'),
            'statuses': self._clean_statuses(statuses),
        }
        if date_to:
            filters['date_to'] = Validator.normalize_date(date_to, 'End date')
        return BookingDAL.find_bookings(filters)

    def get_bookings(self, filters: Optional[Dict] = None, page=1, limit=None) -> Dict:
        """
        Paginated booking search, most recent first.

        Returns:
            dict: ``bookings``, ``total``, ``page`` and ``total_pages``
        """
        query = self._clean_filters(filters or {})
        limit = limit or get_setting('BOOKINGS_PER_PAGE', 10)
        valid, page = Validator.validate_integer(page, 1, None, 'Page')
        if not valid:
            raise ValidationError(page, details={'field': 'page'})
        valid, limit = Validator.validate_integer(limit, 1, 100, 'Limit')
        if not valid:
            raise ValidationError(limit, details={'field': 'limit'})

        total = BookingDAL.count_bookings(query)
        bookings = BookingDAL.find_bookings(query, limit=limit, offset=(page - 1) * limit,
                                            newest_first=True)
        return {
            'bookings': bookings,
            'total': total,
            'page': page,
            'total_pages': math.ceil(total / limit) if total else 0
        }

    def get_user_bookings(self, user_id, status: Optional[str] = None, page=1, limit=None) -> Dict:
        user_id = Validator.validate_id(user_id, 'User')
        filters = {'requested_by': user_id}
        if status:
            filters['status'] = status
        return self.get_bookings(filters, page=page, limit=limit)

    def get_bookings_by_date_range(self, start_date, end_date, room_id=None,
                                   statuses: Iterable[str] = ('approved', 'pending')) -> List[RoomBooking]:
        date_from = Validator.normalize_date(start_date, 'Start date')
        date_to = Validator.normalize_date(end_date, 'End date')
        if date_to < date_from:
            raise ValidationError('End date must not be before start date',
                                  details={'start_date': date_from, 'end_date': date_to})
        filters = {'date_from': date_from, 'date_to': date_to,
                   'statuses': self._clean_statuses(statuses)}
        if room_id is not None:
            filters['room_id'] = Validator.validate_id(room_id, 'Room')
        return BookingDAL.find_bookings(filters)

    # Helpers -----------------------------------------------------------------

    @staticmethod
    def _clean_statuses(statuses):
        if isinstance(statuses, str):
            statuses = [statuses]
        cleaned = tuple(statuses or ())
        for status in cleaned:
            valid, message = Validator.validate_status(status, BOOKING_STATUSES)
            if not valid:
                raise ValidationError(message, details={'status': status})
        return cleaned

    def _clean_filters(self, filters: Dict) -> Dict:
        query = {}
        for key, entity in (('room_id', 'Room'), ('requested_by', 'User'), ('college_id', 'College')):
            if filters.get(key) not in (None, ''):
                query[key] = Validator.validate_id(filters[key], entity)
        if filters.get('status'):
            query['statuses'] = self._clean_statuses(filters['status'])
        elif filters.get('statuses'):
            query['statuses'] = self._clean_statuses(filters['statuses'])
        for key, label in (('date', 'Date'), ('date_from', 'Start date'), ('date_to', 'End date')):
            if filters.get(key):
                query[key] = Validator.normalize_date(filters[key], label)
        return query
