"""
Room service: room administration and the availability checker.
"""
from __future__ import annotations

from typing import Dict, List

from campus_connect.data_access import use_connection
from campus_connect.data_access.booking_dal import ACTIVE_STATUSES, BookingDAL
from campus_connect.data_access.college_dal import CollegeDAL
from campus_connect.data_access.room_dal import RoomDAL
from campus_connect.models.models import Room
from campus_connect.services import get_logger, get_setting, load_user
from campus_connect.utils.errors import ConflictError, NotFoundError, ValidationError
from campus_connect.utils.permissions import require
from campus_connect.utils.validators import Validator

ROOM_TYPES = ('classroom', 'laboratory', 'conference', 'auditorium', 'other')


class RoomService:
    """Rooms, availability checks and the daily time-slot grid."""

    def __init__(self) -> None:
        self.logger = get_logger(__name__)

    # Availability ------------------------------------------------------------

    def check_availability(self, room_id, date, start_time: str, end_time: str,
                           exclude_booking_id=None, conn=None) -> Dict:
        """
        Report whether ``room_id`` is free on ``date`` for [start_time, end_time).

        Only pending and approved bookings block a slot; touching endpoints
        (10:00-11:00 after 09:00-10:00) do not conflict. Read-only.

        Returns:
            dict: ``is_available`` and the list of ``conflicting_bookings``
        """
        room_id = Validator.validate_id(room_id, 'Room')
        booking_date = Validator.normalize_date(date)
        Validator.validate_time_range(start_time, end_time)

        with use_connection(conn) as db:
            if not RoomDAL.get_room_by_id(room_id, conn=db):
                raise NotFoundError('Room', room_id)
            conflicts = BookingDAL.find_conflicts(
                room_id, booking_date, start_time, end_time,
                statuses=ACTIVE_STATUSES,
                exclude_booking_id=exclude_booking_id,
                conn=db
            )

        if conflicts:
            self.logger.debug('Room %s busy on %s %s-%s (%d conflicts)',
                              room_id, booking_date, start_time, end_time, len(conflicts))
        return {
            'is_available': not conflicts,
            'conflicting_bookings': conflicts
        }

    def get_available_time_slots(self, room_id, date) -> List[Dict]:
        """
        Lay the configured booking day out as fixed slots and mark every slot
        that intersects a pending or approved booking as unavailable.
        """
        room_id = Validator.validate_id(room_id, 'Room')
        booking_date = Validator.normalize_date(date)
        if not RoomDAL.get_room_by_id(room_id):
            raise NotFoundError('Room', room_id)

        bookings = BookingDAL.get_bookings_for_room_on_date(room_id, booking_date)
        slots = []
        for start_time, end_time in self._slot_grid():
            slots.append({
                'time': f'{start_time} - {end_time}',
                'start_time': start_time,
                'end_time': end_time,
                'is_available': not any(b.overlaps(start_time, end_time) for b in bookings)
            })
        return slots

    @staticmethod
    def _slot_grid():
        day_start = get_setting('BOOKING_DAY_START_HOUR', 8) * 60
        day_end = get_setting('BOOKING_DAY_END_HOUR', 17) * 60
        step = get_setting('BOOKING_SLOT_MINUTES', 60)
        minute = day_start
        while minute + step <= day_end:
            yield _fmt(minute), _fmt(minute + step)
            minute += step

    # Room administration -----------------------------------------------------

    def get_room(self, room_id) -> Room:
        room_id = Validator.validate_id(room_id, 'Room')
        room = RoomDAL.get_room_by_id(room_id)
        if not room:
            raise NotFoundError('Room', room_id)
        return room

    def list_rooms(self, college_id=None, active_only=False) -> List[Room]:
        if college_id is not None:
            college_id = Validator.validate_id(college_id, 'College')
        return RoomDAL.get_rooms(college_id=college_id, active_only=active_only)

    def create_room(self, data: Dict, created_by) -> Room:
        """Create a room in the creator's college (or ``data['college_id']`` for admins)."""
        actor = load_user(created_by)
        college_id = data.get('college_id') or actor.college_id
        if college_id in (None, ''):
            # No college to check against: only admins get past the rule
            require(actor, 'room.manage', message='Unauthorized. Only the college HOD or an admin can manage rooms')
            raise ValidationError('College is required', details={'field': 'college_id'})
        college_id = Validator.validate_id(college_id, 'College')
        college = CollegeDAL.get_college_by_id(college_id)
        if not college:
            raise NotFoundError('College', college_id)
        require(actor, 'room.manage', college,
                'Unauthorized. Only the college HOD or an admin can manage rooms')

        fields = self._clean_room_fields(data, partial=False)
        room = RoomDAL.create_room(college_id=college_id, **fields)
        self.logger.info('Room %s created in college %s by user %s',
                         room.room_id, college_id, actor.user_id)
        return room

    def update_room(self, room_id, data: Dict, updated_by) -> Room:
        room = self.get_room(room_id)
        actor = load_user(updated_by)
        require(actor, 'room.manage', self._college_of(room),
                'Unauthorized. Only the college HOD or an admin can manage rooms')
        fields = self._clean_room_fields(data, partial=True)
        updated = RoomDAL.update_room(room.room_id, **fields)
        self.logger.info('Room %s updated by user %s', room.room_id, actor.user_id)
        return updated

    def delete_room(self, room_id, deleted_by) -> bool:
        """Delete a room; refused while pending or approved bookings reference it."""
        room = self.get_room(room_id)
        actor = load_user(deleted_by)
        require(actor, 'room.manage', self._college_of(room),
                'Unauthorized. Only the college HOD or an admin can manage rooms')

        with use_connection() as db:
            active = BookingDAL.count_bookings(
                {'room_id': room.room_id, 'statuses': ACTIVE_STATUSES}, conn=db)
            if active:
                raise ConflictError(
                    'Room has active bookings and cannot be deleted',
                    code='ROOM_IN_USE',
                    details={'active_bookings': active}
                )
            RoomDAL.delete_room(room.room_id, conn=db)
        self.logger.info('Room %s deleted by user %s', room.room_id, actor.user_id)
        return True

    # Helpers -----------------------------------------------------------------

    @staticmethod
    def _college_of(room):
        college = CollegeDAL.get_college_by_id(room.college_id)
        if not college:
            raise NotFoundError('College', room.college_id)
        return college

    @staticmethod
    def _clean_room_fields(data: Dict, partial: bool) -> Dict:
        fields = {}
        errors = {}

        for key in ('name', 'building'):
            if key in data or not partial:
                valid, message = Validator.validate_string(data.get(key), 1, 120, key.capitalize())
                if valid:
                    fields[key] = data[key].strip()
                else:
                    errors[key] = message

        for key, minimum in (('floor', None), ('capacity', 1)):
            if key in data or not partial:
                valid, result = Validator.validate_integer(data.get(key), minimum, 100000, key.capitalize())
                if valid:
                    fields[key] = result
                else:
                    errors[key] = result

        room_type = data.get('room_type')
        if room_type is not None or not partial:
            room_type = room_type or 'classroom'
            if room_type not in ROOM_TYPES:
                errors['room_type'] = f"Room type must be one of: {', '.join(ROOM_TYPES)}"
            else:
                fields['room_type'] = room_type
                other_type = (data.get('other_type') or '').strip() or None
                if room_type == 'other' and not other_type:
                    errors['other_type'] = 'Please describe the room type'
                fields['other_type'] = other_type if room_type == 'other' else None

        if 'facilities' in data:
            facilities = data.get('facilities') or []
            if isinstance(facilities, str):
                facilities = facilities.split(',')
            fields['facilities'] = [f.strip() for f in facilities if f and f.strip()]

        if 'is_active' in data:
            fields['is_active'] = bool(data['is_active'])

        if errors:
            raise ValidationError('Invalid room data', details=errors)
        return fields


def _fmt(minutes: int) -> str:
    return f'{minutes // 60:02d}:{minutes % 60:02d}'

