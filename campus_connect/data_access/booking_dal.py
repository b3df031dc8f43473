"""
Room Booking Data Access Layer
"""
from campus_connect.data_access import use_connection
from campus_connect.models.models import RoomBooking

ACTIVE_STATUSES = ('pending', 'approved')


def _in_clause(values):
    return ','.join('?' for _ in values)


class BookingDAL:
    """Data access for room bookings"""

    @staticmethod
    def _from_row(row):
        return RoomBooking(**dict(row))

    @staticmethod
    def create_booking(room_id, college_id, requested_by, title, purpose, booking_date,
                       start_time, end_time, attendees=1, additional_notes=None,
                       status='pending', conn=None):
        """Insert a booking and return it"""
        with use_connection(conn) as db:
            cursor = db.execute(
                '''
                INSERT INTO room_bookings (room_id, college_id, requested_by, title, purpose,
                                           booking_date, start_time, end_time, attendees,
                                           additional_notes, status)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ''',
                (room_id, college_id, requested_by, title, purpose, booking_date,
                 start_time, end_time, attendees, additional_notes, status)
            )
            return BookingDAL.get_booking_by_id(cursor.lastrowid, conn=db)

    @staticmethod
    def get_booking_by_id(booking_id, conn=None):
        with use_connection(conn) as db:
            row = db.execute('SELECT * FROM room_bookings WHERE booking_id = ?', (booking_id,)).fetchone()
        return BookingDAL._from_row(row) if row else None

    @staticmethod
    def find_conflicts(room_id, booking_date, start_time, end_time, statuses=ACTIVE_STATUSES,
                       exclude_booking_id=None, conn=None):
        """
        Bookings on the same room and day whose slot intersects [start_time, end_time).

        Two half-open slots intersect iff existing.start < query.end and
        existing.end > query.start; touching endpoints do not conflict.
        """
        query = f'''
            SELECT * FROM room_bookings
            WHERE room_id = ?
              AND booking_date = ?
              AND status IN ({_in_clause(statuses)})
              AND start_time < ?
              AND end_time > ?
        '''
        params = [room_id, booking_date, *statuses, end_time, start_time]
        if exclude_booking_id is not None:
            query += ' AND booking_id != ?'
            params.append(exclude_booking_id)
        query += ' ORDER BY start_time'
        with use_connection(conn) as db:
            rows = db.execute(query, params).fetchall()
        return [BookingDAL._from_row(row) for row in rows]

    @staticmethod
    def get_bookings_for_room_on_date(room_id, booking_date, statuses=ACTIVE_STATUSES, conn=None):
        with use_connection(conn) as db:
            rows = db.execute(
                f'''
                SELECT * FROM room_bookings
                WHERE room_id = ? AND booking_date = ? AND status IN ({_in_clause(statuses)})
                ORDER BY start_time
                ''',
                [room_id, booking_date, *statuses]
            ).fetchall()
        return [BookingDAL._from_row(row) for row in rows]

    @staticmethod
    def _build_filters(filters):
        clauses = []
        params = []
        for column in ('room_id', 'requested_by', 'college_id'):
            if filters.get(column) is not None:
                clauses.append(f'{column} = ?')
                params.append(filters[column])
        statuses = filters.get('statuses')
        if statuses:
            clauses.append(f'status IN ({_in_clause(statuses)})')
            params.extend(statuses)
        elif filters.get('status'):
            clauses.append('status = ?')
            params.append(filters['status'])
        if filters.get('date'):
            clauses.append('booking_date = ?')
            params.append(filters['date'])
        if filters.get('date_from'):
            clauses.append('booking_date >= ?')
            params.append(filters['date_from'])
        if filters.get('date_to'):
            clauses.append('booking_date <= ?')
            params.append(filters['date_to'])
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ''
        return where, params

    @staticmethod
    def count_bookings(filters=None, conn=None):
        where, params = BookingDAL._build_filters(filters or {})
        with use_connection(conn) as db:
            row = db.execute(f'SELECT COUNT(*) AS total FROM room_bookings{where}', params).fetchone()
        return row['total']

    @staticmethod
    def find_bookings(filters=None, limit=None, offset=0, newest_first=False, conn=None):
        """
        Query bookings.

        Supported filters: room_id, requested_by, college_id, status,
        statuses (iterable), date, date_from, date_to. Results are ordered by
        date then start time, or most recent first with ``newest_first``.
        """
        where, params = BookingDAL._build_filters(filters or {})
        order = ' ORDER BY booking_date DESC, created_at DESC' if newest_first \
            else ' ORDER BY booking_date, start_time'
        query = f'SELECT * FROM room_bookings{where}{order}'
        if limit is not None:
            query += ' LIMIT ? OFFSET ?'
            params = params + [limit, offset]
        with use_connection(conn) as db:
            rows = db.execute(query, params).fetchall()
        return [BookingDAL._from_row(row) for row in rows]

    @staticmethod
    def update_booking(booking_id, conn=None, **fields):
        """Set status and decision metadata; returns the updated booking"""
        allowed = ('status', 'approved_by', 'approved_at', 'rejection_reason')
        updates = {key: value for key, value in fields.items() if key in allowed}
        with use_connection(conn) as db:
            if updates:
                assignments = ', '.join(f'{key} = ?' for key in updates)
                db.execute(
                    f'UPDATE room_bookings SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE booking_id = ?',
                    list(updates.values()) + [booking_id]
                )
            return BookingDAL.get_booking_by_id(booking_id, conn=db)
