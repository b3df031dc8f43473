"""
Room Data Access Layer
"""
import json

from campus_connect.data_access import use_connection
from campus_connect.models.models import Room

UPDATABLE_FIELDS = ('name', 'building', 'floor', 'capacity', 'room_type', 'other_type',
                    'facilities', 'is_active')


class RoomDAL:
    """Data access for rooms"""

    @staticmethod
    def _from_row(row):
        data = dict(row)
        data['facilities'] = json.loads(data['facilities']) if data.get('facilities') else []
        return Room(**data)

    @staticmethod
    def create_room(college_id, name, building, floor, capacity, room_type='classroom',
                    other_type=None, facilities=None, is_active=True, conn=None):
        """Create a room and return it"""
        with use_connection(conn) as db:
            cursor = db.execute(
                '''
                INSERT INTO rooms (college_id, name, building, floor, capacity, room_type,
                                   other_type, facilities, is_active)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ''',
                (college_id, name, building, floor, capacity, room_type, other_type,
                 json.dumps(list(facilities or [])), 1 if is_active else 0)
            )
            return RoomDAL.get_room_by_id(cursor.lastrowid, conn=db)

    @staticmethod
    def get_room_by_id(room_id, conn=None):
        with use_connection(conn) as db:
            row = db.execute('SELECT * FROM rooms WHERE room_id = ?', (room_id,)).fetchone()
        return RoomDAL._from_row(row) if row else None

    @staticmethod
    def get_rooms(college_id=None, active_only=False, conn=None):
        """List rooms, optionally limited to one college"""
        query = 'SELECT * FROM rooms WHERE 1 = 1'
        params = []
        if college_id is not None:
            query += ' AND college_id = ?'
            params.append(college_id)
        if active_only:
            query += ' AND is_active = 1'
        query += ' ORDER BY building, name'
        with use_connection(conn) as db:
            rows = db.execute(query, params).fetchall()
        return [RoomDAL._from_row(row) for row in rows]

    @staticmethod
    def update_room(room_id, conn=None, **fields):
        """Update whitelisted room fields and return the updated room"""
        updates = {key: value for key, value in fields.items() if key in UPDATABLE_FIELDS}
        if 'facilities' in updates:
            updates['facilities'] = json.dumps(list(updates['facilities'] or []))
        if 'is_active' in updates:
            updates['is_active'] = 1 if updates['is_active'] else 0
        with use_connection(conn) as db:
            if updates:
                assignments = ', '.join(f'{key} = ?' for key in updates)
                db.execute(
                    f'UPDATE rooms SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE room_id = ?',
                    list(updates.values()) + [room_id]
                )
            return RoomDAL.get_room_by_id(room_id, conn=db)

    @staticmethod
    def delete_room(room_id, conn=None):
        with use_connection(conn) as db:
            cursor = db.execute('DELETE FROM rooms WHERE room_id = ?', (room_id,))
            return cursor.rowcount > 0
