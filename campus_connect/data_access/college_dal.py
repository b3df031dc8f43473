"""
College Data Access Layer
"""
import json

from campus_connect.data_access import use_connection
from campus_connect.models.models import College

UPDATABLE_FIELDS = ('name', 'domain', 'departments', 'active', 'hod_id')


class CollegeDAL:
    """Data access for colleges and their teacher membership"""

    @staticmethod
    def _from_row(row, db):
        data = dict(row)
        data['departments'] = json.loads(data['departments']) if data.get('departments') else []
        members = db.execute(
            'SELECT user_id, status FROM college_teachers WHERE college_id = ? ORDER BY requested_at, user_id',
            (data['college_id'],)
        ).fetchall()
        data['verified_teachers'] = [m['user_id'] for m in members if m['status'] == 'approved']
        data['pending_teachers'] = [m['user_id'] for m in members if m['status'] == 'pending']
        return College(**data)

    @staticmethod
    def create_college(name, code, unique_id, domain=None, hod_id=None, departments=None,
                       active=True, conn=None):
        """Create a college and return it"""
        with use_connection(conn) as db:
            cursor = db.execute(
                '''
                INSERT INTO colleges (name, code, domain, hod_id, unique_id, departments, active)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ''',
                (name, code.strip().upper(), domain, hod_id, unique_id,
                 json.dumps(list(departments or [])), 1 if active else 0)
            )
            return CollegeDAL.get_college_by_id(cursor.lastrowid, conn=db)

    @staticmethod
    def get_college_by_id(college_id, conn=None):
        with use_connection(conn) as db:
            row = db.execute('SELECT * FROM colleges WHERE college_id = ?', (college_id,)).fetchone()
            return CollegeDAL._from_row(row, db) if row else None

    @staticmethod
    def get_college_by_code(code, active_only=True, conn=None):
        query = 'SELECT * FROM colleges WHERE code = ?'
        if active_only:
            query += ' AND active = 1'
        with use_connection(conn) as db:
            row = db.execute(query, (code.strip().upper(),)).fetchone()
            return CollegeDAL._from_row(row, db) if row else None

    @staticmethod
    def get_college_by_unique_id(unique_id, conn=None):
        with use_connection(conn) as db:
            row = db.execute(
                'SELECT * FROM colleges WHERE unique_id = ? AND active = 1',
                (unique_id.strip(),)
            ).fetchone()
            return CollegeDAL._from_row(row, db) if row else None

    @staticmethod
    def get_college_by_domain(domain, conn=None):
        """Active college whose email domain is exactly ``domain`` (case-insensitive)"""
        with use_connection(conn) as db:
            row = db.execute(
                'SELECT * FROM colleges WHERE LOWER(domain) = ? AND active = 1 ORDER BY college_id',
                (domain.strip().lower(),)
            ).fetchone()
            return CollegeDAL._from_row(row, db) if row else None

    @staticmethod
    def get_college_by_hod(hod_id, conn=None):
        with use_connection(conn) as db:
            row = db.execute(
                'SELECT * FROM colleges WHERE hod_id = ? ORDER BY college_id', (hod_id,)
            ).fetchone()
            return CollegeDAL._from_row(row, db) if row else None

    @staticmethod
    def unique_id_exists(unique_id, conn=None):
        with use_connection(conn) as db:
            row = db.execute('SELECT 1 FROM colleges WHERE unique_id = ?', (unique_id,)).fetchone()
        return row is not None

    @staticmethod
    def get_all_colleges(include_inactive=False, conn=None):
        """List colleges ordered by name"""
        query = 'SELECT * FROM colleges'
        if not include_inactive:
            query += ' WHERE active = 1'
        query += ' ORDER BY name'
        with use_connection(conn) as db:
            rows = db.execute(query).fetchall()
            return [CollegeDAL._from_row(row, db) for row in rows]

    @staticmethod
    def update_college(college_id, conn=None, **fields):
        """Update whitelisted college fields, skipping None values"""
        updates = {key: value for key, value in fields.items()
                   if key in UPDATABLE_FIELDS and value is not None}
        if 'departments' in updates:
            updates['departments'] = json.dumps(list(updates['departments']))
        if 'active' in updates:
            updates['active'] = 1 if updates['active'] else 0
        with use_connection(conn) as db:
            if updates:
                assignments = ', '.join(f'{key} = ?' for key in updates)
                db.execute(
                    f'UPDATE colleges SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE college_id = ?',
                    list(updates.values()) + [college_id]
                )
            return CollegeDAL.get_college_by_id(college_id, conn=db)

    # Teacher membership -----------------------------------------------------

    @staticmethod
    def get_teacher_status(college_id, user_id, conn=None):
        """Return 'pending', 'approved' or None"""
        with use_connection(conn) as db:
            row = db.execute(
                'SELECT status FROM college_teachers WHERE college_id = ? AND user_id = ?',
                (college_id, user_id)
            ).fetchone()
        return row['status'] if row else None

    @staticmethod
    def add_teacher(college_id, user_id, status='pending', conn=None):
        with use_connection(conn) as db:
            db.execute(
                '''
                INSERT INTO college_teachers (college_id, user_id, status)
                VALUES (?, ?, ?)
                ON CONFLICT(college_id, user_id) DO UPDATE SET status = excluded.status
                ''',
                (college_id, user_id, status)
            )

    @staticmethod
    def approve_teacher(college_id, user_id, conn=None):
        with use_connection(conn) as db:
            cursor = db.execute(
                '''
                UPDATE college_teachers SET status = 'approved', decided_at = CURRENT_TIMESTAMP
                WHERE college_id = ? AND user_id = ?
                ''',
                (college_id, user_id)
            )
            return cursor.rowcount > 0

    @staticmethod
    def remove_teacher(college_id, user_id, conn=None):
        with use_connection(conn) as db:
            cursor = db.execute(
                'DELETE FROM college_teachers WHERE college_id = ? AND user_id = ?',
                (college_id, user_id)
            )
            return cursor.rowcount > 0
