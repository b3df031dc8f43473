"""
User Data Access Layer
"""
from campus_connect.data_access import use_connection
from campus_connect.models.models import User

UPDATABLE_FIELDS = (
    'name', 'role', 'college_id', 'class_id', 'department', 'roll_no', 'is_verified',
    'verification_method', 'college_status', 'pending_approval'
)


class UserDAL:
    """Data access for users and their class lists"""

    @staticmethod
    def _from_row(row, classes=None):
        return User(**dict(row), classes=classes)

    @staticmethod
    def create_user(name, email, role='student', college_id=None, department=None,
                    roll_no=None, college_status='notlinked', is_verified=False,
                    verification_method=None, conn=None):
        """Create a new user and return it"""
        with use_connection(conn) as db:
            cursor = db.execute(
                '''
                INSERT INTO users (name, email, role, college_id, department, roll_no,
                                   college_status, is_verified, verification_method)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ''',
                (name, email.strip().lower(), role, college_id, department, roll_no,
                 college_status, 1 if is_verified else 0, verification_method)
            )
            return UserDAL.get_user_by_id(cursor.lastrowid, conn=db)

    @staticmethod
    def get_user_by_id(user_id, conn=None):
        """Get user by ID, including their class list"""
        with use_connection(conn) as db:
            row = db.execute('SELECT * FROM users WHERE user_id = ?', (user_id,)).fetchone()
            if not row:
                return None
            return UserDAL._from_row(row, classes=UserDAL.get_class_ids(user_id, conn=db))

    @staticmethod
    def get_user_by_email(email, conn=None):
        """Get user by email"""
        with use_connection(conn) as db:
            row = db.execute('SELECT * FROM users WHERE email = ?', (email.strip().lower(),)).fetchone()
            if not row:
                return None
            return UserDAL._from_row(row, classes=UserDAL.get_class_ids(row['user_id'], conn=db))

    @staticmethod
    def get_users_by_ids(user_ids, conn=None):
        """Get several users at once, preserving the order of ``user_ids``"""
        ids = list(user_ids)
        if not ids:
            return []
        with use_connection(conn) as db:
            placeholders = ','.join('?' for _ in ids)
            rows = db.execute(f'SELECT * FROM users WHERE user_id IN ({placeholders})', ids).fetchall()
        by_id = {row['user_id']: UserDAL._from_row(row) for row in rows}
        return [by_id[user_id] for user_id in ids if user_id in by_id]

    @staticmethod
    def update_user(user_id, conn=None, **fields):
        """Update whitelisted user fields"""
        updates = {key: value for key, value in fields.items() if key in UPDATABLE_FIELDS}
        if not updates:
            return False
        for flag in ('is_verified', 'pending_approval'):
            if flag in updates:
                updates[flag] = 1 if updates[flag] else 0
        assignments = ', '.join(f'{key} = ?' for key in updates)
        with use_connection(conn) as db:
            cursor = db.execute(
                f'UPDATE users SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE user_id = ?',
                list(updates.values()) + [user_id]
            )
            return cursor.rowcount > 0

    @staticmethod
    def get_class_ids(user_id, conn=None):
        """Classes the user owns or is assigned to"""
        with use_connection(conn) as db:
            rows = db.execute(
                'SELECT class_id FROM user_classes WHERE user_id = ? ORDER BY class_id',
                (user_id,)
            ).fetchall()
        return [row['class_id'] for row in rows]

    @staticmethod
    def add_class(user_id, class_id, conn=None):
        """Add a class to the user's list; returns False if already present"""
        with use_connection(conn) as db:
            cursor = db.execute(
                'INSERT OR IGNORE INTO user_classes (user_id, class_id) VALUES (?, ?)',
                (user_id, class_id)
            )
            return cursor.rowcount > 0

    @staticmethod
    def remove_class(user_id, class_id, conn=None):
        """Remove a class from the user's list"""
        with use_connection(conn) as db:
            cursor = db.execute(
                'DELETE FROM user_classes WHERE user_id = ? AND class_id = ?',
                (user_id, class_id)
            )
            return cursor.rowcount > 0
