"""
Data Access Layer initialization
"""
import logging
import sqlite3
from contextlib import contextmanager

from flask import current_app, has_app_context

from campus_connect.config import Config

logger = logging.getLogger(__name__)


def _database_path():
    if has_app_context():
        return current_app.config.get('DATABASE_PATH', Config.DATABASE_PATH)
    return Config.DATABASE_PATH


def get_db_connection():
    """Create a database connection"""
    conn = sqlite3.connect(_database_path(), timeout=10)
    conn.row_factory = sqlite3.Row
    # Enforce referential integrity for every connection
    conn.execute('PRAGMA foreign_keys = ON')
    return conn


@contextmanager
def get_db(immediate=False):
    """
    Context manager for database connections.

    Commits when the block finishes and rolls back when it raises, so every
    DAL call made with the yielded connection lands in one transaction.
    With ``immediate`` the write lock is taken up front, which serialises
    check-then-insert sequences such as booking creation.
    """
    conn = get_db_connection()
    try:
        if immediate:
            conn.execute('BEGIN IMMEDIATE')
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


@contextmanager
def use_connection(conn=None):
    """Reuse the caller's connection or open a new transactional one."""
    if conn is not None:
        yield conn
        return
    with get_db() as own:
        yield own


def init_database():
    """Initialize database with schema"""
    with get_db() as conn:
        cursor = conn.cursor()

        # Colleges table
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS colleges (
                college_id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                code TEXT NOT NULL UNIQUE,
                domain TEXT,
                hod_id INTEGER,
                unique_id TEXT NOT NULL UNIQUE,
                departments TEXT,
                active INTEGER NOT NULL DEFAULT 1 CHECK(active IN (0, 1)),
                created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
            )
        ''')

        # Users table
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS users (
                user_id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                email TEXT NOT NULL UNIQUE,
                role TEXT NOT NULL DEFAULT 'student'
                    CHECK(role IN ('student', 'faculty', 'hod', 'librarian', 'admin')),
                college_id INTEGER,
                class_id INTEGER,
                department TEXT,
                roll_no TEXT,
                is_verified INTEGER NOT NULL DEFAULT 0 CHECK(is_verified IN (0, 1)),
                verification_method TEXT CHECK(verification_method IN ('domain', 'invite', 'hod')),
                college_status TEXT NOT NULL DEFAULT 'notlinked'
                    CHECK(college_status IN ('notlinked', 'pending', 'approved', 'rejected')),
                pending_approval INTEGER NOT NULL DEFAULT 1 CHECK(pending_approval IN (0, 1)),
                created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                updated_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (college_id) REFERENCES colleges(college_id) ON DELETE SET NULL
            )
        ''')

        # Teacher membership of a college (pending approval or verified)
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS college_teachers (
                college_id INTEGER NOT NULL,
                user_id INTEGER NOT NULL,
                status TEXT NOT NULL DEFAULT 'pending' CHECK(status IN ('pending', 'approved')),
                requested_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                decided_at DATETIME,
                PRIMARY KEY (college_id, user_id),
                FOREIGN KEY (college_id) REFERENCES colleges(college_id) ON DELETE CASCADE,
                FOREIGN KEY (user_id) REFERENCES users(user_id) ON DELETE CASCADE
            )
        ''')

        # Classes table
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS classes (
                class_id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                course TEXT,
                department TEXT NOT NULL,
                total_semesters INTEGER NOT NULL DEFAULT 8,
                current_semester INTEGER NOT NULL DEFAULT 1,
                batch TEXT,
                college_id INTEGER NOT NULL,
                teacher_id INTEGER NOT NULL,
                unique_code TEXT NOT NULL UNIQUE,
                active INTEGER NOT NULL DEFAULT 1 CHECK(active IN (0, 1)),
                created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                updated_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (college_id) REFERENCES colleges(college_id),
                FOREIGN KEY (teacher_id) REFERENCES users(user_id)
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS class_faculty_assignments (
                assignment_id INTEGER PRIMARY KEY AUTOINCREMENT,
                class_id INTEGER NOT NULL,
                faculty_id INTEGER NOT NULL,
                subject TEXT NOT NULL,
                assigned_by INTEGER NOT NULL,
                assigned_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                UNIQUE(class_id, faculty_id, subject),
                FOREIGN KEY (class_id) REFERENCES classes(class_id) ON DELETE CASCADE,
                FOREIGN KEY (faculty_id) REFERENCES users(user_id),
                FOREIGN KEY (assigned_by) REFERENCES users(user_id)
            )
        ''')

        # One membership row per (class, student); decisions upsert it
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS class_students (
                class_id INTEGER NOT NULL,
                student_id INTEGER NOT NULL,
                status TEXT NOT NULL DEFAULT 'pending' CHECK(status IN ('pending', 'approved', 'rejected')),
                join_request_date DATETIME DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (class_id, student_id),
                FOREIGN KEY (class_id) REFERENCES classes(class_id) ON DELETE CASCADE,
                FOREIGN KEY (student_id) REFERENCES users(user_id) ON DELETE CASCADE
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS class_student_requests (
                class_id INTEGER NOT NULL,
                student_id INTEGER NOT NULL,
                requested_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (class_id, student_id),
                FOREIGN KEY (class_id) REFERENCES classes(class_id) ON DELETE CASCADE,
                FOREIGN KEY (student_id) REFERENCES users(user_id) ON DELETE CASCADE
            )
        ''')

        # Classes a user owns or teaches in
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS user_classes (
                user_id INTEGER NOT NULL,
                class_id INTEGER NOT NULL,
                PRIMARY KEY (user_id, class_id),
                FOREIGN KEY (user_id) REFERENCES users(user_id) ON DELETE CASCADE,
                FOREIGN KEY (class_id) REFERENCES classes(class_id) ON DELETE CASCADE
            )
        ''')

        # Rooms table
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS rooms (
                room_id INTEGER PRIMARY KEY AUTOINCREMENT,
                college_id INTEGER NOT NULL,
                name TEXT NOT NULL,
                building TEXT NOT NULL,
                floor INTEGER NOT NULL,
                capacity INTEGER NOT NULL CHECK(capacity >= 1),
                room_type TEXT NOT NULL DEFAULT 'classroom'
                    CHECK(room_type IN ('classroom', 'laboratory', 'conference', 'auditorium', 'other')),
                other_type TEXT,
                facilities TEXT,
                is_active INTEGER NOT NULL DEFAULT 1 CHECK(is_active IN (0, 1)),
                created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                updated_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (college_id) REFERENCES colleges(college_id)
            )
        ''')

        # Room bookings table
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS room_bookings (
                booking_id INTEGER PRIMARY KEY AUTOINCREMENT,
                room_id INTEGER NOT NULL,
                college_id INTEGER NOT NULL,
                requested_by INTEGER NOT NULL,
                title TEXT NOT NULL,
                purpose TEXT NOT NULL,
                booking_date TEXT NOT NULL,
                start_time TEXT NOT NULL,
                end_time TEXT NOT NULL,
                attendees INTEGER NOT NULL DEFAULT 1 CHECK(attendees >= 0),
                status TEXT NOT NULL DEFAULT 'pending'
                    CHECK(status IN ('pending', 'approved', 'rejected', 'canceled')),
                rejection_reason TEXT,
                additional_notes TEXT,
                approved_by INTEGER,
                approved_at DATETIME,
                created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                updated_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                CHECK(start_time < end_time),
                FOREIGN KEY (room_id) REFERENCES rooms(room_id) ON DELETE CASCADE,
                FOREIGN KEY (college_id) REFERENCES colleges(college_id),
                FOREIGN KEY (requested_by) REFERENCES users(user_id),
                FOREIGN KEY (approved_by) REFERENCES users(user_id)
            )
        ''')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_room_bookings_room_date ON room_bookings (room_id, booking_date)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_room_bookings_requester ON room_bookings (requested_by)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_room_bookings_status ON room_bookings (status)')

        conn.commit()
        logger.info('Database initialized at %s', _database_path())
