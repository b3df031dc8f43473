"""
Class Data Access Layer
Classes plus their embedded lists: faculty assignments, student
memberships and the pending join queue.
"""
from campus_connect.data_access import use_connection
from campus_connect.models.models import CollegeClass, FacultyAssignment, StudentEnrollment


class ClassDAL:
    """Data access for classes"""

    @staticmethod
    def _load(row, db):
        class_id = row['class_id']
        assignments = [
            FacultyAssignment(**dict(a)) for a in db.execute(
                'SELECT * FROM class_faculty_assignments WHERE class_id = ? ORDER BY assigned_at, assignment_id',
                (class_id,)
            ).fetchall()
        ]
        students = [
            StudentEnrollment(**dict(s)) for s in db.execute(
                'SELECT * FROM class_students WHERE class_id = ? ORDER BY join_request_date, student_id',
                (class_id,)
            ).fetchall()
        ]
        requests = [
            r['student_id'] for r in db.execute(
                'SELECT student_id FROM class_student_requests WHERE class_id = ? ORDER BY requested_at, student_id',
                (class_id,)
            ).fetchall()
        ]
        return CollegeClass(**dict(row), faculty_assignments=assignments, students=students,
                            student_requests=requests)

    @staticmethod
    def create_class(name, department, college_id, teacher_id, unique_code, course=None,
                     total_semesters=8, current_semester=1, batch=None, conn=None):
        """Insert a class and return it"""
        with use_connection(conn) as db:
            cursor = db.execute(
                '''
                INSERT INTO classes (name, course, department, total_semesters, current_semester,
                                     batch, college_id, teacher_id, unique_code)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ''',
                (name, course, department, total_semesters, current_semester, batch,
                 college_id, teacher_id, unique_code)
            )
            return ClassDAL.get_class_by_id(cursor.lastrowid, conn=db)

    @staticmethod
    def get_class_by_id(class_id, conn=None):
        with use_connection(conn) as db:
            row = db.execute('SELECT * FROM classes WHERE class_id = ?', (class_id,)).fetchone()
            return ClassDAL._load(row, db) if row else None

    @staticmethod
    def get_class_by_unique_code(unique_code, conn=None):
        with use_connection(conn) as db:
            row = db.execute(
                'SELECT * FROM classes WHERE unique_code = ?',
                (unique_code.strip().upper(),)
            ).fetchone()
            return ClassDAL._load(row, db) if row else None

    @staticmethod
    def unique_code_exists(unique_code, conn=None):
        with use_connection(conn) as db:
            row = db.execute('SELECT 1 FROM classes WHERE unique_code = ?', (unique_code,)).fetchone()
        return row is not None

    @staticmethod
    def get_classes_by_teacher(teacher_id, conn=None):
        with use_connection(conn) as db:
            rows = db.execute(
                'SELECT * FROM classes WHERE teacher_id = ? ORDER BY created_at DESC, class_id DESC',
                (teacher_id,)
            ).fetchall()
            return [ClassDAL._load(row, db) for row in rows]

    @staticmethod
    def get_classes_by_faculty(faculty_id, conn=None):
        """Classes where the user holds at least one faculty assignment"""
        with use_connection(conn) as db:
            rows = db.execute(
                '''
                SELECT * FROM classes WHERE class_id IN (
                    SELECT class_id FROM class_faculty_assignments WHERE faculty_id = ?
                )
                ORDER BY created_at DESC, class_id DESC
                ''',
                (faculty_id,)
            ).fetchall()
            return [ClassDAL._load(row, db) for row in rows]

    @staticmethod
    def get_classes_by_student(student_id, conn=None):
        """Classes where the student holds a membership entry"""
        with use_connection(conn) as db:
            rows = db.execute(
                '''
                SELECT * FROM classes WHERE class_id IN (
                    SELECT class_id FROM class_students WHERE student_id = ?
                )
                ORDER BY created_at DESC, class_id DESC
                ''',
                (student_id,)
            ).fetchall()
            return [ClassDAL._load(row, db) for row in rows]

    @staticmethod
    def delete_class(class_id, conn=None):
        with use_connection(conn) as db:
            db.execute('UPDATE users SET class_id = NULL WHERE class_id = ?', (class_id,))
            cursor = db.execute('DELETE FROM classes WHERE class_id = ?', (class_id,))
            return cursor.rowcount > 0

    # Faculty assignments ----------------------------------------------------

    @staticmethod
    def add_assignment(class_id, faculty_id, subject, assigned_by, conn=None):
        with use_connection(conn) as db:
            cursor = db.execute(
                '''
                INSERT INTO class_faculty_assignments (class_id, faculty_id, subject, assigned_by)
                VALUES (?, ?, ?, ?)
                ''',
                (class_id, faculty_id, subject, assigned_by)
            )
            row = db.execute(
                'SELECT * FROM class_faculty_assignments WHERE assignment_id = ?',
                (cursor.lastrowid,)
            ).fetchone()
        return FacultyAssignment(**dict(row))

    @staticmethod
    def remove_assignment(assignment_id, conn=None):
        with use_connection(conn) as db:
            cursor = db.execute(
                'DELETE FROM class_faculty_assignments WHERE assignment_id = ?',
                (assignment_id,)
            )
            return cursor.rowcount > 0

    # Join queue -------------------------------------------------------------

    @staticmethod
    def add_request(class_id, student_id, conn=None):
        with use_connection(conn) as db:
            db.execute(
                'INSERT INTO class_student_requests (class_id, student_id) VALUES (?, ?)',
                (class_id, student_id)
            )

    @staticmethod
    def get_request_dates(class_id, conn=None):
        """Map of queued student id to the time they asked to join"""
        with use_connection(conn) as db:
            rows = db.execute(
                'SELECT student_id, requested_at FROM class_student_requests WHERE class_id = ?',
                (class_id,)
            ).fetchall()
        return {row['student_id']: row['requested_at'] for row in rows}

    @staticmethod
    def remove_request(class_id, student_id, conn=None):
        with use_connection(conn) as db:
            cursor = db.execute(
                'DELETE FROM class_student_requests WHERE class_id = ? AND student_id = ?',
                (class_id, student_id)
            )
            return cursor.rowcount > 0

    # Memberships ------------------------------------------------------------

    @staticmethod
    def upsert_student(class_id, student_id, status, conn=None):
        """Record the student's status, replacing any earlier entry for the class"""
        with use_connection(conn) as db:
            db.execute(
                '''
                INSERT INTO class_students (class_id, student_id, status, join_request_date)
                VALUES (?, ?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(class_id, student_id)
                DO UPDATE SET status = excluded.status, join_request_date = excluded.join_request_date
                ''',
                (class_id, student_id, status)
            )

    @staticmethod
    def count_students(class_id, status=None, conn=None):
        query = 'SELECT COUNT(*) AS total FROM class_students WHERE class_id = ?'
        params = [class_id]
        if status:
            query += ' AND status = ?'
            params.append(status)
        with use_connection(conn) as db:
            row = db.execute(query, params).fetchone()
        return row['total']
