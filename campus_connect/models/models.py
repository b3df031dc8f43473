"""
Database models for Campus Connect
This file defines the schema structure
"""

from datetime import datetime
from flask_login import UserMixin


def _iso(value):
    return value.isoformat() if isinstance(value, datetime) else value


class User(UserMixin):
    """
    User model representing students, faculty, HODs, librarians and admins.

    Implements Flask-Login's UserMixin interface so the request loader can
    hand the authenticated user to the controllers.

    Roles:
    - 'student': Requests to join classes, books rooms
    - 'faculty': Owns classes, teaches assigned subjects
    - 'hod': Head of Department, administers a college tenant
    - 'librarian': Library staff
    - 'admin': Full system access

    college_status tracks the user's link to a college:
    'notlinked' -> 'pending' -> 'approved' | 'rejected'
    """
    def __init__(self, user_id=None, name=None, email=None, role='student',
                 college_id=None, class_id=None, department=None, roll_no=None,
                 is_verified=0, verification_method=None, college_status='notlinked',
                 pending_approval=1, created_at=None, updated_at=None, classes=None):
        self.user_id = user_id
        self.name = name
        self.email = email  # Must be unique
        self.role = role
        self.college_id = college_id
        self.class_id = class_id  # Class a student is enrolled in
        self.department = department
        self.roll_no = roll_no
        self.is_verified = bool(is_verified)
        self.verification_method = verification_method  # 'domain', 'invite', 'hod'
        self.college_status = college_status
        self.pending_approval = bool(pending_approval)
        self.created_at = created_at or datetime.now()
        self.updated_at = updated_at or datetime.now()
        # Classes the user owns or is assigned to (populated by the DAL)
        self.classes = list(classes) if classes else []

    def get_id(self):
        """Return the user identifier used by Flask-Login."""
        return str(self.user_id)

    def to_dict(self):
        """Convert user to dictionary"""
        return {
            'user_id': self.user_id,
            'name': self.name,
            'email': self.email,
            'role': self.role,
            'college_id': self.college_id,
            'class_id': self.class_id,
            'department': self.department,
            'roll_no': self.roll_no,
            'is_verified': self.is_verified,
            'verification_method': self.verification_method,
            'college_status': self.college_status,
            'pending_approval': self.pending_approval,
            'classes': self.classes,
            'created_at': _iso(self.created_at)
        }


class College:
    """
    College model, the tenant every class, room and booking belongs to.

    unique_id is the shareable code teachers use to request membership;
    code is the institution's own short code (e.g. 'CBIT').
    """
    def __init__(self, college_id=None, name=None, code=None, domain=None,
                 hod_id=None, unique_id=None, departments=None, active=1,
                 created_at=None, updated_at=None, verified_teachers=None,
                 pending_teachers=None):
        self.college_id = college_id
        self.name = name
        self.code = code
        self.domain = domain
        self.hod_id = hod_id
        self.unique_id = unique_id
        self.departments = list(departments) if departments else []
        self.active = bool(active)
        self.created_at = created_at or datetime.now()
        self.updated_at = updated_at or datetime.now()
        self.verified_teachers = list(verified_teachers) if verified_teachers else []
        self.pending_teachers = list(pending_teachers) if pending_teachers else []

    def to_dict(self):
        """Convert college to dictionary"""
        return {
            'college_id': self.college_id,
            'name': self.name,
            'code': self.code,
            'domain': self.domain,
            'hod_id': self.hod_id,
            'unique_id': self.unique_id,
            'departments': self.departments,
            'active': self.active,
            'verified_teachers': self.verified_teachers,
            'pending_teachers': self.pending_teachers,
            'created_at': _iso(self.created_at)
        }


class FacultyAssignment:
    """A faculty member teaching one subject in a class"""
    def __init__(self, assignment_id=None, class_id=None, faculty_id=None,
                 subject=None, assigned_by=None, assigned_at=None):
        self.assignment_id = assignment_id
        self.class_id = class_id
        self.faculty_id = faculty_id
        self.subject = subject
        self.assigned_by = assigned_by
        self.assigned_at = assigned_at or datetime.now()

    def to_dict(self):
        return {
            'assignment_id': self.assignment_id,
            'faculty_id': self.faculty_id,
            'subject': self.subject,
            'assigned_by': self.assigned_by,
            'assigned_at': _iso(self.assigned_at)
        }


class StudentEnrollment:
    """A student's resolved membership status in a class"""
    def __init__(self, class_id=None, student_id=None, status='pending',
                 join_request_date=None):
        self.class_id = class_id
        self.student_id = student_id
        self.status = status  # 'pending', 'approved', 'rejected'
        self.join_request_date = join_request_date or datetime.now()

    def to_dict(self):
        return {
            'student_id': self.student_id,
            'status': self.status,
            'join_request_date': _iso(self.join_request_date)
        }


class CollegeClass:
    """
    Class (cohort) model.

    A class is owned by its teacher and carries three embedded lists loaded
    by the DAL:
    - faculty_assignments: FacultyAssignment entries, one per (faculty, subject)
    - students: StudentEnrollment entries with status approved/rejected
    - student_requests: ids of students awaiting a decision

    Students find a class through its shareable unique_code.
    """
    def __init__(self, class_id=None, name=None, course=None, department=None,
                 total_semesters=8, current_semester=1, batch=None, college_id=None,
                 teacher_id=None, unique_code=None, active=1, created_at=None,
                 updated_at=None, faculty_assignments=None, students=None,
                 student_requests=None):
        self.class_id = class_id
        self.name = name
        self.course = course
        self.department = department
        self.total_semesters = total_semesters
        self.current_semester = current_semester
        self.batch = batch
        self.college_id = college_id
        self.teacher_id = teacher_id  # Class owner
        self.unique_code = unique_code
        self.active = bool(active)
        self.created_at = created_at or datetime.now()
        self.updated_at = updated_at or datetime.now()
        self.faculty_assignments = list(faculty_assignments) if faculty_assignments else []
        self.students = list(students) if students else []
        self.student_requests = list(student_requests) if student_requests else []

    def is_assigned_faculty(self, user_id):
        return any(a.faculty_id == user_id for a in self.faculty_assignments)

    def enrollment_for(self, student_id):
        return next((s for s in self.students if s.student_id == student_id), None)

    def to_dict(self):
        """Convert class to dictionary"""
        return {
            'class_id': self.class_id,
            'name': self.name,
            'course': self.course,
            'department': self.department,
            'total_semesters': self.total_semesters,
            'current_semester': self.current_semester,
            'batch': self.batch,
            'college_id': self.college_id,
            'teacher_id': self.teacher_id,
            'unique_code': self.unique_code,
            'active': self.active,
            'faculty_assignments': [a.to_dict() for a in self.faculty_assignments],
            'students': [s.to_dict() for s in self.students],
            'student_requests': self.student_requests,
            'created_at': _iso(self.created_at)
        }


class Room:
    """
    Room model for bookable college spaces.

    Room types: 'classroom', 'laboratory', 'conference', 'auditorium', 'other'
    (other_type describes the latter). facilities is a list of strings such
    as ["projector", "whiteboard"].
    """
    def __init__(self, room_id=None, college_id=None, name=None, building=None,
                 floor=None, capacity=None, room_type='classroom', other_type=None,
                 facilities=None, is_active=1, created_at=None, updated_at=None):
        self.room_id = room_id
        self.college_id = college_id
        self.name = name
        self.building = building
        self.floor = floor
        self.capacity = capacity
        self.room_type = room_type
        self.other_type = other_type
        self.facilities = list(facilities) if facilities else []
        self.is_active = bool(is_active)
        self.created_at = created_at or datetime.now()
        self.updated_at = updated_at or datetime.now()

    def to_dict(self):
        """Convert room to dictionary"""
        return {
            'room_id': self.room_id,
            'college_id': self.college_id,
            'name': self.name,
            'building': self.building,
            'floor': self.floor,
            'capacity': self.capacity,
            'room_type': self.room_type,
            'other_type': self.other_type,
            'facilities': self.facilities,
            'is_active': self.is_active,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }


class RoomBooking:
    """
    Booking model for room reservations.

    A booking covers the half-open slot [start_time, end_time) on a single
    day. Times are zero-padded 24-hour 'HH:MM' strings, so lexical order is
    chronological order; booking_date is 'YYYY-MM-DD'.

    Status lifecycle:
    - 'pending': Awaiting HOD/admin decision (every booking starts here)
    - 'approved': Confirmed
    - 'rejected': Declined, rejection_reason explains why
    - 'canceled': Withdrawn by the requester

    pending -> approved | rejected | canceled, approved -> canceled.
    """
    def __init__(self, booking_id=None, room_id=None, college_id=None,
                 requested_by=None, title=None, purpose=None, booking_date=None,
                 start_time=None, end_time=None, attendees=1, status='pending',
                 rejection_reason=None, additional_notes=None, approved_by=None,
                 approved_at=None, created_at=None, updated_at=None):
        self.booking_id = booking_id
        self.room_id = room_id
        self.college_id = college_id
        self.requested_by = requested_by
        self.title = title
        self.purpose = purpose
        self.booking_date = booking_date
        self.start_time = start_time
        self.end_time = end_time
        self.attendees = attendees
        self.status = status
        self.rejection_reason = rejection_reason
        self.additional_notes = additional_notes
        # Decision metadata
        self.approved_by = approved_by
        self.approved_at = approved_at
        self.created_at = created_at or datetime.now()
        self.updated_at = updated_at or datetime.now()

    def overlaps(self, start_time, end_time):
        """True when [start_time, end_time) intersects this booking's slot."""
        return self.start_time < end_time and self.end_time > start_time

    def to_dict(self):
        """Convert booking to dictionary"""
        return {
            'booking_id': self.booking_id,
            'room_id': self.room_id,
            'college_id': self.college_id,
            'requested_by': self.requested_by,
            'title': self.title,
            'purpose': self.purpose,
            'date': self.booking_date,
            'start_time': self.start_time,
            'end_time': self.end_time,
            'attendees': self.attendees,
            'status': self.status,
            'rejection_reason': self.rejection_reason,
            'additional_notes': self.additional_notes,
            'approved_by': self.approved_by,
            'approved_at': _iso(self.approved_at),
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }
