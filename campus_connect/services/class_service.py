"""
Class service: class lifecycle and the enrollment workflow.

A student's membership starts as a request in the class's join queue and
resolves exactly once into an approved or rejected entry. Faculty join a
class through per-subject assignments made by the owner or by faculty who
already teach there.
"""
from __future__ import annotations

import secrets
import string
from typing import Dict, List, Optional

from campus_connect.data_access import get_db
from campus_connect.data_access.class_dal import ClassDAL
from campus_connect.data_access.college_dal import CollegeDAL
from campus_connect.data_access.user_dal import UserDAL
from campus_connect.models.models import CollegeClass, FacultyAssignment
from campus_connect.services import get_logger, get_setting, load_user
from campus_connect.utils.errors import (
    AlreadyEnrolledError,
    DuplicateAssignmentError,
    DuplicateRequestError,
    InvalidStateError,
    NotFoundError,
    NotInQueueError,
    UnauthorizedError,
    ValidationError,
)
from campus_connect.utils.permissions import TEACHING_ROLES, require
from campus_connect.utils.validators import Validator

DECISIONS = {'approve': 'approved', 'reject': 'rejected'}
ENROLLMENT_STATUSES = ('pending', 'approved', 'rejected')
CODE_ALPHABET = string.ascii_uppercase + string.digits


class ClassService:
    """Classes, faculty assignments and student join requests."""

    def __init__(self) -> None:
        self.logger = get_logger(__name__)

    # Class lifecycle ---------------------------------------------------------

    def create_class(self, teacher_id, college_id, data: Dict) -> CollegeClass:
        """
        Create a class owned by ``teacher_id`` and add it to their class list.

        A shareable ``unique_code`` is generated for student join requests.
        """
        teacher = load_user(teacher_id, 'Teacher')
        college_id = Validator.validate_id(college_id, 'College')
        require(teacher, 'class.create', message='Unauthorized. Only teachers can create classes')
        if not CollegeDAL.get_college_by_id(college_id):
            raise NotFoundError('College', college_id)

        fields = self._clean_class_fields(data)
        with get_db(immediate=True) as conn:
            unique_code = self._generate_unique_code(conn)
            new_class = ClassDAL.create_class(
                college_id=college_id,
                teacher_id=teacher.user_id,
                unique_code=unique_code,
                conn=conn,
                **fields
            )
            UserDAL.add_class(teacher.user_id, new_class.class_id, conn=conn)

        self.logger.info('Class %s (%s) created by teacher %s',
                         new_class.class_id, unique_code, teacher.user_id)
        return new_class

    def get_class(self, class_id) -> CollegeClass:
        class_id = Validator.validate_id(class_id, 'Class')
        class_obj = ClassDAL.get_class_by_id(class_id)
        if not class_obj:
            raise NotFoundError('Class', class_id)
        return class_obj

    def delete_class(self, class_id, requested_by_id) -> bool:
        """Delete a class; members are detached, not deleted."""
        class_obj = self.get_class(class_id)
        requester = load_user(requested_by_id)
        require(requester, 'class.manage', class_obj,
                'Unauthorized. Only the class creator can delete this class')

        with get_db(immediate=True) as conn:
            for user_id in {class_obj.teacher_id, *(a.faculty_id for a in class_obj.faculty_assignments)}:
                UserDAL.remove_class(user_id, class_obj.class_id, conn=conn)
            ClassDAL.delete_class(class_obj.class_id, conn=conn)

        self.logger.info('Class %s deleted by user %s', class_obj.class_id, requester.user_id)
        return True

    # Listings ----------------------------------------------------------------

    def get_classes_by_teacher(self, teacher_id) -> Dict:
        """Classes owned by a teacher plus the number of approved students across them."""
        teacher = load_user(teacher_id, 'Teacher')
        if teacher.role not in TEACHING_ROLES:
            raise UnauthorizedError('Unauthorized. Only teachers can access this endpoint')
        classes = ClassDAL.get_classes_by_teacher(teacher.user_id)
        total_students = sum(
            1 for cls in classes for s in cls.students if s.status == 'approved'
        )
        return {'classes': classes, 'total_students': total_students}

    def get_classes_by_faculty(self, faculty_id) -> Dict:
        faculty = load_user(faculty_id, 'Faculty member')
        if faculty.role not in TEACHING_ROLES:
            raise UnauthorizedError('Unauthorized. Only faculty members can access this endpoint')
        classes = []
        for cls in ClassDAL.get_classes_by_faculty(faculty.user_id):
            entry = cls.to_dict()
            entry['teaching_subjects'] = [
                a.subject for a in cls.faculty_assignments if a.faculty_id == faculty.user_id
            ]
            classes.append(entry)
        return {'classes': classes, 'total_classes': len(classes)}

    def get_classes_by_student(self, student_id) -> List[Dict]:
        student = load_user(student_id, 'Student')
        if student.role != 'student':
            raise ValidationError('User is not a student', details={'role': student.role})
        classes = []
        for cls in ClassDAL.get_classes_by_student(student.user_id):
            entry = cls.to_dict()
            enrollment = cls.enrollment_for(student.user_id)
            entry['student_status'] = enrollment.status if enrollment else 'unknown'
            classes.append(entry)
        return classes

    def get_student_requests(self, class_id, status='pending') -> List[Dict]:
        """Students of a class in one state: queued ('pending'), approved or rejected."""
        class_obj = self.get_class(class_id)
        valid, message = Validator.validate_status(status, ENROLLMENT_STATUSES)
        if not valid:
            raise ValidationError(message, details={'status': status})

        if status == 'pending':
            requested_at = ClassDAL.get_request_dates(class_obj.class_id)
            users = UserDAL.get_users_by_ids(class_obj.student_requests)
            return [_student_summary(u, 'pending', requested_at.get(u.user_id)) for u in users]

        entries = {s.student_id: s for s in class_obj.students if s.status == status}
        users = UserDAL.get_users_by_ids(entries)
        return [_student_summary(u, status, entries[u.user_id].join_request_date) for u in users]

    def get_students_by_class(self, class_id) -> List[Dict]:
        class_obj = self.get_class(class_id)
        entries = {s.student_id: s for s in class_obj.students}
        users = UserDAL.get_users_by_ids(entries)
        return [
            _student_summary(u, entries[u.user_id].status, entries[u.user_id].join_request_date)
            for u in users
        ]

    # Enrollment workflow -----------------------------------------------------

    def request_to_join(self, student_id, class_unique_code: str) -> Dict:
        """
        Queue a student for a class found by its shareable code.

        Raises:
            NotFoundError: unknown student or class code
            DuplicateRequestError: the student is already queued
            AlreadyEnrolledError: the student already has a resolved entry;
                the code and message differ for pending/approved/rejected
        """
        student = load_user(student_id, 'Student')
        require(student, 'class.join', message='Unauthorized. Only students can join classes')
        code = (class_unique_code or '').strip().upper() if isinstance(class_unique_code, str) else ''
        if not code:
            raise ValidationError('Class code is required', details={'field': 'class_unique_code'})

        with get_db(immediate=True) as conn:
            class_obj = ClassDAL.get_class_by_unique_code(code, conn=conn)
            if not class_obj:
                raise NotFoundError('Class', code, message='Class not found')
            if student.user_id in class_obj.student_requests:
                raise DuplicateRequestError()
            enrollment = class_obj.enrollment_for(student.user_id)
            if enrollment:
                raise AlreadyEnrolledError(enrollment.status)

            ClassDAL.add_request(class_obj.class_id, student.user_id, conn=conn)
            UserDAL.update_user(student.user_id, college_status='pending',
                                pending_approval=True, conn=conn)

        self.logger.info('Student %s requested to join class %s', student.user_id, class_obj.class_id)
        return {
            'class_id': class_obj.class_id,
            'name': class_obj.name,
            'course': class_obj.course,
            'department': class_obj.department,
            'current_semester': class_obj.current_semester,
            'status': 'pending'
        }

    def resolve_request(self, class_id, student_id, decision: str, decided_by=None) -> CollegeClass:
        """
        Approve or reject a queued join request.

        The request leaves the queue and the (class, student) entry is
        written with the outcome, replacing any earlier one. Approval also
        links the student to the class and its college; rejection marks the
        student rejected only when no other class holds them. Class and user
        updates commit together.
        """
        if decision not in DECISIONS:
            raise ValidationError("Decision must be 'approve' or 'reject'",
                                  details={'decision': decision})
        class_id = Validator.validate_id(class_id, 'Class')
        student_id = Validator.validate_id(student_id, 'Student')
        status = DECISIONS[decision]

        with get_db(immediate=True) as conn:
            class_obj = ClassDAL.get_class_by_id(class_id, conn=conn)
            if not class_obj:
                raise NotFoundError('Class', class_id)
            if decided_by is not None:
                decider = load_user(decided_by, conn=conn)
                require(decider, 'class.manage', class_obj,
                        'Unauthorized. Only the class teacher can manage join requests')
            student = load_user(student_id, 'Student', conn=conn)
            if student.user_id not in class_obj.student_requests:
                raise NotInQueueError()

            ClassDAL.remove_request(class_id, student.user_id, conn=conn)
            ClassDAL.upsert_student(class_id, student.user_id, status, conn=conn)
            if status == 'approved':
                UserDAL.update_user(
                    student.user_id,
                    class_id=class_id,
                    college_id=class_obj.college_id,
                    is_verified=True,
                    college_status='approved',
                    pending_approval=False,
                    conn=conn
                )
            elif student.class_id is None:
                UserDAL.update_user(student.user_id, college_status='rejected', conn=conn)
            else:
                # Still enrolled elsewhere; only the queue flag changes
                UserDAL.update_user(student.user_id, college_status='approved',
                                    pending_approval=False, conn=conn)
            updated = ClassDAL.get_class_by_id(class_id, conn=conn)

        self.logger.info('Join request of student %s for class %s %s',
                         student.user_id, class_id, status)
        return updated

    # Faculty assignments -----------------------------------------------------

    def assign_faculty(self, class_id, faculty_id, subject: str, assigned_by_id) -> FacultyAssignment:
        """
        Assign a faculty member to teach ``subject`` in a class.

        Only the class owner or faculty already assigned to the class may
        assign others; each (faculty, subject) pair appears once.
        """
        class_id = Validator.validate_id(class_id, 'Class')
        faculty_id = Validator.validate_id(faculty_id, 'Faculty member')
        assigned_by_id = Validator.validate_id(assigned_by_id, 'User')
        subject = subject.strip() if isinstance(subject, str) else ''
        if not subject:
            raise ValidationError('Subject name is required', details={'field': 'subject'})

        with get_db(immediate=True) as conn:
            class_obj = ClassDAL.get_class_by_id(class_id, conn=conn)
            if not class_obj:
                raise NotFoundError('Class', class_id)
            faculty = load_user(faculty_id, 'Faculty member', conn=conn)
            if faculty.role not in TEACHING_ROLES:
                raise ValidationError('User is not a faculty member', details={'role': faculty.role})
            assigner = load_user(assigned_by_id, 'Assigning user', conn=conn)
            require(assigner, 'faculty.assign', class_obj,
                    'Unauthorized. Only class owner or assigned faculty can assign other faculty')

            if any(a.faculty_id == faculty.user_id and a.subject == subject
                   for a in class_obj.faculty_assignments):
                raise DuplicateAssignmentError(subject)

            assignment = ClassDAL.add_assignment(class_id, faculty.user_id, subject,
                                                 assigner.user_id, conn=conn)
            UserDAL.add_class(faculty.user_id, class_id, conn=conn)

        self.logger.info('Faculty %s assigned to teach %s in class %s by user %s',
                         faculty.user_id, subject, class_id, assigner.user_id)
        return assignment

    def remove_faculty_assignment(self, class_id, assignment_id, requested_by_id) -> bool:
        class_id = Validator.validate_id(class_id, 'Class')
        assignment_id = Validator.validate_id(assignment_id, 'Faculty assignment')
        requested_by_id = Validator.validate_id(requested_by_id, 'User')

        with get_db(immediate=True) as conn:
            class_obj = ClassDAL.get_class_by_id(class_id, conn=conn)
            if not class_obj:
                raise NotFoundError('Class', class_id)
            requester = load_user(requested_by_id, conn=conn)
            require(requester, 'faculty.remove', class_obj,
                    'Unauthorized. Only class owner can remove faculty assignments')

            assignment = next(
                (a for a in class_obj.faculty_assignments if a.assignment_id == assignment_id), None)
            if not assignment:
                raise NotFoundError('Faculty assignment', assignment_id,
                                    message='Faculty assignment not found')
            if assignment.faculty_id == class_obj.teacher_id:
                raise InvalidStateError('Cannot remove the class owner from faculty assignments')

            ClassDAL.remove_assignment(assignment_id, conn=conn)
            still_teaching = any(
                a.faculty_id == assignment.faculty_id and a.assignment_id != assignment_id
                for a in class_obj.faculty_assignments
            )
            if not still_teaching:
                UserDAL.remove_class(assignment.faculty_id, class_id, conn=conn)

        self.logger.info('Assignment %s removed from class %s by user %s',
                         assignment_id, class_id, requester.user_id)
        return True

    # Helpers -----------------------------------------------------------------

    @staticmethod
    def _generate_unique_code(conn, attempts=20) -> str:
        length = get_setting('CLASS_UNIQUE_CODE_LENGTH', 6)
        for _ in range(attempts):
            code = ''.join(secrets.choice(CODE_ALPHABET) for _ in range(length))
            if not ClassDAL.unique_code_exists(code, conn=conn):
                return code
        raise RuntimeError('Could not generate a unique class code')

    @staticmethod
    def _clean_class_fields(data: Dict) -> Dict:
        errors = {}
        fields = {}
        for key, label in (('name', 'Class name'), ('department', 'Department')):
            valid, message = Validator.validate_string(data.get(key), 1, 120, label)
            if valid:
                fields[key] = data[key].strip()
            else:
                errors[key] = message

        valid, total = Validator.validate_integer(data.get('total_semesters') or 8, 1, 12, 'Total semesters')
        if valid:
            fields['total_semesters'] = total
        else:
            errors['total_semesters'] = total
        valid, current = Validator.validate_integer(data.get('current_semester') or 1, 1,
                                                    fields.get('total_semesters', 12), 'Current semester')
        if valid:
            fields['current_semester'] = current
        else:
            errors['current_semester'] = current

        fields['course'] = (data.get('course') or '').strip() or None
        batch = data.get('batch')
        fields['batch'] = str(batch).strip() if batch not in (None, '') else None

        if errors:
            raise ValidationError('Invalid class data', details=errors)
        return fields


def _student_summary(user, status: str, join_request_date: Optional[str]) -> Dict:
    return {
        'user_id': user.user_id,
        'name': user.name,
        'email': user.email,
        'department': user.department,
        'roll_no': user.roll_no,
        'college_id': user.college_id,
        'status': status,
        'join_request_date': join_request_date
    }
