"""
College service: tenant records and teacher membership.
"""
from __future__ import annotations

import secrets
import string
from typing import Dict, List, Optional

from campus_connect.data_access import get_db
from campus_connect.data_access.college_dal import CollegeDAL
from campus_connect.data_access.user_dal import UserDAL
from campus_connect.models.models import College
from campus_connect.services import get_logger, get_setting, load_user
from campus_connect.utils.errors import (
    ConflictError,
    DuplicateRequestError,
    NotFoundError,
    NotInQueueError,
    UnauthorizedError,
    ValidationError,
)
from campus_connect.utils.permissions import TEACHING_ROLES, require
from campus_connect.utils.validators import Validator

UNIQUE_ID_ALPHABET = string.ascii_letters + string.digits


class CollegeService:
    """Colleges and the teacher registration queue."""

    def __init__(self) -> None:
        self.logger = get_logger(__name__)

    def create_college(self, data: Dict, hod_id) -> College:
        """
        Create a college administered by ``hod_id`` and link the HOD to it.

        Raises:
            ValidationError: name, code or domain missing
            ConflictError: another college already uses the code
        """
        hod = load_user(hod_id, 'HOD')
        require(hod, 'college.create', message='Unauthorized. Only a HOD or admin can create a college')

        name = (data.get('name') or '').strip()
        code = (data.get('code') or '').strip().upper()
        domain = (data.get('domain') or '').strip().lower()
        if not name or not code or not domain:
            raise ValidationError('Name, code, and domain are required')

        with get_db(immediate=True) as conn:
            if CollegeDAL.get_college_by_code(code, active_only=False, conn=conn):
                raise ConflictError('A college with this code already exists',
                                    code='DUPLICATE_COLLEGE', details={'code': code})
            college = CollegeDAL.create_college(
                name=name,
                code=code,
                unique_id=self._generate_unique_id(conn),
                domain=domain,
                hod_id=hod.user_id,
                departments=_clean_departments(data.get('departments')),
                active=data.get('active', True) is not False,
                conn=conn
            )
            UserDAL.update_user(
                hod.user_id,
                college_id=college.college_id,
                college_status='approved',
                is_verified=True,
                verification_method='hod',
                pending_approval=False,
                conn=conn
            )

        self.logger.info('College %s (%s) created by HOD %s', college.college_id, code, hod.user_id)
        return college

    def get_college(self, college_id) -> College:
        college_id = Validator.validate_id(college_id, 'College')
        college = CollegeDAL.get_college_by_id(college_id)
        if not college:
            raise NotFoundError('College', college_id)
        return college

    def get_college_by_unique_id(self, unique_id: str) -> College:
        if not isinstance(unique_id, str) or not unique_id.strip():
            raise ValidationError('College unique ID is required')
        college = CollegeDAL.get_college_by_unique_id(unique_id)
        if not college:
            raise NotFoundError('College', unique_id)
        return college

    def list_colleges(self, include_inactive=False) -> List[College]:
        return CollegeDAL.get_all_colleges(include_inactive=include_inactive)

    def get_college_by_domain(self, domain: str) -> College:
        if not isinstance(domain, str) or not domain.strip():
            raise ValidationError('Domain is required')
        college = CollegeDAL.get_college_by_domain(domain)
        if not college:
            raise NotFoundError('College', domain)
        return college

    @staticmethod
    def college_for_email(email: str) -> Optional[College]:
        """Active college owning the domain of ``email``, if any."""
        if not isinstance(email, str) or '@' not in email:
            return None
        domain = email.rsplit('@', 1)[1]
        return CollegeDAL.get_college_by_domain(domain) if domain.strip() else None

    def get_college_by_user(self, user_id) -> Optional[College]:
        """
        The college a user belongs to: the one an HOD administers, otherwise
        the one the user is linked to. None when neither exists.
        """
        user = load_user(user_id)
        if user.role == 'hod':
            college = CollegeDAL.get_college_by_hod(user.user_id)
            if college:
                return college
        if user.college_id is None:
            return None
        return CollegeDAL.get_college_by_id(user.college_id)

    def update_college(self, college_id, data: Dict, updated_by) -> College:
        college = self.get_college(college_id)
        actor = load_user(updated_by)
        require(actor, 'college.manage', college, 'Unauthorized. Only the college HOD can update it')

        updates = {}
        if data.get('name') is not None:
            valid, message = Validator.validate_string(data['name'], 1, 200, 'Name')
            if not valid:
                raise ValidationError(message, details={'field': 'name'})
            updates['name'] = data['name'].strip()
        if data.get('domain') is not None:
            updates['domain'] = data['domain'].strip().lower()
        if data.get('departments') is not None:
            updates['departments'] = _clean_departments(data['departments'])

        updated = CollegeDAL.update_college(college.college_id, **updates)
        self.logger.info('College %s updated by user %s', college.college_id, actor.user_id)
        return updated

    def set_college_active(self, college_id, active: bool, updated_by) -> College:
        college = self.get_college(college_id)
        actor = load_user(updated_by)
        require(actor, 'college.manage', college, 'Unauthorized. Only the college HOD can update it')
        updated = CollegeDAL.update_college(college.college_id, active=bool(active))
        self.logger.info('College %s %s by user %s', college.college_id,
                         'activated' if active else 'deactivated', actor.user_id)
        return updated

    # Teacher membership ------------------------------------------------------

    def register_teacher(self, teacher_id, college_unique_id: str) -> College:
        """Queue a faculty member for approval by the college HOD."""
        teacher = load_user(teacher_id, 'Teacher')
        if teacher.role not in TEACHING_ROLES:
            raise UnauthorizedError('Unauthorized. Only teachers can join a college')
        college = self.get_college_by_unique_id(college_unique_id)

        with get_db(immediate=True) as conn:
            status = CollegeDAL.get_teacher_status(college.college_id, teacher.user_id, conn=conn)
            if status == 'approved':
                raise ConflictError('You are already a verified teacher of this college',
                                    code='ALREADY_VERIFIED')
            if status == 'pending':
                raise DuplicateRequestError(
                    'You have already requested to join this college. Please wait for approval.')
            CollegeDAL.add_teacher(college.college_id, teacher.user_id, 'pending', conn=conn)
            UserDAL.update_user(
                teacher.user_id,
                college_id=college.college_id,
                college_status='pending',
                pending_approval=True,
                conn=conn
            )
            updated = CollegeDAL.get_college_by_id(college.college_id, conn=conn)

        self.logger.info('Teacher %s requested to join college %s', teacher.user_id, college.college_id)
        return updated

    def resolve_teacher(self, college_id, teacher_id, decision: str, approver_id) -> College:
        """
        Approve or reject a pending teacher. College membership and the
        teacher's own status change in one transaction.
        """
        if decision not in ('approve', 'reject'):
            raise ValidationError("Decision must be 'approve' or 'reject'",
                                  details={'decision': decision})
        college = self.get_college(college_id)
        approver = load_user(approver_id, 'Approver')
        require(approver, 'college.manage', college,
                'Unauthorized. Only the college HOD can approve teachers')
        teacher = load_user(teacher_id, 'Teacher')

        with get_db(immediate=True) as conn:
            status = CollegeDAL.get_teacher_status(college.college_id, teacher.user_id, conn=conn)
            if status != 'pending':
                raise NotInQueueError('Teacher has no pending request for this college')
            if decision == 'approve':
                CollegeDAL.approve_teacher(college.college_id, teacher.user_id, conn=conn)
                UserDAL.update_user(
                    teacher.user_id,
                    college_id=college.college_id,
                    college_status='approved',
                    is_verified=True,
                    verification_method='hod',
                    pending_approval=False,
                    conn=conn
                )
            else:
                CollegeDAL.remove_teacher(college.college_id, teacher.user_id, conn=conn)
                UserDAL.update_user(teacher.user_id, college_status='rejected', conn=conn)
            updated = CollegeDAL.get_college_by_id(college.college_id, conn=conn)

        outcome = 'approved' if decision == 'approve' else 'rejected'
        self.logger.info('Teacher %s %s for college %s by user %s',
                         teacher.user_id, outcome, college.college_id, approver.user_id)
        return updated

    def get_teacher_college_status(self, teacher_id) -> Dict:
        teacher = load_user(teacher_id, 'Teacher')
        if not teacher.college_id:
            return {'college': None, 'status': None}
        college = CollegeDAL.get_college_by_id(teacher.college_id)
        if not college:
            return {'college': None, 'status': None}
        status = 'approved' if teacher.user_id in college.verified_teachers \
            else teacher.college_status or 'pending'
        return {
            'college': {
                'college_id': college.college_id,
                'name': college.name,
                'code': college.code,
                'domain': college.domain,
                'department': teacher.department
            },
            'status': status
        }

    def get_teachers(self, college_id, status: Optional[str] = None) -> Dict:
        """Verified and pending teachers of a college."""
        college = self.get_college(college_id)
        result = {}
        if status in (None, 'approved'):
            result['verified'] = UserDAL.get_users_by_ids(college.verified_teachers)
        if status in (None, 'pending'):
            result['pending'] = UserDAL.get_users_by_ids(college.pending_teachers)
        if not result:
            raise ValidationError("Status must be one of: approved, pending", details={'status': status})
        return result

    # Helpers -----------------------------------------------------------------

    @staticmethod
    def _generate_unique_id(conn, attempts=20) -> str:
        length = get_setting('COLLEGE_UNIQUE_ID_LENGTH', 8)
        for _ in range(attempts):
            candidate = ''.join(secrets.choice(UNIQUE_ID_ALPHABET) for _ in range(length))
            if not CollegeDAL.unique_id_exists(candidate, conn=conn):
                return candidate
        raise RuntimeError('Could not generate a unique college ID')


def _clean_departments(value) -> List[str]:
    if not value:
        return []
    if isinstance(value, str):
        value = value.split(',')
    return [d.strip() for d in value if isinstance(d, str) and d.strip()]
