import pytest

from campus_connect.data_access.user_dal import UserDAL
from campus_connect.services.college_service import CollegeService
from campus_connect.utils.errors import (
    ConflictError,
    DuplicateRequestError,
    NotFoundError,
    NotInQueueError,
    UnauthorizedError,
    ValidationError,
)

pytestmark = pytest.mark.usefixtures('app_ctx')


@pytest.fixture
def service():
    return CollegeService()


@pytest.fixture
def newcomer(campus):
    """Faculty member not yet linked to any college."""
    return UserDAL.create_user('Nikhil Jain', 'nikhil@cbit.ac.in', role='faculty', department='ECE')


def test_create_college_links_hod(campus):
    college = campus.college
    hod = campus.hod

    assert college.code == 'CBIT'
    assert college.domain == 'cbit.ac.in'
    assert college.departments == ['CSE', 'ECE']
    assert len(college.unique_id) == 8
    assert college.hod_id == hod.user_id
    assert hod.college_id == college.college_id
    assert hod.college_status == 'approved'
    assert hod.verification_method == 'hod'
    assert hod.pending_approval is False


def test_duplicate_college_code(campus, service):
    other_hod = UserDAL.create_user('Vikram Sen', 'vikram@vce.ac.in', role='hod')
    with pytest.raises(ConflictError) as excinfo:
        service.create_college({'name': 'Copycat', 'code': 'CBIT', 'domain': 'copy.ac.in'},
                               other_hod.user_id)
    assert excinfo.value.code == 'DUPLICATE_COLLEGE'


def test_create_college_requires_domain(campus, service):
    other_hod = UserDAL.create_user('Vikram Sen', 'vikram@vce.ac.in', role='hod')
    with pytest.raises(ValidationError):
        service.create_college({'name': 'Vasavi', 'code': 'VCE'}, other_hod.user_id)


def test_students_cannot_create_colleges(campus, service):
    with pytest.raises(UnauthorizedError):
        service.create_college({'name': 'Vasavi', 'code': 'VCE', 'domain': 'vce.ac.in'},
                               campus.student.user_id)


def test_lookup_by_unique_id(campus, service):
    found = service.get_college_by_unique_id(campus.college.unique_id)
    assert found.college_id == campus.college.college_id
    with pytest.raises(NotFoundError):
        service.get_college_by_unique_id('nope1234')


def test_teacher_registration_and_approval(campus, service, newcomer):
    college = service.register_teacher(newcomer.user_id, campus.college.unique_id)
    assert newcomer.user_id in college.pending_teachers
    assert UserDAL.get_user_by_id(newcomer.user_id).college_status == 'pending'

    with pytest.raises(DuplicateRequestError):
        service.register_teacher(newcomer.user_id, campus.college.unique_id)

    college = service.resolve_teacher(campus.college.college_id, newcomer.user_id, 'approve',
                                      campus.hod.user_id)
    assert newcomer.user_id in college.verified_teachers
    assert newcomer.user_id not in college.pending_teachers
    teacher = UserDAL.get_user_by_id(newcomer.user_id)
    assert teacher.college_status == 'approved'
    assert teacher.is_verified is True

    with pytest.raises(NotInQueueError):
        service.resolve_teacher(campus.college.college_id, newcomer.user_id, 'approve',
                                campus.hod.user_id)
    with pytest.raises(ConflictError) as excinfo:
        service.register_teacher(newcomer.user_id, campus.college.unique_id)
    assert excinfo.value.code == 'ALREADY_VERIFIED'


def test_teacher_rejection(campus, service, newcomer):
    service.register_teacher(newcomer.user_id, campus.college.unique_id)

    college = service.resolve_teacher(campus.college.college_id, newcomer.user_id, 'reject',
                                      campus.hod.user_id)

    assert newcomer.user_id not in college.pending_teachers
    assert newcomer.user_id not in college.verified_teachers
    assert UserDAL.get_user_by_id(newcomer.user_id).college_status == 'rejected'


def test_only_college_hod_resolves_teachers(campus, service, newcomer):
    service.register_teacher(newcomer.user_id, campus.college.unique_id)
    with pytest.raises(UnauthorizedError):
        service.resolve_teacher(campus.college.college_id, newcomer.user_id, 'approve',
                                campus.faculty.user_id)


def test_teacher_college_status(campus, service, newcomer):
    assert service.get_teacher_college_status(newcomer.user_id) == {'college': None, 'status': None}

    service.register_teacher(newcomer.user_id, campus.college.unique_id)
    status = service.get_teacher_college_status(newcomer.user_id)

    assert status['status'] == 'pending'
    assert status['college']['code'] == 'CBIT'
    assert status['college']['department'] == 'ECE'


def test_students_cannot_register_as_teachers(campus, service):
    with pytest.raises(UnauthorizedError):
        service.register_teacher(campus.student.user_id, campus.college.unique_id)


def test_get_teachers_by_status(campus, service, newcomer):
    service.register_teacher(newcomer.user_id, campus.college.unique_id)

    teachers = service.get_teachers(campus.college.college_id)
    assert [u.user_id for u in teachers['pending']] == [newcomer.user_id]
    assert teachers['verified'] == []
    assert set(service.get_teachers(campus.college.college_id, 'pending')) == {'pending'}

    with pytest.raises(ValidationError):
        service.get_teachers(campus.college.college_id, 'archived')


def test_deactivated_college_is_hidden(campus, service):
    service.set_college_active(campus.college.college_id, False, campus.hod.user_id)

    assert service.list_colleges() == []
    assert len(service.list_colleges(include_inactive=True)) == 1
    with pytest.raises(NotFoundError):
        service.get_college_by_unique_id(campus.college.unique_id)


def test_failed_teacher_decision_keeps_request_pending(campus, service, newcomer, monkeypatch):
    service.register_teacher(newcomer.user_id, campus.college.unique_id)

    def broken_update(*args, **kwargs):
        raise RuntimeError('disk full')

    with monkeypatch.context() as m:
        m.setattr(UserDAL, 'update_user', broken_update)
        with pytest.raises(RuntimeError):
            service.resolve_teacher(campus.college.college_id, newcomer.user_id, 'approve',
                                    campus.hod.user_id)

    college = service.get_college(campus.college.college_id)
    assert newcomer.user_id in college.pending_teachers
    assert newcomer.user_id not in college.verified_teachers
    assert UserDAL.get_user_by_id(newcomer.user_id).college_status == 'pending'


def test_college_for_email_matches_domain_exactly(campus, service):
    assert service.college_for_email('tara@CBIT.ac.in').college_id == campus.college.college_id
    assert service.college_for_email('tara@cse.cbit.ac.in') is None
    assert service.college_for_email('tara@vce.ac.in') is None
    assert service.college_for_email('not-an-email') is None

    assert service.get_college_by_domain('cbit.ac.in').college_id == campus.college.college_id
    with pytest.raises(NotFoundError):
        service.get_college_by_domain('vce.ac.in')

    service.set_college_active(campus.college.college_id, False, campus.hod.user_id)
    assert service.college_for_email('tara@cbit.ac.in') is None


def test_college_by_user(campus, service):
    assert service.get_college_by_user(campus.hod.user_id).college_id == campus.college.college_id
    assert service.get_college_by_user(campus.faculty.user_id).college_id == campus.college.college_id
    assert service.get_college_by_user(campus.student.user_id) is None

    # An HOD maps to the college they administer even without a link of their own
    UserDAL.update_user(campus.hod.user_id, college_id=None)
    assert service.get_college_by_user(campus.hod.user_id).college_id == campus.college.college_id
