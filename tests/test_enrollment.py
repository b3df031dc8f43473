import pytest

from campus_connect.data_access.class_dal import ClassDAL
from campus_connect.data_access.user_dal import UserDAL
from campus_connect.services.class_service import ClassService
from campus_connect.utils.errors import (
    AlreadyEnrolledError,
    DuplicateAssignmentError,
    DuplicateRequestError,
    InvalidIdError,
    InvalidStateError,
    NotFoundError,
    NotInQueueError,
    UnauthorizedError,
    ValidationError,
)

pytestmark = pytest.mark.usefixtures('app_ctx')


@pytest.fixture
def service():
    return ClassService()


@pytest.fixture
def cse_class(campus, service):
    return service.create_class(
        campus.faculty.user_id,
        campus.college.college_id,
        {'name': 'CSE 2026 A', 'course': 'B.Tech', 'department': 'CSE', 'batch': '2022-2026'}
    )


def test_create_class_generates_code_and_links_teacher(campus, cse_class):
    assert len(cse_class.unique_code) == 6
    assert cse_class.unique_code == cse_class.unique_code.upper()
    assert cse_class.teacher_id == campus.faculty.user_id
    assert cse_class.total_semesters == 8
    assert cse_class.current_semester == 1
    assert cse_class.class_id in UserDAL.get_class_ids(campus.faculty.user_id)


def test_students_cannot_create_classes(campus, service):
    with pytest.raises(UnauthorizedError):
        service.create_class(campus.student.user_id, campus.college.college_id,
                             {'name': 'Study group', 'department': 'CSE'})


def test_create_class_validates_fields(campus, service):
    with pytest.raises(ValidationError) as excinfo:
        service.create_class(campus.faculty.user_id, campus.college.college_id,
                             {'name': '', 'department': 'CSE', 'current_semester': 9})
    assert set(excinfo.value.details) == {'name', 'current_semester'}


def test_request_to_join_queues_student(campus, service, cse_class):
    result = service.request_to_join(campus.student.user_id, cse_class.unique_code.lower())

    assert result['status'] == 'pending'
    refreshed = service.get_class(cse_class.class_id)
    assert refreshed.student_requests == [campus.student.user_id]
    assert refreshed.students == []
    assert UserDAL.get_user_by_id(campus.student.user_id).college_status == 'pending'


def test_request_to_join_unknown_code(campus, service):
    with pytest.raises(NotFoundError):
        service.request_to_join(campus.student.user_id, 'ZZZ999')


def test_only_students_request_to_join(campus, service, cse_class):
    with pytest.raises(UnauthorizedError):
        service.request_to_join(campus.other_faculty.user_id, cse_class.unique_code)


def test_duplicate_request_rejected(campus, service, cse_class):
    service.request_to_join(campus.student.user_id, cse_class.unique_code)
    with pytest.raises(DuplicateRequestError):
        service.request_to_join(campus.student.user_id, cse_class.unique_code)


def test_approve_enrolls_student(campus, service, cse_class):
    """S requests C by code, the teacher approves, S is enrolled and cannot ask again."""
    service.request_to_join(campus.student.user_id, cse_class.unique_code)

    updated = service.resolve_request(cse_class.class_id, campus.student.user_id, 'approve',
                                      decided_by=campus.faculty.user_id)

    assert updated.student_requests == []
    entry = updated.enrollment_for(campus.student.user_id)
    assert entry.status == 'approved'
    assert entry.join_request_date is not None

    student = UserDAL.get_user_by_id(campus.student.user_id)
    assert student.college_status == 'approved'
    assert student.class_id == cse_class.class_id
    assert student.college_id == campus.college.college_id
    assert student.is_verified is True
    assert student.pending_approval is False

    with pytest.raises(AlreadyEnrolledError) as excinfo:
        service.request_to_join(campus.student.user_id, cse_class.unique_code)
    assert excinfo.value.code == 'ALREADY_ENROLLED'


def test_reject_blocks_new_requests_with_distinct_message(campus, service, cse_class):
    service.request_to_join(campus.student.user_id, cse_class.unique_code)
    service.resolve_request(cse_class.class_id, campus.student.user_id, 'reject')

    assert UserDAL.get_user_by_id(campus.student.user_id).college_status == 'rejected'
    with pytest.raises(AlreadyEnrolledError) as excinfo:
        service.request_to_join(campus.student.user_id, cse_class.unique_code)
    assert excinfo.value.code == 'ENROLLMENT_REJECTED'
    assert 'rejected' in excinfo.value.message


def test_pending_entry_has_its_own_message(campus, service, cse_class):
    ClassDAL.upsert_student(cse_class.class_id, campus.student.user_id, 'pending')
    with pytest.raises(AlreadyEnrolledError) as excinfo:
        service.request_to_join(campus.student.user_id, cse_class.unique_code)
    assert excinfo.value.code == 'ENROLLMENT_PENDING'


def test_resolving_twice_is_not_in_queue(campus, service, cse_class):
    service.request_to_join(campus.student.user_id, cse_class.unique_code)
    service.resolve_request(cse_class.class_id, campus.student.user_id, 'approve')

    with pytest.raises(NotInQueueError):
        service.resolve_request(cse_class.class_id, campus.student.user_id, 'approve')
    assert ClassDAL.count_students(cse_class.class_id) == 1


def test_resolve_requires_class_owner(campus, service, cse_class):
    service.request_to_join(campus.student.user_id, cse_class.unique_code)
    with pytest.raises(UnauthorizedError):
        service.resolve_request(cse_class.class_id, campus.student.user_id, 'approve',
                                decided_by=campus.other_faculty.user_id)
    assert service.get_class(cse_class.class_id).student_requests == [campus.student.user_id]


def test_resolve_rejects_unknown_decision(campus, service, cse_class):
    with pytest.raises(ValidationError):
        service.resolve_request(cse_class.class_id, campus.student.user_id, 'maybe')


def test_malformed_ids_are_rejected(campus, service):
    with pytest.raises(InvalidIdError):
        service.resolve_request('abc', campus.student.user_id, 'approve')
    with pytest.raises(InvalidIdError):
        service.get_class(-3)


def test_assign_faculty_by_owner(campus, service, cse_class):
    assignment = service.assign_faculty(cse_class.class_id, campus.other_faculty.user_id,
                                        ' Data Structures ', campus.faculty.user_id)

    assert assignment.subject == 'Data Structures'
    assert assignment.assigned_by == campus.faculty.user_id
    assert cse_class.class_id in UserDAL.get_class_ids(campus.other_faculty.user_id)
    with pytest.raises(DuplicateAssignmentError):
        service.assign_faculty(cse_class.class_id, campus.other_faculty.user_id,
                               'Data Structures', campus.faculty.user_id)


def test_assigned_faculty_may_assign_others(campus, service, cse_class):
    service.assign_faculty(cse_class.class_id, campus.other_faculty.user_id, 'Networks',
                           campus.faculty.user_id)
    extra = UserDAL.create_user('Lakshmi Iyer', 'lakshmi@cbit.ac.in', role='faculty',
                                college_id=campus.college.college_id)

    assignment = service.assign_faculty(cse_class.class_id, extra.user_id, 'Compilers',
                                        campus.other_faculty.user_id)
    assert assignment.faculty_id == extra.user_id


def test_outsiders_cannot_assign_faculty(campus, service, cse_class):
    with pytest.raises(UnauthorizedError) as excinfo:
        service.assign_faculty(cse_class.class_id, campus.other_faculty.user_id, 'Networks',
                               campus.other_faculty.user_id)
    assert 'Only class owner or assigned faculty' in excinfo.value.message


def test_assign_faculty_requires_subject(campus, service, cse_class):
    with pytest.raises(ValidationError) as excinfo:
        service.assign_faculty(cse_class.class_id, campus.other_faculty.user_id, '  ',
                               campus.faculty.user_id)
    assert excinfo.value.message == 'Subject name is required'


def test_remove_assignment_requires_owner(campus, service, cse_class):
    assignment = service.assign_faculty(cse_class.class_id, campus.other_faculty.user_id,
                                        'Networks', campus.faculty.user_id)
    with pytest.raises(UnauthorizedError):
        service.remove_faculty_assignment(cse_class.class_id, assignment.assignment_id,
                                          campus.other_faculty.user_id)


def test_owner_cannot_remove_own_assignment(campus, service, cse_class):
    own = service.assign_faculty(cse_class.class_id, campus.faculty.user_id, 'Algorithms',
                                 campus.faculty.user_id)
    with pytest.raises(InvalidStateError):
        service.remove_faculty_assignment(cse_class.class_id, own.assignment_id,
                                          campus.faculty.user_id)


def test_remove_unknown_assignment(campus, service, cse_class):
    with pytest.raises(NotFoundError):
        service.remove_faculty_assignment(cse_class.class_id, 777, campus.faculty.user_id)


def test_class_leaves_faculty_list_after_last_assignment(campus, service, cse_class):
    first = service.assign_faculty(cse_class.class_id, campus.other_faculty.user_id, 'Networks',
                                   campus.faculty.user_id)
    second = service.assign_faculty(cse_class.class_id, campus.other_faculty.user_id, 'Security',
                                    campus.faculty.user_id)

    service.remove_faculty_assignment(cse_class.class_id, first.assignment_id, campus.faculty.user_id)
    assert cse_class.class_id in UserDAL.get_class_ids(campus.other_faculty.user_id)

    service.remove_faculty_assignment(cse_class.class_id, second.assignment_id, campus.faculty.user_id)
    assert cse_class.class_id not in UserDAL.get_class_ids(campus.other_faculty.user_id)


def test_class_listings(campus, service, cse_class):
    service.request_to_join(campus.student.user_id, cse_class.unique_code)
    service.request_to_join(campus.other_student.user_id, cse_class.unique_code)
    service.resolve_request(cse_class.class_id, campus.student.user_id, 'approve')
    service.assign_faculty(cse_class.class_id, campus.other_faculty.user_id, 'Networks',
                           campus.faculty.user_id)

    owned = service.get_classes_by_teacher(campus.faculty.user_id)
    assert owned['total_students'] == 1

    assigned = service.get_classes_by_faculty(campus.other_faculty.user_id)
    assert assigned['total_classes'] == 1
    assert assigned['classes'][0]['teaching_subjects'] == ['Networks']

    enrolled = service.get_classes_by_student(campus.student.user_id)
    assert enrolled[0]['student_status'] == 'approved'

    pending = service.get_student_requests(cse_class.class_id, 'pending')
    assert [s['user_id'] for s in pending] == [campus.other_student.user_id]
    approved = service.get_student_requests(cse_class.class_id, 'approved')
    assert [s['user_id'] for s in approved] == [campus.student.user_id]
    assert [s['status'] for s in service.get_students_by_class(cse_class.class_id)] == ['approved']


def test_delete_class_detaches_members(campus, service, cse_class):
    service.request_to_join(campus.student.user_id, cse_class.unique_code)
    service.resolve_request(cse_class.class_id, campus.student.user_id, 'approve')

    with pytest.raises(UnauthorizedError):
        service.delete_class(cse_class.class_id, campus.other_faculty.user_id)

    assert service.delete_class(cse_class.class_id, campus.faculty.user_id) is True
    with pytest.raises(NotFoundError):
        service.get_class(cse_class.class_id)
    student = UserDAL.get_user_by_id(campus.student.user_id)
    assert student is not None
    assert student.class_id is None
    assert UserDAL.get_class_ids(campus.faculty.user_id) == []


def test_rejecting_second_class_keeps_existing_enrollment(campus, service, cse_class):
    service.request_to_join(campus.student.user_id, cse_class.unique_code)
    service.resolve_request(cse_class.class_id, campus.student.user_id, 'approve')
    elective = service.create_class(campus.other_faculty.user_id, campus.college.college_id,
                                    {'name': 'CSE Electives', 'department': 'CSE'})
    service.request_to_join(campus.student.user_id, elective.unique_code)

    service.resolve_request(elective.class_id, campus.student.user_id, 'reject')

    student = UserDAL.get_user_by_id(campus.student.user_id)
    assert student.class_id == cse_class.class_id
    assert student.college_status == 'approved'
    assert student.pending_approval is False
    assert service.get_class(elective.class_id).enrollment_for(student.user_id).status == 'rejected'


def test_failed_decision_leaves_request_queued(campus, service, cse_class, monkeypatch):
    service.request_to_join(campus.student.user_id, cse_class.unique_code)

    def broken_update(*args, **kwargs):
        raise RuntimeError('disk full')

    with monkeypatch.context() as m:
        m.setattr(UserDAL, 'update_user', broken_update)
        with pytest.raises(RuntimeError):
            service.resolve_request(cse_class.class_id, campus.student.user_id, 'approve')

    refreshed = service.get_class(cse_class.class_id)
    assert refreshed.student_requests == [campus.student.user_id]
    assert refreshed.students == []
    assert UserDAL.get_user_by_id(campus.student.user_id).class_id is None
