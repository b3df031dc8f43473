import sqlite3

import pytest

from campus_connect.data_access.booking_dal import BookingDAL
from campus_connect.data_access.room_dal import RoomDAL
from campus_connect.data_access.user_dal import UserDAL
from campus_connect.services.booking_service import BookingService
from campus_connect.utils.errors import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)

from conftest import BOOKING_DATE

pytestmark = pytest.mark.usefixtures('app_ctx')


def _raw_pending(campus, start_time, end_time, user):
    """Insert a pending booking without the availability check."""
    return BookingDAL.create_booking(
        room_id=campus.room.room_id,
        college_id=campus.college.college_id,
        requested_by=user.user_id,
        title='Raced request',
        purpose='meeting',
        booking_date=BOOKING_DATE,
        start_time=start_time,
        end_time=end_time,
    )


def test_create_booking_starts_pending(campus, book):
    booking = book('09:00', '10:00', additional_notes='Need the <script>x</script>projector')

    assert booking.status == 'pending'
    assert booking.requested_by == campus.student.user_id
    assert booking.college_id == campus.college.college_id
    assert booking.booking_date == BOOKING_DATE
    assert booking.additional_notes == 'Need the projector'
    assert booking.approved_by is None


def test_create_booking_requires_existing_room(campus, book):
    with pytest.raises(NotFoundError) as excinfo:
        BookingService().create_booking(
            {'room_id': 4242, 'title': 'Demo', 'date': BOOKING_DATE,
             'start_time': '09:00', 'end_time': '10:00'},
            campus.student.user_id
        )
    assert excinfo.value.code == 'ROOM_NOT_FOUND'


def test_create_booking_checks_capacity_and_room_state(campus, book):
    with pytest.raises(ValidationError):
        book('09:00', '10:00', attendees=11)

    RoomDAL.update_room(campus.room.room_id, is_active=False)
    with pytest.raises(ValidationError):
        book('09:00', '10:00')


def test_create_booking_requires_title(campus, book):
    with pytest.raises(ValidationError):
        book('09:00', '10:00', title='   ')


def test_approve_records_approver_and_time(campus, book):
    booking = book('09:00', '10:00')

    approved = BookingService().update_booking_status(
        booking.booking_id, 'approved', approver_id=campus.hod.user_id)

    assert approved.status == 'approved'
    assert approved.approved_by == campus.hod.user_id
    assert approved.approved_at is not None


def test_reject_records_reason(campus, book):
    booking = book('09:00', '10:00')

    rejected = BookingService().update_booking_status(
        booking.booking_id, 'rejected', approver_id=campus.hod.user_id,
        rejection_reason='Reserved for exams')

    assert rejected.status == 'rejected'
    assert rejected.rejection_reason == 'Reserved for exams'


def test_decisions_only_apply_to_pending_bookings(campus, book):
    service = BookingService()
    booking = book('09:00', '10:00')
    service.update_booking_status(booking.booking_id, 'rejected', approver_id=campus.hod.user_id)

    with pytest.raises(InvalidStateError):
        service.update_booking_status(booking.booking_id, 'approved', approver_id=campus.hod.user_id)


def test_status_must_be_a_decision(campus, book):
    booking = book('09:00', '10:00')
    with pytest.raises(ValidationError):
        BookingService().update_booking_status(booking.booking_id, 'canceled',
                                               approver_id=campus.hod.user_id)


def test_only_college_hod_or_admin_decides(campus, book):
    booking = book('09:00', '10:00')
    service = BookingService()
    with pytest.raises(UnauthorizedError):
        service.update_booking_status(booking.booking_id, 'approved', approver_id=campus.faculty.user_id)

    admin = UserDAL.create_user('Ada Admin', 'admin@campus.example', role='admin')
    assert service.update_booking_status(
        booking.booking_id, 'approved', approver_id=admin.user_id).status == 'approved'


def test_approval_rechecks_other_approved_bookings(campus):
    service = BookingService()
    first = _raw_pending(campus, '09:00', '10:00', campus.student)
    second = _raw_pending(campus, '09:30', '10:30', campus.other_student)

    service.update_booking_status(first.booking_id, 'approved', approver_id=campus.hod.user_id)
    with pytest.raises(ConflictError) as excinfo:
        service.update_booking_status(second.booking_id, 'approved', approver_id=campus.hod.user_id)

    assert excinfo.value.details['conflicting_bookings'] == [first.booking_id]
    assert service.get_booking(second.booking_id).status == 'pending'


def test_approval_recheck_can_be_disabled(app, campus):
    app.config['REVALIDATE_ON_APPROVAL'] = False
    service = BookingService()
    first = _raw_pending(campus, '09:00', '10:00', campus.student)
    second = _raw_pending(campus, '09:30', '10:30', campus.other_student)

    service.update_booking_status(first.booking_id, 'approved')
    assert service.update_booking_status(second.booking_id, 'approved').status == 'approved'


def test_cancel_requires_owner(campus, book):
    booking = book('09:00', '10:00')
    with pytest.raises(ForbiddenError) as excinfo:
        BookingService().cancel_booking(booking.booking_id, campus.other_student.user_id)
    assert excinfo.value.status_code == 403


def test_cancel_approved_booking(campus, book):
    service = BookingService()
    booking = book('09:00', '10:00')
    service.update_booking_status(booking.booking_id, 'approved', approver_id=campus.hod.user_id)

    assert service.cancel_booking(booking.booking_id, campus.student.user_id).status == 'canceled'


@pytest.mark.parametrize('terminal', ['rejected', 'canceled'])
def test_cancel_terminal_booking_is_invalid(campus, book, terminal):
    service = BookingService()
    booking = book('09:00', '10:00')
    if terminal == 'rejected':
        service.update_booking_status(booking.booking_id, 'rejected', approver_id=campus.hod.user_id)
    else:
        service.cancel_booking(booking.booking_id, campus.student.user_id)

    with pytest.raises(InvalidStateError) as excinfo:
        service.cancel_booking(booking.booking_id, campus.student.user_id)
    assert excinfo.value.message == f'Booking is already {terminal}'


def test_paginated_booking_listing(campus, book):
    for day in ('2026-11-02', '2026-11-03', '2026-11-04'):
        book('09:00', '10:00', date=day)
    book('09:00', '10:00', date='2026-11-05', user=campus.other_student)
    service = BookingService()

    page_one = service.get_user_bookings(campus.student.user_id, limit=2)
    page_two = service.get_user_bookings(campus.student.user_id, page=2, limit=2)

    assert page_one['total'] == 3
    assert page_one['total_pages'] == 2
    assert [b.booking_date for b in page_one['bookings']] == ['2026-11-04', '2026-11-03']
    assert [b.booking_date for b in page_two['bookings']] == ['2026-11-02']


def test_list_for_room_defaults_to_approved(campus, book):
    service = BookingService()
    approved = book('09:00', '10:00')
    service.update_booking_status(approved.booking_id, 'approved', approver_id=campus.hod.user_id)
    book('11:00', '12:00')

    listed = service.list_for_room(campus.room.room_id, date_from='2026-11-01')
    both = service.list_for_room(campus.room.room_id, date_from='2026-11-01',
                                 statuses=['approved', 'pending'])

    assert [b.booking_id for b in listed] == [approved.booking_id]
    assert len(both) == 2


def test_bookings_by_date_range(campus, book):
    book('09:00', '10:00', date='2026-11-02')
    book('09:00', '10:00', date='2026-11-06')
    service = BookingService()

    in_range = service.get_bookings_by_date_range('2026-11-01', '2026-11-03')
    assert [b.booking_date for b in in_range] == ['2026-11-02']

    with pytest.raises(ValidationError):
        service.get_bookings_by_date_range('2026-11-05', '2026-11-01')


def test_availability_check_runs_under_the_write_lock(app, campus, book, monkeypatch):
    """A second writer cannot start between the conflict check and the insert."""
    original = BookingDAL.find_conflicts
    lock_errors = []

    def checking_conflicts(*args, **kwargs):
        rival = sqlite3.connect(app.config['DATABASE_PATH'], timeout=0)
        try:
            rival.execute('BEGIN IMMEDIATE')
            rival.rollback()
        except sqlite3.OperationalError as exc:
            lock_errors.append(str(exc))
        finally:
            rival.close()
        return original(*args, **kwargs)

    monkeypatch.setattr(BookingDAL, 'find_conflicts', checking_conflicts)
    book('09:00', '10:00')

    assert lock_errors and 'locked' in lock_errors[0]


def test_failed_insert_rolls_back_booking(campus, book, monkeypatch):
    original = BookingDAL.create_booking

    def insert_then_fail(*args, **kwargs):
        original(*args, **kwargs)
        raise RuntimeError('disk full')

    with monkeypatch.context() as m:
        m.setattr(BookingDAL, 'create_booking', insert_then_fail)
        with pytest.raises(RuntimeError):
            book('09:00', '10:00')

    assert BookingDAL.count_bookings() == 0
    assert book('09:00', '10:00').status == 'pending'
