from types import SimpleNamespace

import pytest

from campus_connect.app import create_app
from campus_connect.config import Config, TestingConfig
from campus_connect.data_access.room_dal import RoomDAL
from campus_connect.data_access.user_dal import UserDAL
from campus_connect.services.booking_service import BookingService
from campus_connect.services.college_service import CollegeService

BOOKING_DATE = '2026-11-02'


@pytest.fixture
def app(tmp_path, monkeypatch):
    """Application bound to a throwaway sqlite database."""
    monkeypatch.setattr(Config, 'DATABASE_PATH', str(tmp_path / 'campus_connect_test.db'))
    return create_app(TestingConfig)


@pytest.fixture
def app_ctx(app):
    """App context for service-level tests; HTTP tests run without one."""
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def campus(app):
    """One college with its HOD, two faculty, two students and a 10-seat room."""
    hod = UserDAL.create_user('Hema Rao', 'hema@cbit.ac.in', role='hod')
    college = CollegeService().create_college(
        {'name': 'Chaitanya Bharathi Institute', 'code': 'cbit', 'domain': 'cbit.ac.in',
         'departments': ['CSE', 'ECE']},
        hod.user_id
    )
    linked = dict(college_id=college.college_id, college_status='approved', is_verified=True)
    faculty = UserDAL.create_user('Farah Khan', 'farah@cbit.ac.in', role='faculty', department='CSE', **linked)
    other_faculty = UserDAL.create_user('Omar Das', 'omar@cbit.ac.in', role='faculty', department='CSE', **linked)
    student = UserDAL.create_user('Sita Reddy', 'sita@cbit.ac.in', role='student', roll_no='CS101')
    other_student = UserDAL.create_user('Ravi Kumar', 'ravi@cbit.ac.in', role='student', roll_no='CS102')
    room = RoomDAL.create_room(college.college_id, 'Seminar Hall', 'Main Block', 1, 10,
                               facilities=['projector', 'whiteboard'])
    return SimpleNamespace(
        college=college,
        hod=UserDAL.get_user_by_id(hod.user_id),
        faculty=faculty,
        other_faculty=other_faculty,
        student=student,
        other_student=other_student,
        room=room,
    )


@pytest.fixture
def book(campus):
    """Create a booking in the campus room; returns the RoomBooking."""
    def _book(start_time, end_time, user=None, date=BOOKING_DATE, room=None, **extra):
        data = {
            'room_id': (room or campus.room).room_id,
            'title': extra.pop('title', 'Project review'),
            'purpose': 'meeting',
            'date': date,
            'start_time': start_time,
            'end_time': end_time,
            'attendees': extra.pop('attendees', 5),
        }
        data.update(extra)
        return BookingService().create_booking(data, (user or campus.student).user_id)
    return _book


@pytest.fixture
def headers():
    """Identity header as set by the authentication provider."""
    def _headers(user):
        return {'X-User-Id': str(user.user_id)}
    return _headers
