"""
Room Controller
Room administration, availability checks and the daily slot grid
"""
from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from campus_connect.services.booking_service import BookingService
from campus_connect.services.room_service import RoomService

room_bp = Blueprint('rooms', __name__, url_prefix='/api/rooms')


@room_bp.route('', methods=['GET'])
@login_required
def list_rooms():
    """List rooms of a college (defaults to the caller's college)"""
    college_id = request.args.get('college_id') or current_user.college_id
    active_only = request.args.get('active_only', '').lower() in ('1', 'true', 'yes')
    rooms = RoomService().list_rooms(college_id=college_id, active_only=active_only)
    return jsonify({'rooms': [room.to_dict() for room in rooms]})


@room_bp.route('', methods=['POST'])
@login_required
def create_room():
    data = request.get_json(silent=True) or {}
    room = RoomService().create_room(data, current_user.user_id)
    return jsonify({'message': 'Room created successfully', 'room': room.to_dict()}), 201


@room_bp.route('/<room_id>', methods=['GET'])
@login_required
def get_room(room_id):
    return jsonify({'room': RoomService().get_room(room_id).to_dict()})


@room_bp.route('/<room_id>', methods=['PUT', 'PATCH'])
@login_required
def update_room(room_id):
    data = request.get_json(silent=True) or {}
    room = RoomService().update_room(room_id, data, current_user.user_id)
    return jsonify({'message': 'Room updated successfully', 'room': room.to_dict()})


@room_bp.route('/<room_id>', methods=['DELETE'])
@login_required
def delete_room(room_id):
    RoomService().delete_room(room_id, current_user.user_id)
    return jsonify({'message': 'Room deleted successfully'})


@room_bp.route('/<room_id>/availability', methods=['GET'])
@login_required
def check_availability(room_id):
    """
    Check whether a room is free for a slot.

    Query args: date (YYYY-MM-DD), start_time and end_time (HH:MM).
    """
    result = RoomService().check_availability(
        room_id,
        request.args.get('date'),
        request.args.get('start_time'),
        request.args.get('end_time')
    )
    return jsonify({
        'is_available': result['is_available'],
        'conflicting_bookings': [b.to_dict() for b in result['conflicting_bookings']]
    })


@room_bp.route('/<room_id>/time-slots', methods=['GET'])
@login_required
def time_slots(room_id):
    slots = RoomService().get_available_time_slots(room_id, request.args.get('date'))
    return jsonify({'date': request.args.get('date'), 'time_slots': slots})


@room_bp.route('/<room_id>/bookings', methods=['GET'])
@login_required
def room_bookings(room_id):
    """Upcoming bookings of a room; status may repeat (?status=approved&status=pending)"""
    statuses = request.args.getlist('status') or ['approved']
    bookings = BookingService().list_for_room(
        room_id,
        date_from=request.args.get('date_from'),
        date_to=request.args.get('date_to'),
        statuses=statuses
    )
    return jsonify({'bookings': [b.to_dict() for b in bookings]})
