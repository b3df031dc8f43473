"""
Booking Controller
Handles room booking requests, decisions and cancellations
"""
from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from campus_connect.services.booking_service import BookingService
from campus_connect.utils.permissions import is_admin, user_has_role

booking_bp = Blueprint('bookings', __name__, url_prefix='/api/room-bookings')


@booking_bp.route('', methods=['POST'])
@login_required
def create_booking():
    """
    Request a room booking.

    Body: room_id, title, purpose, date, start_time, end_time, attendees,
    additional_notes. The booking starts out pending.
    """
    data = request.get_json(silent=True) or {}
    booking = BookingService().create_booking(data, current_user.user_id)
    return jsonify({'message': 'Room booking created successfully', 'booking': booking.to_dict()}), 201


@booking_bp.route('', methods=['GET'])
@login_required
def list_bookings():
    """
    Paginated bookings.

    Admins see every booking, HODs the bookings of their college and
    everyone else (an HOD without a college included) their own requests.
    ``mine=1`` restricts anyone to their own requests.
    """
    args = request.args
    filters = {
        'room_id': args.get('room_id'),
        'status': args.get('status'),
        'date': args.get('date'),
        'date_from': args.get('date_from'),
        'date_to': args.get('date_to'),
    }
    mine = args.get('mine', '').lower() in ('1', 'true', 'yes')
    college_scope = user_has_role('hod') and current_user.college_id is not None
    if mine or not (is_admin() or college_scope):
        filters['requested_by'] = current_user.user_id
    elif not is_admin():
        filters['college_id'] = current_user.college_id

    result = BookingService().get_bookings(filters, page=args.get('page', 1), limit=args.get('limit'))
    result['bookings'] = [b.to_dict() for b in result['bookings']]
    return jsonify(result)


@booking_bp.route('/range', methods=['GET'])
@login_required
def bookings_in_range():
    statuses = request.args.getlist('status') or ['approved', 'pending']
    bookings = BookingService().get_bookings_by_date_range(
        request.args.get('start_date'),
        request.args.get('end_date'),
        room_id=request.args.get('room_id'),
        statuses=statuses
    )
    return jsonify({'bookings': [b.to_dict() for b in bookings]})


@booking_bp.route('/<booking_id>', methods=['GET'])
@login_required
def get_booking(booking_id):
    booking = BookingService().get_booking(booking_id, viewer_id=current_user.user_id)
    return jsonify({'booking': booking.to_dict()})


@booking_bp.route('/<booking_id>/status', methods=['PATCH', 'POST'])
@login_required
def update_status(booking_id):
    """Approve or reject a pending booking (college HOD or admin)"""
    data = request.get_json(silent=True) or {}
    booking = BookingService().update_booking_status(
        booking_id,
        data.get('status'),
        approver_id=current_user.user_id,
        rejection_reason=data.get('rejection_reason')
    )
    return jsonify({'message': f'Booking {booking.status}', 'booking': booking.to_dict()})


@booking_bp.route('/<booking_id>/cancel', methods=['POST'])
@login_required
def cancel_booking(booking_id):
    booking = BookingService().cancel_booking(booking_id, current_user.user_id)
    return jsonify({'message': 'Booking canceled', 'booking': booking.to_dict()})
