"""
Controllers package: one JSON Blueprint per area of the API.
"""
from campus_connect.controllers.booking_controller import booking_bp
from campus_connect.controllers.class_controller import class_bp
from campus_connect.controllers.college_controller import college_bp
from campus_connect.controllers.room_controller import room_bp
from campus_connect.controllers.user_controller import user_bp

API_BLUEPRINTS = (user_bp, college_bp, room_bp, booking_bp, class_bp)

__all__ = ['API_BLUEPRINTS', 'booking_bp', 'class_bp', 'college_bp', 'room_bp', 'user_bp']
