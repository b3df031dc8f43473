"""
User Controller
Registers user profiles for identities issued by the authentication provider
"""
from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required

from campus_connect.data_access.user_dal import UserDAL
from campus_connect.services.college_service import CollegeService
from campus_connect.utils.errors import ConflictError, ValidationError
from campus_connect.utils.validators import Validator

user_bp = Blueprint('users', __name__, url_prefix='/api/users')

SELF_SERVICE_ROLES = ('student', 'faculty', 'hod', 'librarian')


@user_bp.route('', methods=['POST'])
def register():
    """
    Create a user profile.

    Body: name, email, role, department, roll_no. Admin accounts are not
    self-service. An email on an active college domain links and verifies
    the profile (except for HODs).
    """
    data = request.get_json(silent=True) or {}
    name = (data.get('name') or '').strip()
    email = (data.get('email') or '').strip().lower()
    role = data.get('role') or 'student'

    valid, msg = Validator.validate_string(name, 2, 100, "Name")
    if not valid:
        raise ValidationError(msg, details={'field': 'name'})
    if not Validator.validate_email(email):
        raise ValidationError('Invalid email address', details={'field': 'email'})
    valid, msg = Validator.validate_role(role)
    if not valid:
        raise ValidationError(msg, details={'field': 'role'})
    if role not in SELF_SERVICE_ROLES:
        raise ValidationError(f"Role must be one of: {', '.join(SELF_SERVICE_ROLES)}",
                              details={'field': 'role'})
    if UserDAL.get_user_by_email(email):
        raise ConflictError('Email already registered', code='DUPLICATE_EMAIL')

    # A matching institutional domain verifies the address; membership still
    # goes through the class or teacher approval queues. HOD rights follow
    # college_id, so an HOD is linked only by creating a college.
    college = CollegeService.college_for_email(email) if role != 'hod' else None
    user = UserDAL.create_user(
        name=Validator.sanitize_html(name),
        email=email,
        role=role,
        department=(data.get('department') or '').strip() or None,
        roll_no=(data.get('roll_no') or '').strip() or None,
        college_id=college.college_id if college else None,
        is_verified=college is not None,
        verification_method='domain' if college else None
    )
    current_app.logger.info('Registered user %s with role %s (college %s)',
                            user.user_id, role, college.college_id if college else None)
    return jsonify({'message': 'Profile created', 'user': user.to_dict()}), 201


@user_bp.route('/me', methods=['GET'])
@login_required
def me():
    return jsonify({'user': current_user.to_dict()})
