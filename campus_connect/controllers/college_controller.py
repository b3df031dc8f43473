"""
College Controller
College records and teacher membership requests
"""
from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from campus_connect.services.college_service import CollegeService
from campus_connect.utils.permissions import is_admin, require

college_bp = Blueprint('colleges', __name__, url_prefix='/api/colleges')


def _teacher_view(user):
    return {
        'user_id': user.user_id,
        'name': user.name,
        'email': user.email,
        'department': user.department,
        'role': user.role,
        'college_status': user.college_status
    }


@college_bp.route('', methods=['GET'])
@login_required
def list_colleges():
    include_inactive = is_admin() and request.args.get('include_inactive', '').lower() in ('1', 'true', 'yes')
    colleges = CollegeService().list_colleges(include_inactive=include_inactive)
    return jsonify({'colleges': [c.to_dict() for c in colleges]})


@college_bp.route('', methods=['POST'])
@login_required
def create_college():
    """Body: name, code, domain, departments"""
    data = request.get_json(silent=True) or {}
    college = CollegeService().create_college(data, current_user.user_id)
    return jsonify({'message': 'College created successfully', 'college': college.to_dict()}), 201


@college_bp.route('/membership', methods=['GET'])
@login_required
def membership_status():
    return jsonify(CollegeService().get_teacher_college_status(current_user.user_id))


@college_bp.route('/mine', methods=['GET'])
@login_required
def my_college():
    """College the caller administers (HOD) or is linked to; null when none"""
    college = CollegeService().get_college_by_user(current_user.user_id)
    return jsonify({'college': college.to_dict() if college else None})


@college_bp.route('/join', methods=['POST'])
@login_required
def join_college():
    """Teacher asks to join a college using its shareable unique ID"""
    data = request.get_json(silent=True) or {}
    college = CollegeService().register_teacher(current_user.user_id, data.get('college_unique_id'))
    return jsonify({
        'message': 'Request sent to the college HOD',
        'college': {'college_id': college.college_id, 'name': college.name, 'code': college.code}
    }), 201


@college_bp.route('/by-unique-id/<unique_id>', methods=['GET'])
@login_required
def get_by_unique_id(unique_id):
    college = CollegeService().get_college_by_unique_id(unique_id)
    return jsonify({'college': {
        'college_id': college.college_id,
        'name': college.name,
        'code': college.code,
        'domain': college.domain,
        'departments': college.departments
    }})


@college_bp.route('/<college_id>', methods=['GET'])
@login_required
def get_college(college_id):
    return jsonify({'college': CollegeService().get_college(college_id).to_dict()})


@college_bp.route('/<college_id>', methods=['PUT', 'PATCH'])
@login_required
def update_college(college_id):
    data = request.get_json(silent=True) or {}
    college = CollegeService().update_college(college_id, data, current_user.user_id)
    return jsonify({'message': 'College updated successfully', 'college': college.to_dict()})


@college_bp.route('/<college_id>/status', methods=['PATCH', 'POST'])
@login_required
def set_status(college_id):
    data = request.get_json(silent=True) or {}
    college = CollegeService().set_college_active(college_id, data.get('active', True), current_user.user_id)
    return jsonify({'college': college.to_dict()})


@college_bp.route('/<college_id>/teachers', methods=['GET'])
@login_required
def list_teachers(college_id):
    service = CollegeService()
    require(current_user, 'college.manage', service.get_college(college_id),
            'Unauthorized. Only the college HOD can view its teachers')
    teachers = service.get_teachers(college_id, request.args.get('status'))
    return jsonify({key: [_teacher_view(u) for u in users] for key, users in teachers.items()})


@college_bp.route('/<college_id>/teachers/<teacher_id>', methods=['POST'])
@login_required
def resolve_teacher(college_id, teacher_id):
    """Body: {"decision": "approve" | "reject"}"""
    data = request.get_json(silent=True) or {}
    college = CollegeService().resolve_teacher(college_id, teacher_id, data.get('decision'),
                                               current_user.user_id)
    return jsonify({'message': 'Teacher request resolved', 'college': college.to_dict()})
