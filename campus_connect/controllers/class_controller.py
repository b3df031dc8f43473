"""
Class Controller
Class management, join requests and faculty assignments
"""
from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from campus_connect.services.class_service import ClassService
from campus_connect.utils.permissions import current_user_can, is_admin, require

class_bp = Blueprint('classes', __name__, url_prefix='/api/classes')


def _class_for_teacher(service, class_id):
    """Load a class the current user owns or teaches in."""
    class_obj = service.get_class(class_id)
    require(current_user, 'class.view', class_obj,
            'Unauthorized. Only the class teachers can view this')
    return class_obj


@class_bp.route('', methods=['POST'])
@login_required
def create_class():
    data = request.get_json(silent=True) or {}
    college_id = data.get('college_id') or current_user.college_id
    new_class = ClassService().create_class(current_user.user_id, college_id, data)
    return jsonify({'message': 'Class created successfully', 'class': new_class.to_dict()}), 201


@class_bp.route('/teaching', methods=['GET'])
@login_required
def classes_owned():
    result = ClassService().get_classes_by_teacher(current_user.user_id)
    return jsonify({
        'classes': [c.to_dict() for c in result['classes']],
        'total_students': result['total_students']
    })


@class_bp.route('/assigned', methods=['GET'])
@login_required
def classes_assigned():
    return jsonify(ClassService().get_classes_by_faculty(current_user.user_id))


@class_bp.route('/enrolled', methods=['GET'])
@login_required
def classes_enrolled():
    return jsonify({'classes': ClassService().get_classes_by_student(current_user.user_id)})


@class_bp.route('/join', methods=['POST'])
@login_required
def join_class():
    """Ask to join a class using its shareable code"""
    data = request.get_json(silent=True) or {}
    result = ClassService().request_to_join(current_user.user_id, data.get('class_unique_code'))
    return jsonify({'message': 'Join request sent', 'class': result}), 201


@class_bp.route('/<class_id>', methods=['GET'])
@login_required
def get_class(class_id):
    service = ClassService()
    class_obj = service.get_class(class_id)
    enrolled = class_obj.enrollment_for(current_user.user_id) is not None
    if not (enrolled or is_admin() or current_user_can('class.view', class_obj)):
        # Outsiders only see the summary
        return jsonify({'class': {
            'class_id': class_obj.class_id,
            'name': class_obj.name,
            'course': class_obj.course,
            'department': class_obj.department,
            'college_id': class_obj.college_id
        }})
    return jsonify({'class': class_obj.to_dict()})


@class_bp.route('/<class_id>', methods=['DELETE'])
@login_required
def delete_class(class_id):
    ClassService().delete_class(class_id, current_user.user_id)
    return jsonify({'message': 'Class has been deleted successfully'})


@class_bp.route('/<class_id>/requests', methods=['GET'])
@login_required
def student_requests(class_id):
    service = ClassService()
    _class_for_teacher(service, class_id)
    status = request.args.get('status', 'pending')
    return jsonify({'students': service.get_student_requests(class_id, status)})


@class_bp.route('/<class_id>/requests/<student_id>', methods=['POST'])
@login_required
def resolve_request(class_id, student_id):
    """Body: {"decision": "approve" | "reject"}"""
    data = request.get_json(silent=True) or {}
    class_obj = ClassService().resolve_request(
        class_id, student_id, data.get('decision'), decided_by=current_user.user_id)
    return jsonify({'message': 'Request resolved', 'class': class_obj.to_dict()})


@class_bp.route('/<class_id>/students', methods=['GET'])
@login_required
def class_students(class_id):
    service = ClassService()
    _class_for_teacher(service, class_id)
    return jsonify({'students': service.get_students_by_class(class_id)})


@class_bp.route('/<class_id>/faculty', methods=['POST'])
@login_required
def assign_faculty(class_id):
    data = request.get_json(silent=True) or {}
    assignment = ClassService().assign_faculty(
        class_id, data.get('faculty_id'), data.get('subject'), current_user.user_id)
    return jsonify({
        'message': f'Faculty has been assigned to teach {assignment.subject}',
        'assignment': assignment.to_dict()
    }), 201


@class_bp.route('/<class_id>/faculty/<assignment_id>', methods=['DELETE'])
@login_required
def remove_faculty(class_id, assignment_id):
    ClassService().remove_faculty_assignment(class_id, assignment_id, current_user.user_id)
    return jsonify({'message': 'Faculty assignment has been removed'})
