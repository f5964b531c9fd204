"""
Course Controller Module
Handles course generation and course persistence HTTP requests
"""
from flask import Blueprint, request, jsonify
from coursepilot.services.course_service import CourseService, summarize_course
from coursepilot.services.course_store import get_course_store
from coursepilot.services.recommendation_service import RecommendationService
from coursepilot.utils.supabase_utils import extract_bearer_token
import logging

logger = logging.getLogger(__name__)
course_bp = Blueprint('course', __name__)
course_service = CourseService()
recommendation_service = RecommendationService()


def _request_store():
    return get_course_store(extract_bearer_token(request.headers.get('Authorization')))


@course_bp.route('/generate-course', methods=['POST'])
def generate_course():
    """
    Generate a course curriculum
    @param request: JSON with title, audience_level, duration and optional instructions
    @returns: JSON response with the generated modules or error
    """
    try:
        data = request.get_json(silent=True) or {}
        course_content = course_service.generate_course(
            title=data.get('title'),
            audience_level=data.get('audience_level'),
            duration=data.get('duration'),
            instructions=data.get('instructions'),
        )
        return jsonify({
            'success': True,
            'courseContent': course_content
        }), 200

    except Exception as e:
        logger.error(f"Error in generate-course: {str(e)}", exc_info=True)
        return jsonify({
            'error': str(e),
            'details': repr(e)
        }), 500


@course_bp.route('/courses', methods=['POST'])
def create_course():
    """
    Generate a course and store it with its whole subtree
    @param request: JSON with user_id, title, audience_level, duration, instructions, folder_id
    @returns: JSON response with the stored course, its content and follow-up recommendations
    """
    data = request.get_json(silent=True) or {}
    user_id = data.get('user_id')
    if not user_id:
        return jsonify({'error': 'Missing required field: user_id'}), 400

    try:
        course_content = course_service.generate_course(
            title=data.get('title'),
            audience_level=data.get('audience_level'),
            duration=data.get('duration'),
            instructions=data.get('instructions'),
        )
        course = _request_store().create_course(user_id, data, course_content)

        summary = summarize_course({**course, 'modules': course_content['modules'], 'progress': 0})
        recommendations = recommendation_service.recommend_for_new_course(summary)

        return jsonify({
            'message': 'Course created successfully',
            'course': course,
            'courseContent': course_content,
            'recommendations': recommendations
        }), 201

    except Exception as e:
        logger.error(f"Error creating course: {str(e)}", exc_info=True)
        return jsonify({
            'error': 'Failed to create course',
            'details': str(e)
        }), 500


@course_bp.route('/courses', methods=['GET'])
def list_courses():
    """
    List a user's courses with modules, lessons, quizzes and resources
    @param request: Query parameter user_id
    @returns: JSON response with the courses, newest first
    """
    user_id = request.args.get('user_id')
    if not user_id:
        return jsonify({'error': 'Missing required parameter: user_id'}), 400

    try:
        courses = _request_store().fetch_courses(user_id)
        return jsonify({'data': courses}), 200
    except Exception as e:
        logger.error(f"Error fetching courses: {str(e)}", exc_info=True)
        return jsonify({
            'error': 'Failed to fetch courses',
            'details': str(e)
        }), 500


@course_bp.route('/courses/<course_id>', methods=['DELETE'])
def delete_course(course_id):
    try:
        _request_store().delete_course(course_id)
        return jsonify({'message': 'Course deleted successfully'}), 200
    except Exception as e:
        logger.error(f"Error deleting course {course_id}: {str(e)}", exc_info=True)
        return jsonify({
            'error': 'Failed to delete course',
            'details': str(e)
        }), 500


@course_bp.route('/courses/<course_id>/folder', methods=['PATCH'])
def move_course(course_id):
    """
    Move a course into a folder, or out of any folder when folder_id is null
    """
    data = request.get_json(silent=True) or {}
    try:
        _request_store().move_course_to_folder(course_id, data.get('folder_id'))
        return jsonify({'message': 'Course moved successfully'}), 200
    except Exception as e:
        logger.error(f"Error moving course {course_id}: {str(e)}", exc_info=True)
        return jsonify({
            'error': 'Failed to move course',
            'details': str(e)
        }), 500


@course_bp.route('/lessons/<lesson_id>/completion', methods=['PATCH'])
def update_lesson_completion(lesson_id):
    data = request.get_json(silent=True) or {}
    if 'completed' not in data:
        return jsonify({'error': 'Missing required field: completed'}), 400

    try:
        _request_store().update_lesson_completion(lesson_id, bool(data['completed']))
        return jsonify({'message': 'Lesson updated successfully'}), 200
    except Exception as e:
        logger.error(f"Error updating lesson {lesson_id}: {str(e)}", exc_info=True)
        return jsonify({
            'error': 'Failed to update lesson',
            'details': str(e)
        }), 500
