"""
Tutor Controller Module
Handles AI tutor chat turns and chat history
"""
from flask import Blueprint, request, jsonify
from coursepilot.services.course_store import get_course_store
from coursepilot.services.llm_service import LLMService
from coursepilot.services.tutor_service import TutorService
from coursepilot.utils.supabase_utils import extract_bearer_token
import logging

logger = logging.getLogger(__name__)
tutor_bp = Blueprint('tutor', __name__)
llm_service = LLMService()


def _request_store():
    return get_course_store(extract_bearer_token(request.headers.get('Authorization')))


@tutor_bp.route('/ai-tutor-chat', methods=['POST'])
def ai_tutor_chat():
    """
    Answer one tutor message
    @param request: JSON with message, courseId, userId, context and optional quizScores
    @returns: JSON response with the tutor's answer
    """
    try:
        data = request.get_json(silent=True) or {}

        store = None
        if data.get('courseId') and data.get('userId'):
            try:
                store = _request_store()
            except Exception as e:
                logger.warning(f"Tutor chat will not be stored: {str(e)}")

        response = TutorService(llm_service, store).chat(
            message=data.get('message'),
            course_id=data.get('courseId'),
            user_id=data.get('userId'),
            context=data.get('context'),
            quiz_scores=data.get('quizScores'),
        )
        return jsonify({
            'success': True,
            'response': response
        }), 200

    except Exception as e:
        logger.error(f"Error in ai-tutor-chat: {str(e)}", exc_info=True)
        return jsonify({
            'error': str(e),
            'details': repr(e)
        }), 500


@tutor_bp.route('/tutor-chats', methods=['GET'])
def tutor_chats():
    """
    Latest tutor turns for a course, oldest first
    @param request: Query parameters user_id and course_id
    """
    user_id = request.args.get('user_id')
    course_id = request.args.get('course_id')
    if not user_id or not course_id:
        return jsonify({'error': 'Missing required parameters: user_id and course_id'}), 400

    try:
        chats = _request_store().fetch_tutor_chats(user_id, course_id)
        return jsonify({'data': chats}), 200
    except Exception as e:
        logger.error(f"Error fetching tutor chats: {str(e)}", exc_info=True)
        return jsonify({
            'error': 'Failed to fetch tutor chats',
            'details': str(e)
        }), 500
