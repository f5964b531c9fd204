"""
Feedback Controller Module
Handles adaptive feedback and module checkpoint requests
"""
from flask import Blueprint, request, jsonify
from coursepilot.services.feedback_service import FeedbackService, build_detailed_feedback
import logging

logger = logging.getLogger(__name__)
feedback_bp = Blueprint('feedback', __name__)
feedback_service = FeedbackService()


@feedback_bp.route('/generate-adaptive-feedback', methods=['POST'])
def generate_adaptive_feedback():
    """
    Generate feedback for a quiz attempt
    @param request: JSON with quiz_score, confidence_level, struggle_topics, understanding_topics
                    and optional reflection_notes, course_id, module_id
    @returns: JSON response with the feedback
    """
    try:
        data = request.get_json(silent=True) or {}
        logger.info(f"Adaptive feedback requested for course {data.get('course_id')} module {data.get('module_id')}")
        quiz_score = data.get('quiz_score')
        confidence_level = data.get('confidence_level')
        feedback = feedback_service.generate_feedback(
            quiz_score=float(quiz_score) if quiz_score is not None else None,
            confidence_level=int(confidence_level) if confidence_level is not None else None,
            struggle_topics=data.get('struggle_topics') or [],
            understanding_topics=data.get('understanding_topics') or [],
            reflection_notes=data.get('reflection_notes'),
        )
        return jsonify({
            'success': True,
            'feedback': feedback
        }), 200

    except Exception as e:
        logger.error(f"Error in generate-adaptive-feedback: {str(e)}", exc_info=True)
        return jsonify({
            'error': str(e),
            'details': repr(e)
        }), 500


@feedback_bp.route('/progress/checkpoint', methods=['POST'])
def module_checkpoint():
    """
    Analyze a module checkpoint locally
    @param request: JSON with quiz_score, confidence_level, struggle_topics,
                    course_title and optional module_titles
    @returns: JSON response with detailed feedback
    """
    data = request.get_json(silent=True) or {}
    if data.get('quiz_score') is None or data.get('confidence_level') is None:
        return jsonify({'error': 'Missing required fields: quiz_score and confidence_level'}), 400

    try:
        feedback = build_detailed_feedback(
            quiz_score=float(data['quiz_score']),
            confidence_level=int(data['confidence_level']),
            struggle_topics=data.get('struggle_topics') or [],
            course_title=data.get('course_title') or '',
            module_titles=data.get('module_titles') or [],
        )
        return jsonify({
            'success': True,
            'feedback': feedback
        }), 200
    except (TypeError, ValueError) as e:
        return jsonify({
            'error': 'Invalid checkpoint data',
            'details': str(e)
        }), 400
