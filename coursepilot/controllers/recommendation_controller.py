from flask import Blueprint, request, jsonify
from coursepilot.services.recommendation_service import RecommendationService, DEFAULT_REQUESTED_COUNT
import logging

logger = logging.getLogger(__name__)
recommendation_bp = Blueprint('recommendation', __name__)
recommendation_service = RecommendationService()


@recommendation_bp.route('/generate-lesson-recommendations', methods=['POST'])
def generate_lesson_recommendations():
    """
    Recommend follow-up lessons for a course
    @param request: JSON with courseTitle and optional moduleTopics, lessonTopics,
                    progress, averageQuizScore, requestedCount
    @returns: JSON response with recommendations sorted by relevance
    """
    try:
        data = request.get_json(silent=True) or {}
        recommendations = recommendation_service.recommend_lessons(
            course_title=data.get('courseTitle'),
            module_topics=data.get('moduleTopics') or [],
            lesson_topics=data.get('lessonTopics') or [],
            progress=data.get('progress') or 0,
            average_quiz_score=data.get('averageQuizScore') or 0,
            requested_count=int(data.get('requestedCount') or DEFAULT_REQUESTED_COUNT),
        )
        return jsonify({'recommendations': recommendations}), 200

    except Exception as e:
        logger.error(f"Error in generate-lesson-recommendations: {str(e)}", exc_info=True)
        return jsonify({
            'error': str(e),
            'details': repr(e)
        }), 500
