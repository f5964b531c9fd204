from flask import Blueprint, request, jsonify
from coursepilot.services.roadmap_service import RoadmapService
import logging

logger = logging.getLogger(__name__)
roadmap_bp = Blueprint('roadmap', __name__)
roadmap_service = RoadmapService()


@roadmap_bp.route('/generate-roadmap-content', methods=['POST'])
def generate_roadmap_content():
    """
    Generate projects or opportunities for a course
    @param request: JSON with courseTitle, category and contentType
    @returns: JSON response with the generated content
    """
    try:
        data = request.get_json(silent=True) or {}
        content = roadmap_service.generate_content(
            course_title=data.get('courseTitle'),
            category=data.get('category'),
            content_type=data.get('contentType'),
        )
        return jsonify({
            'success': True,
            'content': content
        }), 200

    except Exception as e:
        logger.error(f"Error in generate-roadmap-content: {str(e)}", exc_info=True)
        return jsonify({
            'error': str(e),
            'details': repr(e)
        }), 500
