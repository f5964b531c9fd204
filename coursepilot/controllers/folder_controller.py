from flask import Blueprint, request, jsonify
from coursepilot.services.course_store import get_course_store
from coursepilot.utils.supabase_utils import extract_bearer_token
import logging

logger = logging.getLogger(__name__)
folder_bp = Blueprint('folder', __name__)


def _request_store():
    return get_course_store(extract_bearer_token(request.headers.get('Authorization')))


@folder_bp.route('/folders', methods=['GET'])
def list_folders():
    user_id = request.args.get('user_id')
    if not user_id:
        return jsonify({'error': 'Missing required parameter: user_id'}), 400

    try:
        return jsonify({'data': _request_store().list_folders(user_id)}), 200
    except Exception as e:
        logger.error(f"Error fetching folders: {str(e)}", exc_info=True)
        return jsonify({
            'error': 'Failed to fetch folders',
            'details': str(e)
        }), 500


@folder_bp.route('/folders', methods=['POST'])
def create_folder():
    """
    Create a folder
    @param request: JSON with user_id, name and optional color
    """
    data = request.get_json(silent=True) or {}
    for field in ('user_id', 'name'):
        if not data.get(field):
            return jsonify({'error': f'Missing required field: {field}'}), 400

    try:
        folder = _request_store().create_folder(data['user_id'], data['name'], data.get('color'))
        return jsonify({
            'message': 'Folder created successfully',
            'data': folder
        }), 201
    except Exception as e:
        logger.error(f"Error creating folder: {str(e)}", exc_info=True)
        return jsonify({
            'error': 'Failed to create folder',
            'details': str(e)
        }), 500


@folder_bp.route('/folders/<folder_id>', methods=['PATCH'])
def update_folder(folder_id):
    data = request.get_json(silent=True) or {}
    updates = {key: data[key] for key in ('name', 'color') if key in data}
    if not updates:
        return jsonify({'error': 'Nothing to update: only name and color can change'}), 400

    try:
        _request_store().update_folder(folder_id, updates)
        return jsonify({'message': 'Folder updated successfully'}), 200
    except Exception as e:
        logger.error(f"Error updating folder {folder_id}: {str(e)}", exc_info=True)
        return jsonify({
            'error': 'Failed to update folder',
            'details': str(e)
        }), 500


@folder_bp.route('/folders/<folder_id>', methods=['DELETE'])
def delete_folder(folder_id):
    try:
        _request_store().delete_folder(folder_id)
        return jsonify({'message': 'Folder deleted successfully'}), 200
    except Exception as e:
        logger.error(f"Error deleting folder {folder_id}: {str(e)}", exc_info=True)
        return jsonify({
            'error': 'Failed to delete folder',
            'details': str(e)
        }), 500
