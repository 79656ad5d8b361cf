from flask import Blueprint, jsonify, request

import metrics
from decorators import admin_token_required
from services import content_service
from services.storage import get_storage
from utils.responses import error_response

content_bp = Blueprint('content', __name__)


@content_bp.route('', methods=['GET'])
def list_content():
    """Content buckets keyed by section path.

    Query params: ``section`` (a bucket path, or a parent section key which
    expands to its child buckets), ``status``, ``type``, ``limit``.
    """
    try:
        content = content_service.list_content(
            get_storage(),
            section=request.args.get('section') or None,
            status=request.args.get('status') or None,
            content_type=request.args.get('type') or None,
            limit=request.args.get('limit', type=int),
        )
        return jsonify({'content': content}), 200
    except Exception as e:
        return error_response(e, 'Failed to load content')


@content_bp.route('', methods=['POST'])
@admin_token_required
def create_content():
    data = request.get_json(silent=True)
    if data is None:
        return jsonify({'error': 'Expected application/json'}), 400
    try:
        item = content_service.create_content(get_storage(), data)
        metrics.track_content_mutation('create')
        return jsonify(item), 201
    except Exception as e:
        return error_response(e, 'Failed to create content', action='create')


@content_bp.route('/<content_id>', methods=['GET'])
def get_content(content_id):
    try:
        return jsonify(content_service.get_content(get_storage(), content_id)), 200
    except Exception as e:
        return error_response(e, 'Failed to load content')


@content_bp.route('/<content_id>', methods=['PUT'])
@admin_token_required
def update_content(content_id):
    data = request.get_json(silent=True)
    if data is None:
        return jsonify({'error': 'Expected application/json'}), 400
    try:
        item = content_service.update_content(get_storage(), content_id, data)
        metrics.track_content_mutation('update')
        return jsonify(item), 200
    except Exception as e:
        return error_response(e, 'Failed to update content', action='update')


@content_bp.route('/<content_id>', methods=['DELETE'])
@admin_token_required
def delete_content(content_id):
    try:
        content_service.delete_content(get_storage(), content_id)
        metrics.track_content_mutation('delete')
        return jsonify({'success': True}), 200
    except Exception as e:
        return error_response(e, 'Failed to delete content', action='delete')


@content_bp.route('/<content_id>/view', methods=['POST'])
def increment_view(content_id):
    try:
        item = content_service.increment_view(get_storage(), content_id)
        metrics.track_content_mutation('view')
        return jsonify({'id': item['id'], 'viewCount': item['viewCount']}), 200
    except Exception as e:
        return error_response(e, 'Failed to update view count', action='view')
