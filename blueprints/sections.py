from flask import Blueprint, jsonify, request

from services import content_service, sections
from services.markdown_utils import preview_text
from services.storage import get_storage
from utils.responses import error_response

sections_bp = Blueprint('sections', __name__)


@sections_bp.route('', methods=['GET'])
def list_sections():
    """Navigation tree plus the section paths that accept content."""
    return jsonify({
        'sections': sections.navigation(),
        'contentSections': sections.content_sections(),
    }), 200


@sections_bp.route('/breadcrumbs', methods=['GET'])
def get_breadcrumbs():
    crumbs = sections.breadcrumbs(
        request.args.get('path', ''),
        title=request.args.get('title') or None,
        content_id=request.args.get('id') or None,
    )
    return jsonify({'breadcrumbs': crumbs}), 200


@sections_bp.route('/<key>', methods=['GET'])
def get_section(key):
    section = sections.get_section(key)
    if section is None:
        return jsonify({'error': 'Section not found'}), 404
    return jsonify(section.to_dict()), 200


@sections_bp.route('/<key>/content', methods=['GET'])
@sections_bp.route('/<key>/<sub>/content', methods=['GET'])
def section_content(key, sub=None):
    """Published items for a section, newest first.

    A parent section returns the union of all of its subsection buckets.
    """
    path = f'{key}/{sub}' if sub else key
    if not sections.is_known_path(path):
        return jsonify({'error': 'Section not found'}), 404
    try:
        items = content_service.list_section_content(
            get_storage(), path, limit=request.args.get('limit', type=int))
    except Exception as e:
        return error_response(e, 'Failed to load content')

    return jsonify({
        'section': path,
        'name': sections.section_label(path),
        'breadcrumbs': sections.breadcrumbs(path),
        'total': len(items),
        'items': [{**item, 'preview': preview_text(item.get('content'))} for item in items],
    }), 200
