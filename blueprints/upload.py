from flask import Blueprint, current_app, jsonify, request
from werkzeug.exceptions import HTTPException

import metrics
from decorators import admin_token_required
from services.file_utils import read_upload
from services.storage import get_storage
from utils.responses import error_response

upload_bp = Blueprint('upload', __name__)


@upload_bp.route('', methods=['POST'])
@admin_token_required
def upload_file():
    """Store a multipart ``file`` under images/, videos/, documents/ or general/."""
    try:
        fileobj = request.files.get('file')
        data, file_name, category = read_upload(fileobj)
        url = get_storage().upload_file(data, file_name, category)
    except HTTPException:
        # e.g. 413 when the body exceeds MAX_CONTENT_LENGTH
        raise
    except Exception as e:
        if request.files.get('file') is not None:
            metrics.track_file_operation('upload', success=False)
        return error_response(e, 'Upload failed')

    metrics.track_file_operation('upload')
    current_app.logger.info('Uploaded %s as %s', fileobj.filename, url)
    return jsonify({
        'success': True,
        'url': url,
        'fileName': file_name,
        'originalName': fileobj.filename,
        'category': category,
        'size': len(data),
        'type': fileobj.mimetype,
    }), 200
