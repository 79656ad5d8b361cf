import os
import re
import secrets
import string
import time

from services.errors import ValidationFailure

ALLOWED_EXTENSIONS = {
    'png', 'jpg', 'jpeg', 'gif', 'webp', 'svg',
    'pdf', 'doc', 'docx', 'hwp', 'xls', 'xlsx', 'ppt', 'pptx', 'txt',
    'mp4', 'mov', 'webm', 'mkv', 'ogg', 'avi',
}
UPLOAD_CATEGORIES = ('images', 'videos', 'documents', 'general')

_ALPHABET = string.ascii_lowercase + string.digits


def random_suffix(length: int) -> str:
    return ''.join(secrets.choice(_ALPHABET) for _ in range(length))


def file_extension(filename: str) -> str:
    """Lower-cased extension including the dot, or '' when there is none."""
    _, ext = os.path.splitext(os.path.basename(filename or '').strip())
    ext = ext.lower()
    return ext if re.fullmatch(r'\.[a-z0-9]{1,10}', ext) else ''


def allowed_file(filename: str) -> bool:
    ext = file_extension(filename)
    return bool(ext) and ext[1:] in ALLOWED_EXTENSIONS


def upload_category(mimetype: str) -> str:
    mimetype = (mimetype or '').lower()
    if mimetype.startswith('image/'):
        return 'images'
    if mimetype.startswith('video/'):
        return 'videos'
    if 'pdf' in mimetype or 'document' in mimetype:
        return 'documents'
    return 'general'


def generate_file_name(original_name: str) -> str:
    """``<epoch-ms>-<random>.<ext>``; the original name is never reused."""
    return f"{int(time.time() * 1000)}-{random_suffix(13)}{file_extension(original_name)}"


def read_upload(fileobj):
    """Validate a werkzeug FileStorage and return ``(bytes, file_name, category)``."""
    if fileobj is None or not getattr(fileobj, 'filename', None):
        raise ValidationFailure('No file provided')
    if not allowed_file(fileobj.filename):
        raise ValidationFailure('File type not allowed')

    try:
        fileobj.stream.seek(0)
    except (AttributeError, OSError):
        pass
    data = fileobj.read()
    if not data:
        raise ValidationFailure('Uploaded file is empty')
    return data, generate_file_name(fileobj.filename), upload_category(fileobj.mimetype)
