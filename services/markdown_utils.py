"""Helpers for markdown content bodies: escape cleanup, file references, previews."""
import re

from services.storage import RAW_HOST

# Block markers the editor form escapes at the start of a line.
_LINE_START_ESCAPE_RE = re.compile(r'^([ \t]*)\\([#>\-])', re.MULTILINE)

_MD_IMAGE_RE = re.compile(r'!\[[^\]]*\]\(\s*<?([^)\s>]+)>?(?:\s+["\'][^"\']*["\'])?\s*\)')
_MD_LINK_RE = re.compile(r'(?<!!)\[[^\]]*\]\(\s*<?([^)\s>]+)>?(?:\s+["\'][^"\']*["\'])?\s*\)')
_HTML_IMG_RE = re.compile(r'<img\b[^>]*?\bsrc=["\']([^"\']+)["\']', re.IGNORECASE)

DEFAULT_PREVIEW = '내용 미리보기가 없습니다.'


def clean_markdown(text):
    """Undo the double escaping the admin form applies to markdown bodies.

    Literal ``\\"`` and ``\\n`` sequences become a quote and a newline, a
    ``\\#``, ``\\>`` or ``\\-`` that opens a line loses its backslash, and a
    doubled backslash collapses to one. Escapes in the middle of a line are
    left alone.
    """
    if not text:
        return text or ''
    text = text.replace('\\"', '"')
    text = text.replace('\\n', '\n')
    text = _LINE_START_ESCAPE_RE.sub(r'\1\2', text)
    text = text.replace('\\\\', '\\')
    return text


def is_managed_file(url, raw_base=None):
    """True for files this site uploaded (local paths or raw URLs of its repository).

    With ``raw_base`` set, raw URLs of any other repository are not managed.
    """
    if not url:
        return False
    if url.startswith('/uploads/') or url.startswith('uploads/'):
        return True
    if raw_base is not None and not url.startswith(raw_base):
        return False
    return RAW_HOST in url and '/uploads/' in url


def unique(urls):
    """Drop repeats, keeping first-seen order."""
    seen = set()
    out = []
    for url in urls:
        if url not in seen:
            seen.add(url)
            out.append(url)
    return out


def extract_image_references(text, raw_base=None):
    """Managed image URLs from markdown images and ``<img>`` tags, in order."""
    if not text:
        return []
    found = sorted(
        list(_MD_IMAGE_RE.finditer(text)) + list(_HTML_IMG_RE.finditer(text)),
        key=lambda m: m.start(),
    )
    return unique(m.group(1) for m in found if is_managed_file(m.group(1), raw_base))


def extract_file_references(text, raw_base=None):
    """Managed file URLs referenced by images, links or ``<img>`` tags, in order."""
    if not text:
        return []
    found = []
    for match in sorted(
        list(_MD_IMAGE_RE.finditer(text)) + list(_MD_LINK_RE.finditer(text)) + list(_HTML_IMG_RE.finditer(text)),
        key=lambda m: m.start(),
    ):
        found.append(match.group(1))
    return unique(u for u in found if is_managed_file(u, raw_base))


def normalize_youtube_urls(value):
    """Accept a newline separated string or a list; return a clean list or None."""
    if value is None:
        return None
    if isinstance(value, str):
        candidates = value.splitlines()
    elif isinstance(value, (list, tuple)):
        candidates = [v for v in value if isinstance(v, str)]
    else:
        return None
    return [c.strip() for c in candidates if c.strip()]


def preview_text(text, max_length=150):
    """Plain-text preview of a markdown body, cut on a word boundary."""
    if not text:
        return DEFAULT_PREVIEW

    clean = re.sub(r'```[\s\S]*?```', '', text)
    clean = re.sub(r'!\[([^\]]*)\]\([^)]+\)', '', clean)
    clean = re.sub(r'!\[([^\]]*)\]', '', clean)
    clean = re.sub(r'\[([^\]]+)\]\([^)]+\)', r'\1', clean)
    clean = re.sub(r'<[^>]+>', '', clean)
    clean = re.sub(r'^#{1,6}\s+', '', clean, flags=re.MULTILINE)
    clean = re.sub(r'\*\*(.*?)\*\*', r'\1', clean)
    clean = re.sub(r'\*(.*?)\*', r'\1', clean)
    clean = re.sub(r'__(.*?)__', r'\1', clean)
    clean = re.sub(r'_(.*?)_', r'\1', clean)
    clean = re.sub(r'`([^`]+)`', r'\1', clean)
    clean = re.sub(r'^>\s*', '', clean, flags=re.MULTILINE)
    clean = re.sub(r'^[-*+]\s+', '', clean, flags=re.MULTILINE)
    clean = re.sub(r'^\d+\.\s+', '', clean, flags=re.MULTILINE)
    clean = re.sub(r'^(-{3,}|\*{3,})$', '', clean, flags=re.MULTILINE)
    clean = re.sub(r'\s+', ' ', clean).strip()

    if len(clean) > max_length:
        clean = clean[:max_length].strip()
        last_space = clean.rfind(' ')
        if last_space > max_length * 0.8:
            clean = clean[:last_space]
        clean += '...'

    return clean or DEFAULT_PREVIEW
