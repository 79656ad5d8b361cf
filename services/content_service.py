"""Content items stored in per-section buckets of the shared content document.

Every mutation is one load -> mutate -> save cycle. The storage backend's
precondition token is the only guard against concurrent writers; a stale
save surfaces as ``WriteConflict`` and is not retried.
"""
import logging
import time
from datetime import datetime, timezone

import metrics
from services import sections
from services.errors import ContentError, NotFound, ValidationFailure
from services.file_utils import random_suffix
from services.markdown_utils import (
    clean_markdown,
    extract_file_references,
    extract_image_references,
    is_managed_file,
    normalize_youtube_urls,
    unique,
)

logger = logging.getLogger(__name__)

CONTENT_TYPES = ('article', 'announcement', 'press', 'academic', 'video')
STATUSES = ('draft', 'published')

# Set by the repository; caller-supplied values are dropped.
MANAGED_FIELDS = frozenset({'id', 'createdAt', 'updatedAt', 'viewCount', 'referencedFiles'})


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def generate_content_id() -> str:
    return f'content-{int(time.time() * 1000)}-{random_suffix(9)}'


def _bucket(document, path) -> list:
    bucket = document.buckets.get(path)
    if not isinstance(bucket, list):
        bucket = document.buckets[path] = []
    return bucket


def _string_list(value) -> list:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, str)]


def _validate(item: dict, check_section: bool = True) -> None:
    title = item.get('title')
    if not isinstance(title, str) or not title.strip():
        raise ValidationFailure('Title is required')
    if check_section:
        section = item.get('section')
        if not section:
            raise ValidationFailure('Section is required')
        if not sections.is_content_section(section):
            raise ValidationFailure(f'Section does not accept content: {section}')
    if item.get('type') not in CONTENT_TYPES:
        raise ValidationFailure(f"Invalid type: {item.get('type')}")
    if item.get('status') not in STATUSES:
        raise ValidationFailure(f"Invalid status: {item.get('status')}")


def _normalize_fields(item: dict, changes: dict) -> None:
    if 'content' in changes:
        item['content'] = clean_markdown(changes.get('content') or '')
    if 'youtubeUrls' in changes:
        urls = normalize_youtube_urls(changes.get('youtubeUrls'))
        if urls is None:
            item.pop('youtubeUrls', None)
        else:
            item['youtubeUrls'] = urls
    if isinstance(item.get('title'), str):
        item['title'] = item['title'].strip()


def _delete_files(storage, urls) -> int:
    """Best-effort deletion; failures are logged and skipped."""
    deleted = 0
    for url in urls:
        try:
            storage.delete_file(url)
        except ContentError as exc:
            logger.warning('Failed to delete file %s: %s', url, exc)
            metrics.track_file_operation('delete', success=False)
            continue
        deleted += 1
        metrics.track_file_operation('delete')
    return deleted


def find_by_id(document, content_id):
    """Return ``(section, index, item)`` for the first item with ``content_id``."""
    for section, items in document.buckets.items():
        if not isinstance(items, list):
            continue
        for index, item in enumerate(items):
            if isinstance(item, dict) and item.get('id') == content_id:
                return section, index, item
    raise NotFound(f'Content not found: {content_id}')


def get_content(storage, content_id) -> dict:
    _, _, item = find_by_id(storage.load_content(), content_id)
    return item


def list_content(storage, section=None, status=None, content_type=None, limit=None) -> dict:
    """Buckets keyed by section path, filtered by status and type.

    A parent section key expands to each of its child buckets.
    """
    buckets = storage.load_content().buckets
    if section:
        entry = sections.get_section(section)
        paths = entry.bucket_paths() if isinstance(entry, sections.ParentSection) else [section]
        selected = {path: buckets.get(path) for path in paths}
    else:
        selected = dict(buckets)

    result = {}
    for path, items in selected.items():
        items = [i for i in (items or []) if isinstance(i, dict)]
        if status:
            items = [i for i in items if i.get('status') == status]
        if content_type:
            items = [i for i in items if i.get('type') == content_type]
        if limit and limit > 0:
            items = items[:limit]
        result[path] = items
    return result


def list_section_content(storage, section_key, limit=None) -> list:
    """Published items of a section, newest first.

    Parent sections aggregate every ``key/sub`` bucket; leaves read ``key``.
    """
    paths = sections.bucket_paths(section_key)
    if not paths:
        raise NotFound(f'Unknown section: {section_key}')
    buckets = storage.load_content().buckets
    items = [
        item
        for path in paths
        for item in (buckets.get(path) or [])
        if isinstance(item, dict) and item.get('status') == 'published'
    ]
    items.sort(key=lambda i: i.get('createdAt') or '', reverse=True)
    if limit and limit > 0:
        items = items[:limit]
    return items


def create_content(storage, data: dict) -> dict:
    if not isinstance(data, dict):
        raise ValidationFailure('Content payload must be a JSON object')

    changes = {k: v for k, v in data.items() if k not in MANAGED_FIELDS}
    item = dict(changes)
    item['type'] = item.get('type') or 'article'
    item['status'] = item.get('status') or 'draft'
    changes.setdefault('content', '')
    _normalize_fields(item, changes)
    _validate(item)

    now = _now()
    item = {
        'id': generate_content_id(),
        **item,
        'createdAt': now,
        'updatedAt': now,
        'viewCount': 0,
        'referencedFiles': extract_file_references(item['content'], storage.raw_base),
    }
    if item['status'] == 'published' and not item.get('publishedAt'):
        item['publishedAt'] = now

    document = storage.load_content()
    _bucket(document, item['section']).append(item)
    storage.save_content(document)
    logger.info('Created content %s in %s', item['id'], item['section'])
    return item


def update_content(storage, content_id, patch: dict) -> dict:
    """Shallow-merge ``patch`` over the stored item.

    When the body changes, managed images of the old body that the new body
    no longer references (and that are not listed in ``images``) are deleted
    after the save succeeds.
    """
    if not isinstance(patch, dict):
        raise ValidationFailure('Content payload must be a JSON object')
    changes = {k: v for k, v in patch.items() if k not in MANAGED_FIELDS}

    document = storage.load_content()
    section, index, existing = find_by_id(document, content_id)
    old_body = existing.get('content') or ''

    updated = {**existing, **changes}
    _normalize_fields(updated, changes)
    _validate(updated, check_section='section' in changes)

    now = _now()
    updated['referencedFiles'] = extract_file_references(updated.get('content') or '', storage.raw_base)
    updated['updatedAt'] = now
    if updated['status'] == 'published' and not updated.get('publishedAt'):
        updated['publishedAt'] = now

    if 'section' in changes and changes['section'] != section:
        del document.buckets[section][index]
        _bucket(document, changes['section']).append(updated)
        logger.info('Moved content %s from %s to %s', content_id, section, changes['section'])
    else:
        document.buckets[section][index] = updated
    storage.save_content(document)

    new_body = updated.get('content') or ''
    if new_body != old_body:
        keep = set(extract_file_references(new_body, storage.raw_base))
        keep.update(_string_list(updated.get('images')))
        orphans = [u for u in extract_image_references(old_body, storage.raw_base) if u not in keep]
        if orphans:
            logger.info('Cleaning up %d orphaned file(s) for %s', len(orphans), content_id)
            _delete_files(storage, orphans)
    return updated


def delete_content(storage, content_id) -> dict:
    """Remove the item, then delete its managed images.

    Images are those in the body plus managed entries of ``images``; linked
    documents are left alone.
    """
    document = storage.load_content()
    section, index, item = find_by_id(document, content_id)
    del document.buckets[section][index]
    storage.save_content(document)
    logger.info('Deleted content %s from %s', content_id, section)

    files = unique(
        extract_image_references(item.get('content') or '', storage.raw_base)
        + [u for u in _string_list(item.get('images')) if is_managed_file(u, storage.raw_base)]
    )
    if files:
        _delete_files(storage, files)
    return item


def increment_view(storage, content_id) -> dict:
    document = storage.load_content()
    section, index, item = find_by_id(document, content_id)
    try:
        count = int(item.get('viewCount') or 0)
    except (TypeError, ValueError):
        count = 0
    item['viewCount'] = count + 1
    item['updatedAt'] = _now()
    document.buckets[section][index] = item
    storage.save_content(document)
    return item
