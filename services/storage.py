"""Content document and uploaded-file storage.

Both backends expose the same four operations. ``GitHubStorage`` keeps the
JSON document and uploads in a GitHub repository through the contents API;
``FileSystemStorage`` keeps them on local disk for development and tests.

Every saved document carries the precondition token read when it was loaded
(the blob SHA on GitHub, a SHA-1 of the file bytes on disk). A save with a
stale token is rejected with ``WriteConflict``; nothing retries or merges.
"""
import base64
import hashlib
import json
import logging
import os
import posixpath
import threading
from datetime import datetime, timezone

import requests
from flask import current_app

from services.errors import BackingStoreError, StoreUnavailable, ValidationFailure, WriteConflict
from services.file_utils import UPLOAD_CATEGORIES
from utils.http import get_session, request_with_timeout

logger = logging.getLogger(__name__)

CONTENT_PATH = 'data/content.json'
UPLOADS_PREFIX = 'public/uploads'
RAW_HOST = 'raw.githubusercontent.com'


def empty_document():
    return {'content': {}}


def _serialize(data) -> bytes:
    return json.dumps(data, ensure_ascii=False, indent=2).encode('utf-8')


def _decode(raw: bytes) -> dict:
    if not raw.strip():
        return empty_document()
    try:
        return json.loads(raw.decode('utf-8'))
    except ValueError as exc:
        raise BackingStoreError(f'Content document is not valid JSON: {exc}') from exc


def _digest(raw: bytes) -> str:
    return hashlib.sha1(raw).hexdigest()


def normalize_upload_path(url: str, branch: str = 'main', owner=None, repo=None) -> str:
    """Map any accepted file URL shape to its repository path.

    ``https://raw.githubusercontent.com/o/r/main/public/uploads/a.jpg`` -> ``public/uploads/a.jpg``
    ``/uploads/images/a.jpg`` -> ``public/uploads/images/a.jpg``
    ``uploads/images/a.jpg`` -> ``public/uploads/images/a.jpg``

    Raises ``ValidationFailure`` for raw URLs of another repository or branch
    and for any path that does not resolve inside ``public/uploads/``.
    """
    path = (url or '').split('?', 1)[0].split('#', 1)[0]
    if RAW_HOST in path:
        marker = f'/{owner}/{repo}/{branch}/' if owner and repo else f'/{branch}/'
        _, found, rest = path.partition(marker)
        if not found:
            raise ValidationFailure(f'Not a file of this repository: {url}')
        path = rest
    elif path.startswith('/uploads/'):
        path = f'public{path}'
    elif path.startswith('uploads/'):
        path = f'public/{path}'

    path = posixpath.normpath(path)
    if not path.startswith(f'{UPLOADS_PREFIX}/'):
        raise ValidationFailure(f'Path is outside the uploads directory: {url}')
    return path


def _check_category(category):
    if category not in UPLOAD_CATEGORIES:
        raise ValidationFailure(f'Unknown upload category: {category}')


class ContentDocument:
    """The decoded ``{"content": {...}}`` document plus its precondition token."""

    def __init__(self, data=None, sha=None):
        self.data = data if isinstance(data, dict) else empty_document()
        if not isinstance(self.data.get('content'), dict):
            self.data['content'] = {}
        self.sha = sha

    @property
    def buckets(self) -> dict:
        return self.data['content']

    def __repr__(self):
        return f'<ContentDocument buckets={len(self.buckets)} sha={self.sha!r}>'


class BaseStorage:
    name = 'base'
    # Prefix of raw URLs this backend serves uploads from; None when uploads are local paths.
    raw_base = None

    def load_content(self) -> ContentDocument:
        raise NotImplementedError

    def save_content(self, document: ContentDocument) -> None:
        raise NotImplementedError

    def upload_file(self, data: bytes, file_name: str, category: str) -> str:
        raise NotImplementedError

    def delete_file(self, url: str) -> None:
        raise NotImplementedError


class GitHubStorage(BaseStorage):
    name = 'github'
    api_url = 'https://api.github.com'

    def __init__(self, owner, repo, token, branch='main', content_path=CONTENT_PATH, session=None, timeout=10):
        if not owner or not repo or not token:
            raise ValueError('GitHub storage requires GITHUB_OWNER, GITHUB_REPO and GITHUB_TOKEN')
        self.owner = owner
        self.repo = repo
        self.token = token
        self.branch = branch
        self.content_path = content_path
        self.timeout = timeout
        self.session = session or get_session()
        self.raw_base = f'https://{RAW_HOST}/{owner}/{repo}/'

    def _contents_url(self, path):
        return f'{self.api_url}/repos/{self.owner}/{self.repo}/contents/{path}'

    def _request(self, method, path, payload=None):
        headers = {
            'Authorization': f'token {self.token}',
            'Accept': 'application/vnd.github+json',
        }
        kwargs = {'headers': headers}
        if method == 'GET':
            kwargs['params'] = {'ref': self.branch}
        if payload is not None:
            kwargs['json'] = payload
        try:
            response = request_with_timeout(self.session, method, self._contents_url(path),
                                            timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise StoreUnavailable(f'GitHub request failed: {exc}') from exc

        if response.status_code in (401, 403):
            raise StoreUnavailable(f'GitHub API error: {response.status_code} {response.text}',
                                   status=response.status_code)
        if not response.ok:
            raise BackingStoreError(f'GitHub API error: {response.status_code} {response.text}',
                                    status=response.status_code)
        return response.json()

    def _get(self, path):
        """GET a contents entry, or None when the path does not exist."""
        try:
            return self._request('GET', path)
        except BackingStoreError as exc:
            if exc.status == 404:
                return None
            raise

    def _read_blob(self, entry) -> bytes:
        # Files over 1 MB come back without inline content.
        if entry.get('encoding') == 'none' and entry.get('download_url'):
            try:
                response = request_with_timeout(self.session, 'GET', entry['download_url'],
                                                timeout=self.timeout,
                                                headers={'Authorization': f'token {self.token}'})
            except requests.RequestException as exc:
                raise StoreUnavailable(f'GitHub request failed: {exc}') from exc
            if not response.ok:
                raise BackingStoreError(f'GitHub raw download failed: {response.status_code}',
                                        status=response.status_code)
            return response.content
        return base64.b64decode(entry.get('content') or '')

    def load_content(self):
        entry = self._get(self.content_path)
        if entry is not None:
            return ContentDocument(_decode(self._read_blob(entry)), sha=entry.get('sha'))

        logger.info('Content document %s not found, creating default structure', self.content_path)
        document = ContentDocument()
        try:
            self.save_content(document)
        except WriteConflict:
            # Another writer created the document first; use theirs.
            entry = self._get(self.content_path)
            if entry is None:
                raise
            return ContentDocument(_decode(self._read_blob(entry)), sha=entry.get('sha'))
        return document

    def save_content(self, document):
        payload = {
            'message': f'Update content - {datetime.now(timezone.utc).isoformat()}',
            'content': base64.b64encode(_serialize(document.data)).decode('ascii'),
            'branch': self.branch,
        }
        if document.sha:
            payload['sha'] = document.sha
        try:
            result = self._request('PUT', self.content_path, payload)
        except BackingStoreError as exc:
            if exc.status in (409, 422):
                raise WriteConflict(f'Content document changed since it was loaded ({exc.status})',
                                    status=exc.status) from exc
            logger.error('Failed to save content to GitHub: %s', exc)
            raise
        document.sha = (result.get('content') or {}).get('sha', document.sha)
        logger.info('Content saved to GitHub (%s)', self.content_path)

    def upload_file(self, data, file_name, category):
        _check_category(category)
        path = f'{UPLOADS_PREFIX}/{category}/{file_name}'
        self._request('PUT', path, {
            'message': f'Upload file: {file_name}',
            'content': base64.b64encode(data).decode('ascii'),
            'branch': self.branch,
        })
        url = f'https://{RAW_HOST}/{self.owner}/{self.repo}/{self.branch}/{path}'
        logger.info('File uploaded to GitHub: %s', url)
        return url

    def resolve_path(self, url):
        return normalize_upload_path(url, self.branch, self.owner, self.repo)

    def delete_file(self, url):
        path = self.resolve_path(url)
        logger.info('Deleting file %s (original: %s)', path, url)
        entry = self._get(path)
        if entry is None:
            logger.info('File already deleted or not found: %s', path)
            return
        try:
            self._request('DELETE', path, {
                'message': f'Delete file: {path}',
                'sha': entry.get('sha'),
                'branch': self.branch,
            })
        except BackingStoreError as exc:
            if exc.status == 404:
                logger.info('File already deleted or not found: %s', path)
                return
            raise
        logger.info('File deleted from GitHub: %s', path)


class FileSystemStorage(BaseStorage):
    name = 'filesystem'

    def __init__(self, root, content_path=CONTENT_PATH):
        self.root = os.path.abspath(root)
        self.content_file = os.path.join(self.root, *content_path.split('/'))
        self.uploads_root = os.path.join(self.root, *UPLOADS_PREFIX.split('/'))
        self._lock = threading.Lock()

    def _read(self):
        try:
            with open(self.content_file, 'rb') as fh:
                return fh.read()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StoreUnavailable(f'Cannot read {self.content_file}: {exc}') from exc

    def _write(self, document):
        raw = _serialize(document.data)
        try:
            os.makedirs(os.path.dirname(self.content_file), exist_ok=True)
            tmp_path = self.content_file + '.tmp'
            with open(tmp_path, 'wb') as fh:
                fh.write(raw)
            os.replace(tmp_path, self.content_file)
        except OSError as exc:
            raise StoreUnavailable(f'Cannot write {self.content_file}: {exc}') from exc
        document.sha = _digest(raw)

    def load_content(self):
        with self._lock:
            raw = self._read()
            if raw is None:
                logger.info('Content file not found, creating default structure')
                document = ContentDocument()
                self._write(document)
                return document
        return ContentDocument(_decode(raw), sha=_digest(raw))

    def save_content(self, document):
        with self._lock:
            raw = self._read()
            current = _digest(raw) if raw is not None else None
            if current != document.sha:
                raise WriteConflict('Content document changed since it was loaded', status=409)
            self._write(document)
        logger.info('Content saved to %s', self.content_file)

    def _upload_target(self, url):
        relative = normalize_upload_path(url)
        target = os.path.abspath(os.path.join(self.root, *relative.split('/')))
        if os.path.commonpath([target, self.uploads_root]) != self.uploads_root:
            raise ValidationFailure(f'Path is outside the uploads directory: {url}')
        return target

    def upload_file(self, data, file_name, category):
        _check_category(category)
        url = f'/uploads/{category}/{file_name}'
        target = self._upload_target(url)
        try:
            os.makedirs(os.path.dirname(target), exist_ok=True)
            with open(target, 'wb') as fh:
                fh.write(data)
        except OSError as exc:
            raise StoreUnavailable(f'Cannot write {target}: {exc}') from exc
        logger.info('File uploaded to %s', target)
        return url

    def delete_file(self, url):
        target = self._upload_target(url)
        try:
            os.remove(target)
        except FileNotFoundError:
            logger.info('File already deleted or not found: %s', target)
            return
        except OSError as exc:
            raise BackingStoreError(f'Failed to delete {url}: {exc}') from exc
        logger.info('File deleted: %s', target)


def build_storage(config, instance_path):
    backend = (config.get('STORAGE_BACKEND') or '').lower()
    if not backend:
        use_github = config.get('FLASK_ENV') == 'production' and config.get('GITHUB_TOKEN')
        backend = 'github' if use_github else 'filesystem'

    if backend == 'github':
        return GitHubStorage(
            owner=config.get('GITHUB_OWNER'),
            repo=config.get('GITHUB_REPO'),
            token=config.get('GITHUB_TOKEN'),
            branch=config.get('GITHUB_BRANCH') or 'main',
            content_path=config.get('GITHUB_CONTENT_PATH') or CONTENT_PATH,
            timeout=float(config.get('GITHUB_TIMEOUT') or 10),
        )
    if backend == 'filesystem':
        return FileSystemStorage(config.get('STORAGE_ROOT') or instance_path)
    raise ValueError(f'Unknown STORAGE_BACKEND: {backend}')


def get_storage(app=None) -> BaseStorage:
    """Return the app's storage adapter, building it on first use."""
    app = app or current_app._get_current_object()
    storage = app.extensions.get('content_storage')
    if storage is None:
        storage = build_storage(app.config, app.instance_path)
        app.extensions['content_storage'] = storage
    return storage
