import io
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from services.errors import StoreUnavailable, WriteConflict


def _post(client, headers, **fields):
    data = {'title': '새 소식', 'section': 'library/press', 'content': '본문'}
    data.update(fields)
    return client.post('/content', json=data, headers=headers)


# --- auth guard ---

def test_mutations_require_token(client, memory_storage):
    assert client.post('/content', json={'title': 'x', 'section': 'library/press'}).status_code == 401
    assert client.put('/content/content-1', json={'title': 'x'}).status_code == 401
    assert client.delete('/content/content-1').status_code == 401
    assert client.post('/upload').status_code == 401
    rv = client.post('/content', json={'title': 'x'}, headers={'Authorization': 'Bearer forged'})
    assert rv.status_code == 401
    assert memory_storage.saves == 0


def test_reads_are_public(client, memory_storage):
    rv = client.get('/content')
    assert rv.status_code == 200
    assert rv.get_json() == {'content': {}}


# --- CRUD ---

def test_create_get_update_delete_cycle(client, auth_headers, memory_storage):
    rv = _post(client, auth_headers, content='![a](/uploads/images/a.jpg)')
    assert rv.status_code == 201
    item = rv.get_json()
    assert item['section'] == 'library/press'
    assert item['viewCount'] == 0

    rv = client.get(f"/content/{item['id']}")
    assert rv.status_code == 200
    assert rv.get_json()['title'] == '새 소식'

    rv = client.put(f"/content/{item['id']}", json={'content': '사진을 지웠습니다'}, headers=auth_headers)
    assert rv.status_code == 200
    assert rv.get_json()['content'] == '사진을 지웠습니다'
    assert memory_storage.deleted == ['/uploads/images/a.jpg']

    rv = client.delete(f"/content/{item['id']}", headers=auth_headers)
    assert rv.status_code == 200
    assert rv.get_json() == {'success': True}
    assert client.get(f"/content/{item['id']}").status_code == 404


def test_create_validation_errors_are_400(client, auth_headers, memory_storage):
    assert _post(client, auth_headers, title='').status_code == 400
    assert _post(client, auth_headers, section='organization/chairman').status_code == 400
    rv = client.post('/content', data='title=x', headers=auth_headers, content_type='text/plain')
    assert rv.status_code == 400
    assert rv.get_json()['error'] == 'Expected application/json'
    assert memory_storage.saves == 0


def test_unknown_ids_are_404(client, auth_headers, memory_storage):
    assert client.get('/content/content-missing').status_code == 404
    assert client.put('/content/content-missing', json={'title': 'x'}, headers=auth_headers).status_code == 404
    assert client.delete('/content/content-missing', headers=auth_headers).status_code == 404
    assert client.post('/content/content-missing/view').status_code == 404


def test_view_endpoint_counts(client, auth_headers, memory_storage):
    item = _post(client, auth_headers).get_json()
    for expected in (1, 2, 3):
        rv = client.post(f"/content/{item['id']}/view")
        assert rv.status_code == 200
        assert rv.get_json() == {'id': item['id'], 'viewCount': expected}


def test_list_filters_by_query(client, auth_headers, memory_storage):
    _post(client, auth_headers, title='공개', status='published')
    _post(client, auth_headers, title='초안', status='draft')
    _post(client, auth_headers, title='논문', section='library/academic', status='published')

    rv = client.get('/content?section=library/press&status=published')
    assert [i['title'] for i in rv.get_json()['content']['library/press']] == ['공개']

    rv = client.get('/content?section=library&status=published')
    content = rv.get_json()['content']
    assert [i['title'] for i in content['library/academic']] == ['논문']
    assert [i['title'] for i in content['library/press']] == ['공개']


def test_write_conflict_is_500_with_reload_message(client, auth_headers, memory_storage, monkeypatch):
    item = _post(client, auth_headers).get_json()

    def conflicted(document):
        raise WriteConflict('sha mismatch', status=409)

    monkeypatch.setattr(memory_storage, 'save_content', conflicted)
    rv = client.put(f"/content/{item['id']}", json={'title': '변경'}, headers=auth_headers)
    assert rv.status_code == 500
    assert 'reload' in rv.get_json()['error']
    assert client.post(f"/content/{item['id']}/view").status_code == 500


def test_backing_store_outage_is_500(client, memory_storage, monkeypatch):
    def unavailable():
        raise StoreUnavailable('GitHub unreachable')

    monkeypatch.setattr(memory_storage, 'load_content', unavailable)
    rv = client.get('/content')
    assert rv.status_code == 500
    assert 'GitHub' not in rv.get_json()['error']


def test_unexpected_error_is_500(client, memory_storage, monkeypatch):
    def broken():
        raise RuntimeError('bug')

    monkeypatch.setattr(memory_storage, 'load_content', broken)
    rv = client.get('/content/content-1')
    assert rv.status_code == 500
    assert rv.get_json() == {'error': 'Failed to load content'}


def test_draft_then_published_scenario(client, auth_headers, memory_storage):
    memory_storage.data['content']['library/press'] = [{
        'id': 'content-older', 'title': '이전 자료', 'content': '', 'section': 'library/press',
        'type': 'press', 'status': 'published', 'createdAt': '2023-05-01T00:00:00.000Z',
        'updatedAt': '2023-05-01T00:00:00.000Z', 'viewCount': 3,
    }]
    item = _post(client, auth_headers, title='A', status='draft').get_json()

    listing = client.get('/sections/library/content').get_json()
    assert [i['id'] for i in listing['items']] == ['content-older']

    client.put(f"/content/{item['id']}", json={'status': 'published'}, headers=auth_headers)
    listing = client.get('/sections/library/content').get_json()
    assert [i['id'] for i in listing['items']] == [item['id'], 'content-older']
    assert listing['total'] == 2


# --- uploads ---

def test_upload_image_to_filesystem(client, auth_headers, app, tmp_path):
    rv = client.post(
        '/upload',
        data={'file': (io.BytesIO(b'\x89PNG fake'), '기념사진.PNG', 'image/png')},
        headers=auth_headers,
        content_type='multipart/form-data',
    )
    assert rv.status_code == 200
    body = rv.get_json()
    assert body['success'] is True
    assert body['category'] == 'images'
    assert body['originalName'] == '기념사진.PNG'
    assert body['fileName'].endswith('.png')
    assert body['url'] == f"/uploads/images/{body['fileName']}"
    assert body['size'] == len(b'\x89PNG fake')
    assert (tmp_path / 'public' / 'uploads' / 'images' / body['fileName']).read_bytes() == b'\x89PNG fake'


def test_upload_document_category(client, auth_headers, memory_storage):
    rv = client.post(
        '/upload',
        data={'file': (io.BytesIO(b'%PDF-1.4'), 'report.pdf', 'application/pdf')},
        headers=auth_headers,
        content_type='multipart/form-data',
    )
    assert rv.status_code == 200
    assert rv.get_json()['category'] == 'documents'
    assert memory_storage.uploaded[0][1] == 'documents'


def test_upload_rejections(client, auth_headers, memory_storage):
    rv = client.post('/upload', data={}, headers=auth_headers, content_type='multipart/form-data')
    assert rv.status_code == 400

    rv = client.post(
        '/upload',
        data={'file': (io.BytesIO(b'MZ'), 'tool.exe', 'application/octet-stream')},
        headers=auth_headers,
        content_type='multipart/form-data',
    )
    assert rv.status_code == 400
    assert rv.get_json()['error'] == 'File type not allowed'

    rv = client.post(
        '/upload',
        data={'file': (io.BytesIO(b''), 'empty.png', 'image/png')},
        headers=auth_headers,
        content_type='multipart/form-data',
    )
    assert rv.status_code == 400
    assert memory_storage.uploaded == []


# --- sections ---

def test_sections_index(client):
    body = client.get('/sections').get_json()
    paths = [s['path'] for s in body['contentSections']]
    assert 'library/press' in paths
    assert 'organization/chairman' not in paths
    assert {s['id'] for s in body['sections']} == {'about-general', 'organization', 'library', 'contact'}


def test_single_section_and_unknown(client):
    rv = client.get('/sections/library')
    assert rv.status_code == 200
    assert rv.get_json()['name'] == '자료실'
    assert client.get('/sections/nowhere').status_code == 404
    assert client.get('/sections/nowhere/content').status_code == 404
    assert client.get('/sections/library/nowhere/content').status_code == 404


def test_subsection_content_listing(client, auth_headers, memory_storage):
    _post(client, auth_headers, title='보도', status='published', content='**굵은** 본문')
    rv = client.get('/sections/library/press/content')
    assert rv.status_code == 200
    body = rv.get_json()
    assert body['section'] == 'library/press'
    assert body['name'] == '자료실 > 보도자료'
    assert [c['name'] for c in body['breadcrumbs']] == ['홈', '자료실', '보도자료']
    assert body['items'][0]['preview'] == '굵은 본문'


def test_breadcrumbs_endpoint(client):
    rv = client.get('/sections/breadcrumbs?path=library/academic&title=논문&id=content-9')
    crumbs = rv.get_json()['breadcrumbs']
    assert [c['name'] for c in crumbs] == ['홈', '자료실', '학술 자료·연구 보고서', '논문']


# --- health / debug / headers ---

def test_health_reports_storage(client):
    rv = client.get('/health')
    assert rv.status_code == 200
    body = rv.get_json()
    assert body['status'] == 'healthy'
    assert body['checks']['storage']['backend'] == 'filesystem'


def test_health_unhealthy_when_storage_fails(client, memory_storage, monkeypatch):
    def unavailable():
        raise StoreUnavailable('down')

    monkeypatch.setattr(memory_storage, 'load_content', unavailable)
    rv = client.get('/health')
    assert rv.status_code == 503
    assert rv.get_json()['status'] == 'unhealthy'


def test_debug_endpoint_gated_outside_development(client, app):
    rv = client.get('/debug')
    assert rv.status_code == 200
    body = rv.get_json()
    assert body['adminPasswordSet'] is True
    assert body['adminUsernameSet'] is True
    assert 'adminUsername' not in body
    assert 'test-password!' not in rv.get_data(as_text=True)

    app.config['FLASK_ENV'] = 'production'
    assert client.get('/debug').status_code == 403

    app.config['ENABLE_DEBUG'] = True
    assert client.get('/debug').status_code == 200


def test_security_headers(client):
    rv = client.get('/sections')
    assert rv.headers['X-Content-Type-Options'] == 'nosniff'
    assert rv.headers['X-Frame-Options'] == 'DENY'


def test_negative_limit_is_ignored(client, auth_headers, memory_storage):
    _post(client, auth_headers, title='하나', status='published')
    _post(client, auth_headers, title='둘', status='published')
    rv = client.get('/content?section=library/press&limit=-1')
    assert len(rv.get_json()['content']['library/press']) == 2
    rv = client.get('/sections/library/press/content?limit=-1')
    assert rv.get_json()['total'] == 2


def test_delete_keeps_linked_documents(client, auth_headers, memory_storage):
    item = _post(client, auth_headers, content='[보고서](/uploads/documents/report.pdf)').get_json()
    rv = client.delete(f"/content/{item['id']}", headers=auth_headers)
    assert rv.status_code == 200
    assert memory_storage.deleted == []
