# connectsphere/api/test_social_routes.py
"""End-to-end checks of the JSON API over the in-memory store."""
import io

import pytest

from connectsphere.conftest import at


@pytest.fixture
def people(make_user):
    make_user('alice')
    make_user('bob')
    make_user('carol')


def test_endpoints_require_a_token(client):
    assert client.get('/api/feed').status_code == 401
    assert client.get('/api/users/me').status_code == 401


def test_profile_shows_relationship_and_hides_email(client, auth_headers, people):
    response = client.get('/api/users/bob', headers=auth_headers('alice'))

    assert response.status_code == 200
    body = response.get_json()
    assert body['relationship'] == 'none'
    assert 'email' not in body
    own = client.get('/api/users/me', headers=auth_headers('alice')).get_json()
    assert own['relationship'] == 'own_profile'
    assert own['email'] == 'alice@example.com'


def test_unknown_profile(client, auth_headers, people):
    response = client.get('/api/users/ghost', headers=auth_headers('alice'))
    assert response.status_code == 404


def test_profile_update(client, auth_headers, people):
    response = client.patch('/api/users/me', headers=auth_headers('alice'),
                            json={'title': 'Engineer', 'skills': 'python, flask'})

    assert response.status_code == 200
    assert response.get_json()['skills'] == ['python', 'flask']
    bad = client.patch('/api/users/me', headers=auth_headers('alice'), json={'name': 'x' * 101})
    assert bad.status_code == 400


def test_avatar_upload_flow(client, auth_headers, people, bucket):
    issued = client.post('/api/uploads/url', headers=auth_headers('alice'), json={
        'upload_type': 'avatar', 'filename': 'me.png', 'content_type': 'image/png'
    }).get_json()
    assert issued['file_path'].startswith('avatars/alice/')
    bucket.objects[issued['file_path']] = {'data': b'png', 'content_type': 'image/png', 'public': False}

    response = client.patch('/api/users/me/avatar', headers=auth_headers('alice'),
                            json={'file_path': issued['file_path']})

    assert response.status_code == 200
    assert response.get_json()['avatar'].endswith(issued['file_path'])
    stolen = client.patch('/api/users/me/avatar', headers=auth_headers('bob'),
                          json={'file_path': issued['file_path']})
    assert stolen.status_code == 403


def test_upload_url_rejects_unknown_type(client, auth_headers, people):
    response = client.post('/api/uploads/url', headers=auth_headers('alice'), json={
        'upload_type': 'cartoon', 'filename': 'x.png', 'content_type': 'image/png'
    })
    assert response.status_code == 400


def test_upload_url_is_only_issued_for_profile_images(client, auth_headers, people):
    response = client.post('/api/uploads/url', headers=auth_headers('alice'), json={
        'upload_type': 'post_image', 'filename': 'x.png', 'content_type': 'image/png'
    })
    assert response.status_code == 400
    assert 'upload_type' in response.get_json()['details']


def test_friend_request_flow(client, auth_headers, people):
    sent = client.post('/api/friends/users/bob/request', headers=auth_headers('alice'))
    assert sent.status_code == 201
    assert sent.get_json()['request']['from'] == 'alice'

    duplicate = client.post('/api/friends/users/bob/request', headers=auth_headers('alice'))
    assert duplicate.status_code == 409

    incoming = client.get('/api/friends/requests', headers=auth_headers('bob')).get_json()['requests']
    assert len(incoming) == 1
    request_id = incoming[0]['request_id']

    assert client.post(f"/api/friends/requests/{request_id}/accept", headers=auth_headers('carol')).status_code == 403
    accepted = client.post(f"/api/friends/requests/{request_id}/accept", headers=auth_headers('bob'))
    assert accepted.status_code == 200
    assert accepted.get_json()['friend']['uid'] == 'alice'

    relationship = client.get('/api/friends/users/bob/relationship', headers=auth_headers('alice')).get_json()
    assert relationship == {'relationship': 'friends'}
    friends = client.get('/api/friends', headers=auth_headers('alice')).get_json()['friends']
    assert [f['uid'] for f in friends] == ['bob']


def test_cancel_and_decline_by_uid(client, auth_headers, people):
    client.post('/api/friends/users/bob/request', headers=auth_headers('alice'))
    assert client.delete('/api/friends/users/bob/request', headers=auth_headers('alice')).status_code == 200
    assert client.delete('/api/friends/users/bob/request', headers=auth_headers('alice')).status_code == 404

    client.post('/api/friends/users/carol/request', headers=auth_headers('alice'))
    declined = client.post('/api/friends/users/alice/decline', headers=auth_headers('carol'))
    assert declined.get_json() == {'relationship': 'none'}


def test_post_feed_like_comment_cycle(client, auth_headers, people, befriend):
    befriend('alice', 'bob')
    created = client.post('/api/posts', headers=auth_headers('alice'), json={'title': 'Hi', 'content': 'First post'})
    assert created.status_code == 201
    post_id = created.get_json()['post_id']

    feed = client.get('/api/feed', headers=auth_headers('bob')).get_json()['posts']
    assert [p['post_id'] for p in feed] == [post_id]
    assert feed[0]['user_name'] == 'Alice'

    liked = client.post(f"/api/posts/alice/{post_id}/like", headers=auth_headers('bob')).get_json()
    assert liked == {'likes': ['bob'], 'like_count': 1, 'is_liked': True}

    comment = client.post(f"/api/posts/alice/{post_id}/comments", headers=auth_headers('bob'), json={'text': 'Nice'})
    assert comment.status_code == 201
    assert comment.get_json()['author'] == 'Bob'

    feed = client.get('/api/feed', headers=auth_headers('alice')).get_json()['posts']
    assert feed[0]['like_count'] == 1
    assert [c['text'] for c in feed[0]['comments']] == ['Nice']

    assert client.get('/api/feed', headers=auth_headers('carol')).get_json()['posts'] == []


def test_multipart_post_with_photo(client, auth_headers, people, bucket):
    response = client.post('/api/posts', headers=auth_headers('alice'), content_type='multipart/form-data', data={
        'title': 'Cat', 'content': 'Look', 'photo': (io.BytesIO(b'\x89PNG'), 'cat.png')
    })

    assert response.status_code == 201
    assert response.get_json()['photo_url'].startswith(f"https://storage.googleapis.com/{bucket.name}/posts/alice/")


def test_multipart_post_without_photo(client, auth_headers, people):
    response = client.post('/api/posts', headers=auth_headers('alice'), content_type='multipart/form-data', data={
        'title': 'Hello', 'content': 'World'
    })

    assert response.status_code == 201
    body = response.get_json()
    assert body['title'] == 'Hello'
    assert not body['photo_url']


def test_post_validation_and_ownership(client, auth_headers, people, make_post):
    assert client.post('/api/posts', headers=auth_headers('alice'), json={'title': 'x'}).status_code == 400

    make_post('alice', 'p1', at(0))
    assert client.patch('/api/posts/alice/p1', headers=auth_headers('bob'), json={'title': 'Mine'}).status_code == 403
    assert client.delete('/api/posts/alice/p1', headers=auth_headers('bob')).status_code == 403
    assert client.patch('/api/posts/alice/p1', headers=auth_headers('alice'), json={'title': 'Edited'}).status_code == 200
    assert client.delete('/api/posts/alice/missing', headers=auth_headers('alice')).status_code == 404


def test_partial_delete_is_reported(client, app, auth_headers, people, make_post, make_comment, db):
    app.services['posts'].max_batch_writes = 1
    make_post('alice', 'p1', at(0))
    make_comment('alice', 'p1', 'c1', 'bob', at(1))
    make_comment('alice', 'p1', 'c2', 'bob', at(2))
    db.fail_on('delete', 'users/alice/posts/p1', after=1)

    response = client.delete('/api/posts/alice/p1', headers=auth_headers('alice'))

    assert response.status_code == 500
    body = response.get_json()
    assert body['error_code'] == 'PARTIAL_DELETE'
    assert (body['deleted'], body['remaining']) == (1, 1)


def test_comment_delete_is_author_only(client, auth_headers, people, make_post, make_comment):
    make_post('alice', 'p1', at(0))
    make_comment('alice', 'p1', 'c1', 'bob', at(1))

    assert client.delete('/api/posts/alice/p1/comments/c1', headers=auth_headers('alice')).status_code == 403
    assert client.delete('/api/posts/alice/p1/comments/c1', headers=auth_headers('bob')).status_code == 204
    comments = client.get('/api/posts/alice/p1/comments', headers=auth_headers('bob')).get_json()['comments']
    assert comments == []


def test_direct_messages(client, auth_headers, people):
    sent = client.post('/api/messages/bob', headers=auth_headers('alice'), json={'text': 'hey'})
    assert sent.status_code == 201
    assert sent.get_json()['chat_id'] == 'alice_bob'
    client.post('/api/messages/alice', headers=auth_headers('bob'), json={'text': 'hi'})

    history = client.get('/api/messages/alice', headers=auth_headers('bob')).get_json()['messages']
    assert [(m['from'], m['text']) for m in history] == [('alice', 'hey'), ('bob', 'hi')]

    assert client.post('/api/messages/alice', headers=auth_headers('alice'), json={'text': 'me'}).status_code == 400
    assert client.post('/api/messages/ghost', headers=auth_headers('alice'), json={'text': 'boo'}).status_code == 404
    assert client.post('/api/messages/bob', headers=auth_headers('alice'), json={'text': ''}).status_code == 400


def test_groups(client, auth_headers, people):
    created = client.post('/api/groups', headers=auth_headers('alice'), json={'name': 'Hikers'})
    assert created.status_code == 201
    group_id = created.get_json()['group_id']

    groups = client.get('/api/groups', headers=auth_headers('bob')).get_json()['groups']
    assert [g['name'] for g in groups] == ['Hikers']

    posted = client.post(f"/api/groups/{group_id}/messages", headers=auth_headers('bob'), json={'text': 'Sunday?'})
    assert posted.status_code == 201
    history = client.get(f"/api/groups/{group_id}/messages", headers=auth_headers('alice')).get_json()['messages']
    assert [m['text'] for m in history] == ['Sunday?']

    assert client.get('/api/groups/missing', headers=auth_headers('alice')).status_code == 404
    assert client.get('/api/groups/missing/stream', headers=auth_headers('alice')).status_code == 404


def test_stream_opens_event_stream(client, auth_headers, people):
    client.post('/api/messages/bob', headers=auth_headers('alice'), json={'text': 'hey'})

    response = client.get('/api/messages/bob/stream', headers=auth_headers('alice'), buffered=False)

    assert response.status_code == 200
    assert response.mimetype == 'text/event-stream'
    first = next(response.response)
    first = first.decode() if isinstance(first, bytes) else first
    assert first.startswith('event: snapshot\ndata: ')
    assert '"hey"' in first
    response.close()


def test_incoming_requests_stream(client, auth_headers, people):
    client.post('/api/friends/users/bob/request', headers=auth_headers('alice'))

    response = client.get('/api/friends/requests/stream', headers=auth_headers('bob'), buffered=False)

    assert response.status_code == 200
    assert response.mimetype == 'text/event-stream'
    first = next(response.response)
    first = first.decode() if isinstance(first, bytes) else first
    assert first.startswith('event: snapshot\ndata: ')
    assert '"from": "alice"' in first
    response.close()
