# connectsphere/api/feed/test_feed_services.py
from unittest.mock import MagicMock

import pytest

from connectsphere.api.feed.services import FeedService
from connectsphere.api.friends.services import FriendService
from connectsphere.conftest import at


@pytest.fixture
def feed(db):
    return FeedService(FriendService(db=db), db=db, max_workers=4)


def test_feed_merges_self_and_friends_newest_first(feed, make_user, make_post, befriend):
    make_user('alice')
    make_user('bob')
    make_user('carol')
    befriend('alice', 'bob')
    make_post('alice', 'a1', at(1))
    make_post('bob', 'b1', at(3))
    make_post('alice', 'a2', at(5))
    make_post('carol', 'c1', at(4))   # not a friend

    posts = feed.get_feed('alice')

    assert [p['post_id'] for p in posts] == ['a2', 'b1', 'a1']
    assert posts[1]['user_name'] == 'Bob'
    assert posts[1]['user_id'] == 'bob'


def test_feed_order_does_not_depend_on_author_order(db, make_user, make_post):
    make_user('alice')
    make_user('bob')
    make_post('alice', 'a1', at(2))
    make_post('bob', 'b1', at(1))
    make_post('bob', 'b2', at(3))
    friend_service = MagicMock()
    friend_service.get_friend_ids.return_value = ['bob']

    posts = FeedService(friend_service, db=db).get_feed('alice')

    created = [p['created_at'] for p in posts]
    assert created == sorted(created, reverse=True)
    assert [p['post_id'] for p in posts] == ['b2', 'a1', 'b1']


def test_empty_feed(feed, make_user):
    make_user('dave')
    assert feed.get_feed('dave') == []


def test_missing_author_profile_is_unknown(feed, make_user, make_post, befriend):
    make_user('alice')
    befriend('alice', 'ghost')
    make_post('ghost', 'g1', at(1))

    posts = feed.get_feed('alice')

    assert posts[0]['user_name'] == 'Unknown'
    assert posts[0]['avatar'] is None


def test_comments_attached_oldest_first(feed, make_user, make_post, make_comment):
    make_user('alice')
    make_post('alice', 'a1', at(1), likes=['bob'])
    make_comment('alice', 'a1', 'late', 'bob', at(9), text='second')
    make_comment('alice', 'a1', 'early', 'carol', at(2), text='first')

    post = feed.get_feed('alice')[0]

    assert [c['text'] for c in post['comments']] == ['first', 'second']
    assert post['comments'][0]['author_id'] == 'carol'
    assert post['likes'] == ['bob']


def test_user_posts_for_profile_page(feed, make_user, make_post, befriend):
    make_user('alice')
    make_user('bob')
    befriend('alice', 'bob')
    make_post('alice', 'a1', at(1))
    make_post('bob', 'b1', at(2))

    assert [p['post_id'] for p in feed.get_user_posts('alice')] == ['a1']
