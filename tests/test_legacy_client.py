#!/usr/bin/env python3
"""
Tests for LegacyForumClient (legacy_client.py): PascalCase record parsing,
status-code expectations and plain-text errors.

Run with:
    python -m pytest tests/test_legacy_client.py
"""
import os
import sys
import unittest
from unittest.mock import MagicMock, patch

import requests

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from legacy_client import (
    LegacyComment, LegacyForum, LegacyForumClient, LegacyForumError, LegacyPost,
)


def _resp(status=200, body=None, text=''):
    resp = MagicMock()
    resp.status_code = status
    resp.text = text
    if body is None:
        resp.json.side_effect = ValueError('not json')
    else:
        resp.json.return_value = body
    return resp


POST_JSON = {
    'ID': 4, 'ForumID': 2, 'UserID': 9, 'Title': 'Best persona?',
    'Content': 'Discuss', 'CreatedAt': '2024-01-01T00:00:00Z',
    'User': {'ID': 9, 'Username': 'joker', 'Email': 'j@example.com'},
}


class TestLegacyRecords(unittest.TestCase):

    def test_post_parses_pascal_case(self):
        post = LegacyPost.from_json(POST_JSON)
        self.assertEqual(post.id, 4)
        self.assertEqual(post.forum_id, 2)
        self.assertEqual(post.title, 'Best persona?')
        self.assertEqual(post.user.username, 'joker')

    def test_forum_parses_pascal_case(self):
        forum = LegacyForum.from_json({'ID': 1, 'GameID': 3, 'Name': 'General'})
        self.assertEqual((forum.id, forum.game_id, forum.name), (1, 3, 'General'))

    def test_snake_case_keys_are_not_read(self):
        post = LegacyPost.from_json({'id': 4, 'title': 'x'})
        self.assertNotEqual(post.title, 'x')


class TestLegacyForumClient(unittest.TestCase):

    def setUp(self):
        self.client = LegacyForumClient('http://legacy.test/')

    def test_from_config(self):
        client = LegacyForumClient.from_config({'legacy_url': 'http://other', 'timeout': 4})
        self.assertEqual(client._base_url, 'http://other')
        self.assertEqual(client._timeout, 4.0)

    @patch('legacy_client.requests.post')
    def test_login_keeps_token_and_username(self, mock_post):
        mock_post.return_value = _resp(200, {'token': 'abc'})
        user = self.client.login('joker', 'pw')
        self.assertTrue(self.client.is_authenticated)
        self.assertEqual(user.username, 'joker')
        self.assertEqual(mock_post.call_args[0][0], 'http://legacy.test/login')

    @patch('legacy_client.requests.post')
    def test_login_error_text_surfaces(self, mock_post):
        mock_post.return_value = _resp(401, text='invalid credentials')
        with self.assertRaises(LegacyForumError) as ctx:
            self.client.login('joker', 'bad')
        self.assertIn('invalid credentials', ctx.exception.message)
        self.assertEqual(ctx.exception.status_code, 401)

    @patch('legacy_client.requests.get')
    def test_list_posts_unwraps_posts(self, mock_get):
        mock_get.return_value = _resp(200, {'posts': [POST_JSON]})
        posts = self.client.list_posts(2, page=1)
        self.assertEqual(len(posts), 1)
        self.assertIsInstance(posts[0], LegacyPost)
        self.assertEqual(mock_get.call_args[1]['params'], {'page': 1, 'limit': 10})

    @patch('legacy_client.requests.get')
    def test_list_forums_bare_array(self, mock_get):
        mock_get.return_value = _resp(200, [{'ID': 1, 'GameID': 3, 'Name': 'General'}])
        self.assertEqual(self.client.list_forums()[0].name, 'General')

    @patch('legacy_client.requests.post')
    def test_add_comment_expects_201(self, mock_post):
        self.client.token = 'abc'
        mock_post.return_value = _resp(201, {'ID': 1, 'PostID': 4, 'UserID': 9, 'Content': 'yes'})
        comment = self.client.add_comment(4, 'yes')
        self.assertIsInstance(comment, LegacyComment)
        self.assertEqual(comment.content, 'yes')
        headers = mock_post.call_args[1]['headers']
        self.assertEqual(headers['Authorization'], 'Bearer abc')

    @patch('legacy_client.requests.post')
    def test_add_comment_with_200_is_error(self, mock_post):
        self.client.token = 'abc'
        mock_post.return_value = _resp(200, {'ID': 1})
        with self.assertRaises(LegacyForumError):
            self.client.add_comment(4, 'yes')

    @patch('legacy_client.requests.post')
    def test_add_comment_requires_login(self, mock_post):
        with self.assertRaises(LegacyForumError):
            self.client.add_comment(4, 'yes')
        mock_post.assert_not_called()

    @patch('legacy_client.requests.get')
    def test_search_splits_posts_and_comments(self, mock_get):
        mock_get.return_value = _resp(200, {
            'posts': [POST_JSON],
            'comments': [{'ID': 2, 'PostID': 4, 'UserID': 9, 'Content': 'agreed'}],
        })
        result = self.client.search('persona')
        self.assertEqual(result['posts'][0].title, 'Best persona?')
        self.assertEqual(result['comments'][0].content, 'agreed')

    def test_search_requires_query(self):
        with self.assertRaises(LegacyForumError):
            self.client.search('')

    @patch('legacy_client.requests.get')
    def test_network_failure_wrapped(self, mock_get):
        mock_get.side_effect = requests.ConnectionError('down')
        with self.assertRaises(LegacyForumError):
            self.client.list_forums()

    def test_logout_clears_token(self):
        self.client.token = 'abc'
        self.client.logout()
        self.assertFalse(self.client.is_authenticated)


if __name__ == '__main__':
    unittest.main()
