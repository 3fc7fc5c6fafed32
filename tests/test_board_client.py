#!/usr/bin/env python3
"""
Tests for BoardClient (board_client.py): request shapes, auth headers,
response unwrapping and the error taxonomy.

Run with:
    python -m pytest tests/test_board_client.py
"""
import io
import json
import os
import sys
import unittest
from unittest.mock import MagicMock

import requests

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from board_client import BoardAPIError, BoardClient, BoardNetworkError


# ===========================================================================
# Helpers
# ===========================================================================

def _resp(body=None, status=200, text=None):
    resp = MagicMock()
    resp.status_code = status
    resp.ok = 200 <= status < 300
    resp.reason = 'Reason'
    if body is None and text is None:
        resp.content = b''
        resp.text = ''
        resp.json.side_effect = ValueError('no body')
    elif body is None:
        resp.content = text.encode('utf-8')
        resp.text = text
        resp.json.side_effect = ValueError('not json')
    else:
        resp.text = json.dumps(body)
        resp.content = resp.text.encode('utf-8')
        resp.json.return_value = body
    return resp


def _client(resp):
    session = MagicMock()
    session.request.return_value = resp
    return BoardClient('http://board.test/', timeout=5, session=session), session


# ===========================================================================
# Request shapes
# ===========================================================================

class TestBoardClientRequests(unittest.TestCase):

    def test_base_url_required(self):
        with self.assertRaises(ValueError):
            BoardClient('')

    def test_login_posts_credentials_without_auth_header(self):
        client, session = _client(_resp({'token': 't', 'user': {'id': 1, 'username': 'a'}}))
        data = client.login('a', 'pw')
        self.assertEqual(data['token'], 't')
        session.request.assert_called_once_with(
            'POST', 'http://board.test/api/auth/login', headers={}, timeout=5,
            json={'username': 'a', 'password': 'pw'})

    def test_list_posts_pagination_params(self):
        client, session = _client(_resp({'posts': [], 'pagination': {}}))
        client.list_posts(page=3, limit=10)
        _, kwargs = session.request.call_args
        self.assertEqual(kwargs['params'], {'page': 3, 'limit': 10})

    def test_search_posts_omits_empty_filters(self):
        client, session = _client(_resp({'posts': [], 'pagination': {}}))
        client.search_posts(query='halo', game_id='', tag='', page=1, limit=10)
        args, kwargs = session.request.call_args
        self.assertEqual(args[1], 'http://board.test/api/posts/search')
        self.assertEqual(kwargs['params'], {'page': 1, 'limit': 10, 'q': 'halo'})

    def test_create_comment_sends_bearer_and_parent(self):
        client, session = _client(_resp({'id': 3}))
        client.create_comment('tok', 7, 'gg', parent_id=2)
        _, kwargs = session.request.call_args
        self.assertEqual(kwargs['headers'], {'Authorization': 'Bearer tok'})
        self.assertEqual(kwargs['json'], {'post_id': 7, 'content': 'gg', 'parent_id': 2})

    def test_top_level_comment_has_no_parent(self):
        client, session = _client(_resp({'id': 3}))
        client.create_comment('tok', 7, 'gg')
        _, kwargs = session.request.call_args
        self.assertNotIn('parent_id', kwargs['json'])

    def test_create_post_is_multipart(self):
        client, session = _client(_resp({'id': 11}))
        media = ('clip.png', io.BytesIO(b'png'), 'image/png')
        client.create_post('tok', 'Title', 'Body', 4, media=media)
        _, kwargs = session.request.call_args
        self.assertNotIn('data', kwargs)
        self.assertEqual(kwargs['files']['title'], (None, 'Title'))
        self.assertEqual(kwargs['files']['content'], (None, 'Body'))
        self.assertEqual(kwargs['files']['game_id'], (None, '4'))
        self.assertEqual(kwargs['files']['file'], media)

    def test_create_post_without_media_is_still_multipart(self):
        client, session = _client(_resp({'id': 11}))
        client.create_post('tok', 'Title', 'Body', 4)
        args, kwargs = session.request.call_args
        self.assertNotIn('file', kwargs['files'])
        prepared = requests.Request(args[0], args[1], files=kwargs['files']).prepare()
        self.assertTrue(prepared.headers['Content-Type'].startswith('multipart/form-data'))
        self.assertIn(b'name="game_id"', prepared.body)
        self.assertIn(b'Title', prepared.body)

    def test_update_and_delete_comment_methods(self):
        client, session = _client(_resp({'id': 3}))
        client.update_comment('tok', 3, 'edited')
        self.assertEqual(session.request.call_args[0][:2],
                         ('PUT', 'http://board.test/api/comments/3'))
        client.delete_comment('tok', 3)
        self.assertEqual(session.request.call_args[0][:2],
                         ('DELETE', 'http://board.test/api/comments/3'))


# ===========================================================================
# Response unwrapping
# ===========================================================================

class TestBoardClientResponses(unittest.TestCase):

    def test_list_games_unwraps_games_key(self):
        client, _ = _client(_resp({'games': [{'id': 1}]}))
        self.assertEqual(client.list_games(), [{'id': 1}])

    def test_list_games_accepts_bare_list(self):
        client, _ = _client(_resp([{'id': 1}]))
        self.assertEqual(client.list_games(), [{'id': 1}])

    def test_search_rawg_unwraps_results(self):
        client, _ = _client(_resp({'results': [{'id': 9, 'name': 'Halo'}]}))
        self.assertEqual(client.search_rawg('halo'), [{'id': 9, 'name': 'Halo'}])

    def test_import_returns_game_on_fresh_import(self):
        client, _ = _client(_resp({'id': 5, 'title': 'Halo', 'rawg_id': 9}))
        self.assertEqual(client.import_rawg('tok', 9)['id'], 5)

    def test_import_returns_nested_game_when_already_imported(self):
        body = {'message': 'game already imported', 'game': {'id': 5, 'title': 'Halo'}}
        client, _ = _client(_resp(body))
        self.assertEqual(client.import_rawg('tok', 9), {'id': 5, 'title': 'Halo'})

    def test_empty_body_returns_none(self):
        client, _ = _client(_resp())
        self.assertIsNone(client.delete_post('tok', 1))

    def test_get_comments_empty_body_is_empty_list(self):
        client, _ = _client(_resp())
        self.assertEqual(client.get_comments(1), [])


# ===========================================================================
# Errors
# ===========================================================================

class TestBoardClientErrors(unittest.TestCase):

    def test_error_field_used_as_message(self):
        client, _ = _client(_resp({'error': 'Invalid credentials'}, status=401))
        with self.assertRaises(BoardAPIError) as ctx:
            client.login('a', 'bad')
        self.assertEqual(ctx.exception.status_code, 401)
        self.assertEqual(ctx.exception.message, 'Invalid credentials')

    def test_plain_text_error_used_verbatim(self):
        client, _ = _client(_resp(text='upstream exploded', status=502))
        with self.assertRaises(BoardAPIError) as ctx:
            client.list_posts()
        self.assertEqual(ctx.exception.message, 'upstream exploded')

    def test_invalid_json_on_success_is_api_error(self):
        client, _ = _client(_resp(text='<html>', status=200))
        with self.assertRaises(BoardAPIError):
            client.get_post(1)

    def test_transport_failure_is_network_error(self):
        session = MagicMock()
        session.request.side_effect = requests.ConnectionError('refused')
        client = BoardClient('http://board.test', session=session)
        with self.assertRaises(BoardNetworkError):
            client.list_posts()


if __name__ == '__main__':
    unittest.main()
