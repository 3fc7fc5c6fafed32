#!/usr/bin/env python3
"""
Tests for the Flask web GUI (board_gui.py): per-browser controllers,
post-redirect-get actions, alerts and destructive-action confirmation.

Run with:
    python -m pytest tests/test_gui.py
"""
import base64
import io
import json
import os
import sys
import unittest
from unittest.mock import MagicMock, patch

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import gameboard
import board_gui
from board_client import BoardAPIError


def make_token(payload):
    segment = base64.urlsafe_b64encode(json.dumps(payload).encode('utf-8')).decode('ascii')
    return f"hdr.{segment.rstrip('=')}.sig"


def _mock_client():
    client = MagicMock()
    client.list_posts.return_value = {
        'posts': [{'id': 1, 'title': 'First <script>alert(1)</script>', 'content': 'Body',
                   'user_id': 2, 'user': {'id': 2, 'username': 'bob'}}],
        'pagination': {'page': 1, 'pages': 3},
    }
    client.search_posts.return_value = {'posts': [], 'pagination': {'page': 1, 'pages': 1}}
    client.list_games.return_value = [{'id': 3, 'title': 'Halo', 'is_local': True}]
    client.get_tags.return_value = []
    client.get_post.return_value = {'id': 1, 'title': 'First', 'content': 'Body', 'user_id': 2}
    client.get_comments.return_value = [{'id': 10, 'user_id': 1, 'content': 'mine', 'replies': []}]
    client.search_rawg.return_value = []
    client.login.return_value = {'token': make_token({'user_id': 1, 'username': 'alice'}),
                                 'user': {'id': 1, 'username': 'alice'}}
    return client


class TestBoardGui(unittest.TestCase):

    def setUp(self):
        board_gui.configure(dict(gameboard.DEFAULT_CONFIG))
        self.api = _mock_client()
        patcher = patch('board_gui.BoardClient', return_value=self.api)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.addCleanup(board_gui.configure, dict(gameboard.DEFAULT_CONFIG))
        board_gui.app.config['TESTING'] = True
        self.http = board_gui.app.test_client()

    def _login(self, http=None):
        return (http or self.http).post('/auth/login', data={'username': 'alice', 'password': 'pw'},
                                        follow_redirects=True)

    def test_index_renders_feed_escaped(self):
        resp = self.http.get('/')
        self.assertEqual(resp.status_code, 200)
        html = resp.get_data(as_text=True)
        self.assertIn('First &lt;script&gt;', html)
        self.assertNotIn('<script>alert(1)', html)
        self.assertIn('/feed/page/2', html)

    def test_actions_redirect_home(self):
        resp = self.http.post('/tab/games')
        self.assertEqual(resp.status_code, 302)
        self.assertTrue(resp.headers['Location'].endswith('/'))

    def test_login_shows_welcome(self):
        html = self._login().get_data(as_text=True)
        self.assertIn('Welcome, alice!', html)

    def test_failed_login_alert_shown_once(self):
        self.api.login.side_effect = BoardAPIError(401, 'Invalid credentials')
        html = self._login().get_data(as_text=True)
        self.assertIn('Login failed: Invalid credentials', html)
        html = self.http.get('/').get_data(as_text=True)
        self.assertNotIn('Login failed', html)

    def test_post_without_game_rejected_locally(self):
        self._login()
        html = self.http.post('/posts', data={'title': 'T', 'content': 'C'},
                              follow_redirects=True).get_data(as_text=True)
        self.assertIn('Please select a game', html)
        self.api.create_post.assert_not_called()

    def test_post_with_upload(self):
        self._login()
        self.http.post('/games/select', data={'game_id': '3', 'title': 'Halo'})
        self.http.post('/posts', data={
            'title': 'T', 'content': 'C',
            'file': (io.BytesIO(b'img'), 'shot.png', 'image/png'),
        }, content_type='multipart/form-data')
        args, kwargs = self.api.create_post.call_args
        self.assertEqual(args[3], 3)
        self.assertEqual(kwargs['media'][0], 'shot.png')
        self.assertEqual(kwargs['media'][2], 'image/png')

    def test_delete_comment_needs_confirmation(self):
        self._login()
        self.http.post('/posts/1/open')
        self.http.post('/comments/10/delete')
        self.api.delete_comment.assert_not_called()
        self.http.post('/comments/10/delete', data={'confirmed': 'yes'})
        self.api.delete_comment.assert_called_once()

    def test_reply_form_toggle(self):
        self._login()
        self.http.post('/posts/1/open')
        html = self.http.post('/comments/10/reply/show',
                              follow_redirects=True).get_data(as_text=True)
        self.assertIn('class="reply-form" id="replyForm-10"', html)

    def test_search_then_page_keeps_filters(self):
        self.http.post('/posts/search', data={'q': 'halo', 'game_id': '', 'tag': ''})
        self.http.post('/feed/page/2')
        kwargs = self.api.search_posts.call_args[1]
        self.assertEqual(kwargs['query'], 'halo')
        self.assertEqual(kwargs['page'], 2)

    def test_suggest_runs_without_waiting(self):
        self.api.search_rawg.return_value = [{'id': 9, 'name': 'Halo Reach'}]
        html = self.http.post('/games/suggest', data={'q': 'halo'},
                              follow_redirects=True).get_data(as_text=True)
        self.assertIn('Halo Reach', html)

    def test_browsers_get_separate_sessions(self):
        self._login()
        other = board_gui.app.test_client()
        html = other.get('/').get_data(as_text=True)
        self.assertNotIn('Welcome, alice!', html)

    def test_unknown_tab_ignored(self):
        resp = self.http.post('/tab/nope', follow_redirects=True)
        self.assertEqual(resp.status_code, 200)

    def test_edit_comment_route(self):
        self._login()
        self.http.post('/posts/1/open')
        self.http.post('/comments/10/edit', data={'content': ' changed '})
        args = self.api.update_comment.call_args[0]
        self.assertEqual(args[1:], (10, 'changed'))

    def test_tampered_game_selection_alerts(self):
        self._login()
        resp = self.http.post('/games/select', data={'game_id': 'abc', 'title': 'Halo'},
                              follow_redirects=True)
        self.assertEqual(resp.status_code, 200)
        self.assertIn('Invalid game selection', resp.get_data(as_text=True))
        resp = self.http.post('/games/select', data={'rawg_id': 'x9', 'title': 'Halo'})
        self.assertEqual(resp.status_code, 302)
        self.api.import_rawg.assert_not_called()


class TestBoardGuiSessions(unittest.TestCase):

    def setUp(self):
        board_gui.configure(dict(gameboard.DEFAULT_CONFIG))
        self.api = _mock_client()
        patcher = patch('board_gui.BoardClient', return_value=self.api)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.addCleanup(board_gui.configure, dict(gameboard.DEFAULT_CONFIG))
        board_gui.app.config['TESTING'] = True

    def _visit(self):
        return board_gui.app.test_client().get('/')

    def test_cookieless_visits_are_bounded(self):
        with patch.object(board_gui, 'MAX_SESSIONS', 5):
            for _ in range(40):
                self.assertEqual(self._visit().status_code, 200)
            self.assertEqual(len(board_gui.sessions), 5)
        self.assertTrue(self.api.close.called)

    def test_idle_sessions_dropped(self):
        self._visit()
        self._visit()
        for entry in board_gui.sessions.values():
            entry.last_seen -= board_gui.SESSION_IDLE_SECONDS + 1
        self.api.close.reset_mock()
        self._visit()
        self.assertEqual(len(board_gui.sessions), 1)
        self.assertEqual(self.api.close.call_count, 2)

    def test_active_browser_kept_over_newcomers(self):
        regular = board_gui.app.test_client()
        regular.post('/auth/login', data={'username': 'alice', 'password': 'pw'})
        with patch.object(board_gui, 'MAX_SESSIONS', 3):
            for _ in range(6):
                self._visit()
                regular.get('/')
            html = regular.get('/').get_data(as_text=True)
        self.assertIn('Welcome, alice!', html)

    def test_controller_published_only_after_initialize(self):
        seen = []

        def list_posts(**kwargs):
            seen.append(len(board_gui.sessions))
            return {'posts': [], 'pagination': {'page': 1, 'pages': 1}}

        self.api.list_posts.side_effect = list_posts
        self._visit()
        self.assertEqual(seen, [0])
        self.assertEqual(len(board_gui.sessions), 1)


if __name__ == '__main__':
    unittest.main()
