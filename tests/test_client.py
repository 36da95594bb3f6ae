#!/usr/bin/env python3
"""
Tests for storefront/client.py and the storefront_cli.py front end.

The HTTP session is patched, so no server is needed.

Run with:
    python -m pytest tests/test_client.py
"""
import io
import os
import shutil
import sys
import tempfile
import unittest
from unittest.mock import MagicMock, patch

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import requests

import storefront_cli
from storefront.client import ApiError, StorefrontClient


def _response(status_code=200, body=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = body
    return resp


def _ok(data=None):
    return _response(200, {'success': True, 'data': data})


APP = {
    'id': 3, 'title': 'CodeSnap', 'slug': 'codesnap', 'category': 'Developer Tools',
    'price': 9.99, 'averageRating': 4.5, 'totalReviews': 2, 'status': 'approved',
    'description': 'Beautiful code screenshots', 'developer': {'name': 'Dev'},
    'screenshots': [], 'currentVersion': None, 'reviews': [],
}


class TestStorefrontClient(unittest.TestCase):

    def setUp(self):
        self.client = StorefrontClient('http://api.test/')

    def _patch(self, *responses):
        patcher = patch.object(self.client.session, 'request', side_effect=list(responses))
        mock = patcher.start()
        self.addCleanup(patcher.stop)
        return mock

    def test_login_stores_token_and_sends_it(self):
        req = self._patch(_ok({'user': {'email': 'a@b.co'}, 'token': 'tok'}),
                          _ok({'email': 'a@b.co'}))
        self.client.login('a@b.co', 'secret1')
        self.assertEqual(self.client.token, 'tok')
        self.client.profile()
        headers = req.call_args.kwargs['headers']
        self.assertEqual(headers['Authorization'], 'Bearer tok')
        self.assertEqual(req.call_args.args, ('GET', 'http://api.test/api/users/profile'))

    def test_list_apps_drops_unset_params(self):
        req = self._patch(_ok({'apps': [], 'pagination': {}}))
        self.client.list_apps(category='Games', sort_by='rating')
        self.assertEqual(req.call_args.kwargs['params'],
                         {'category': 'Games', 'sortBy': 'rating'})

    def test_create_payment_intent_sends_only_app_id(self):
        req = self._patch(_ok({'requiresPayment': True}))
        self.client.create_payment_intent(3)
        self.assertEqual(req.call_args.kwargs['json'], {'appId': 3})

    def test_error_envelope_raises(self):
        self._patch(_response(403, {'success': False, 'message': 'App not purchased',
                                    'error': 'forbidden'}))
        with self.assertRaises(ApiError) as ctx:
            self.client.download(3)
        self.assertEqual(ctx.exception.status, 403)
        self.assertEqual(ctx.exception.kind, 'forbidden')
        self.assertEqual(ctx.exception.message, 'App not purchased')

    def test_non_json_error(self):
        resp = _response(502)
        resp.json.side_effect = ValueError('html')
        self._patch(resp)
        with self.assertRaises(ApiError) as ctx:
            self.client.categories()
        self.assertEqual(ctx.exception.status, 502)

    def test_connection_error(self):
        self._patch(requests.ConnectionError('refused'))
        with self.assertRaises(ApiError):
            self.client.categories()

    def test_set_app_status_uppercases(self):
        req = self._patch(_ok({'status': 'approved'}))
        self.client.set_app_status(3, 'approved')
        self.assertEqual(req.call_args.kwargs['json'], {'status': 'APPROVED'})

    def test_update_app_sends_only_given_fields(self):
        req = self._patch(_ok(APP))
        self.client.update_app(3, price=4.99)
        self.assertEqual(req.call_args.args, ('PUT', 'http://api.test/api/apps/3'))
        self.assertEqual(req.call_args.kwargs['json'], {'price': 4.99})

    def test_add_screenshot_omits_unset_order(self):
        req = self._patch(_ok({'orderIndex': 0}), _ok({'orderIndex': 2}))
        self.client.add_screenshot(3, 'https://cdn/1.png')
        self.assertEqual(req.call_args.kwargs['json'], {'fileUrl': 'https://cdn/1.png'})
        self.client.add_screenshot(3, 'https://cdn/2.png', order_index=2)
        self.assertEqual(req.call_args.kwargs['json'],
                         {'fileUrl': 'https://cdn/2.png', 'orderIndex': 2})

    def test_owns_reads_flag(self):
        self._patch(_ok({'owned': True}), _ok({'owned': False}))
        self.assertTrue(self.client.owns(3))
        self.assertFalse(self.client.owns(4))

    def test_delete_endpoints(self):
        req = self._patch(_ok(), _ok(), _ok())
        self.client.delete_app(3)
        self.client.delete_review(7)
        self.client.delete_user(9)
        self.assertEqual([c.args for c in req.call_args_list], [
            ('DELETE', 'http://api.test/api/apps/3'),
            ('DELETE', 'http://api.test/api/reviews/7'),
            ('DELETE', 'http://api.test/api/admin/users/9'),
        ])

    def test_update_review_and_role(self):
        req = self._patch(_ok({'id': 7}), _ok({'role': 'developer'}))
        self.client.update_review(7, 4, 'Better after the update')
        self.assertEqual(req.call_args.kwargs['json'],
                         {'rating': 4, 'text': 'Better after the update'})
        self.client.set_user_role(9, 'developer')
        self.assertEqual(req.call_args.args, ('PUT', 'http://api.test/api/admin/users/9/role'))
        self.assertEqual(req.call_args.kwargs['json'], {'role': 'developer'})


class TestCli(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.mkdtemp()
        self.session_file = os.path.join(self.tmp, 'session.json')

    def tearDown(self):
        shutil.rmtree(self.tmp, ignore_errors=True)

    def _run(self, *argv, responses=()):
        out = io.StringIO()
        with patch('storefront_cli.StorefrontClient._request', side_effect=list(responses)) as req, \
                patch('sys.stdout', out):
            code = storefront_cli.main(['--session', self.session_file, *argv])
        return code, out.getvalue(), req

    def test_login_saves_session(self):
        code, out, _ = self._run('login', 'a@b.co', 'secret1', responses=[
            {'user': {'email': 'a@b.co', 'role': 'user'}, 'token': 'tok'}])
        self.assertEqual(code, 0)
        self.assertIn('Logged in as a@b.co', out)
        self.assertEqual(storefront_cli.load_token(self.session_file), 'tok')

    def test_browse_renders_rows(self):
        code, out, _ = self._run('browse', '--sort', 'rating', responses=[
            {'apps': [APP], 'pagination': {'page': 1, 'pages': 1, 'total': 1, 'limit': 12}}])
        self.assertEqual(code, 0)
        self.assertIn('CodeSnap', out)
        self.assertIn('$9.99', out)

    def test_show_renders_detail(self):
        code, out, _ = self._run('show', 'codesnap', responses=[APP])
        self.assertEqual(code, 0)
        self.assertIn('Beautiful code screenshots', out)

    def test_buy_free_app(self):
        code, out, _ = self._run('buy', '3', responses=[{'requiresPayment': False}])
        self.assertIn('Free app added', out)

    def test_buy_paid_app_prints_confirm_hint(self):
        code, out, _ = self._run('buy', '3', responses=[{
            'requiresPayment': True, 'paymentIntentId': 'pi_1', 'clientSecret': 's',
            'amount': 9.99, 'currency': 'usd'}])
        self.assertIn('storefront confirm pi_1', out)

    def test_api_error_returns_nonzero(self):
        code, out, _ = self._run('profile', responses=[
            ApiError('Authentication required', 401, 'unauthorized')])
        self.assertEqual(code, 1)
        self.assertIn('Authentication required', out)
        self.assertIn('storefront login', out)

    def test_approve_sends_status(self):
        code, out, req = self._run('approve', '5', responses=[
            {'title': 'Queued', 'status': 'approved'}])
        self.assertEqual(code, 0)
        self.assertEqual(req.call_args.kwargs['json'], {'status': 'APPROVED'})

    def test_review_edit_and_delete(self):
        code, out, req = self._run('review-edit', '7', '4', 'Better after the update',
                                   responses=[{'id': 7, 'rating': 4}])
        self.assertEqual(code, 0)
        self.assertEqual(req.call_args.args, ('PUT', '/api/reviews/7'))
        self.assertEqual(req.call_args.kwargs['json'],
                         {'rating': 4, 'text': 'Better after the update'})
        self.assertIn('Review #7 updated', out)

        code, out, req = self._run('review-delete', '7', responses=[None])
        self.assertEqual(req.call_args.args, ('DELETE', '/api/reviews/7'))
        self.assertIn('Review #7 deleted', out)

    def test_app_edit_sends_given_options(self):
        code, out, req = self._run('app-edit', '3', '--price', '4.99', '--title', 'CodeSnap Pro',
                                   responses=[dict(APP, title='CodeSnap Pro', slug='codesnap-pro')])
        self.assertEqual(code, 0)
        self.assertEqual(req.call_args.args, ('PUT', '/api/apps/3'))
        self.assertEqual(req.call_args.kwargs['json'], {'title': 'CodeSnap Pro', 'price': 4.99})
        self.assertIn('codesnap-pro', out)

    def test_app_edit_without_options_makes_no_request(self):
        code, out, req = self._run('app-edit', '3')
        self.assertEqual(code, 0)
        req.assert_not_called()
        self.assertIn('Nothing to change', out)

    def test_app_delete_and_screenshot(self):
        code, out, req = self._run('add-screenshot', '3', 'https://cdn/1.png', '--order', '1',
                                   responses=[{'id': 1, 'orderIndex': 1}])
        self.assertEqual(req.call_args.args, ('POST', '/api/apps/3/screenshots'))
        self.assertEqual(req.call_args.kwargs['json'],
                         {'fileUrl': 'https://cdn/1.png', 'orderIndex': 1})
        self.assertIn('position 1', out)

        code, out, req = self._run('app-delete', '3', responses=[None])
        self.assertEqual(req.call_args.args, ('DELETE', '/api/apps/3'))
        self.assertIn('App #3 deleted', out)

    def test_owns(self):
        code, out, _ = self._run('owns', '3', responses=[{'owned': True}])
        self.assertIn('You own app #3', out)
        code, out, _ = self._run('owns', '4', responses=[{'owned': False}])
        self.assertIn('You do not own app #4', out)

    def test_user_delete_and_role(self):
        code, out, req = self._run('user-role', '9', 'developer', responses=[
            {'id': 9, 'email': 'bea@example.com', 'role': 'developer'}])
        self.assertEqual(req.call_args.args, ('PUT', '/api/admin/users/9/role'))
        self.assertEqual(req.call_args.kwargs['json'], {'role': 'developer'})
        self.assertIn('bea@example.com is now developer', out)

        code, out, req = self._run('user-delete', '9', responses=[None])
        self.assertEqual(req.call_args.args, ('DELETE', '/api/admin/users/9'))
        self.assertIn('User #9 deleted', out)

    def test_user_role_rejects_unknown_role(self):
        with patch('sys.stderr', io.StringIO()), self.assertRaises(SystemExit):
            storefront_cli.build_parser().parse_args(['user-role', '9', 'superuser'])


if __name__ == '__main__':
    unittest.main()
