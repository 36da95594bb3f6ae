"""
client.py
=========
HTTP client for the storefront JSON API.

Every method returns the ``data`` member of the response envelope and raises
:class:`ApiError` when the server answers ``success: false`` (or a non-JSON
error).  Authenticated calls send the bearer token given at construction or
stored by :meth:`StorefrontClient.login` / :meth:`StorefrontClient.register`.

Usage::

    client = StorefrontClient('http://localhost:5000')
    client.login('ada@example.com', 'secret1')
    page = client.list_apps(category='Productivity', sort_by='rating')
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 10  # seconds


class ApiError(Exception):
    """The API answered with an error envelope."""

    def __init__(self, message: str, status: int = 0, kind: str = 'error') -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.kind = kind

    def __str__(self) -> str:
        return f'{self.message} (HTTP {self.status})' if self.status else self.message


class StorefrontClient:
    """Thin wrapper over the storefront REST endpoints.

    Args:
        base_url: Server root, e.g. ``http://localhost:5000``.
        token:    Bearer token from a previous login, if any.
        timeout:  HTTP request timeout in seconds.
    """

    def __init__(self, base_url: str, token: Optional[str] = None,
                 timeout: int = _DEFAULT_TIMEOUT) -> None:
        self.base_url = base_url.rstrip('/')
        self.token = token
        self._timeout = timeout
        self.session = requests.Session()

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    def register(self, email: str, name: str, password: str) -> Dict[str, Any]:
        data = self._post('/api/auth/register',
                          {'email': email, 'name': name, 'password': password})
        self.token = data['token']
        return data['user']

    def login(self, email: str, password: str) -> Dict[str, Any]:
        data = self._post('/api/auth/login', {'email': email, 'password': password})
        self.token = data['token']
        return data['user']

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def list_apps(self, query: str = None, category: str = None,
                  min_price: float = None, max_price: float = None,
                  sort_by: str = None, page: int = None, limit: int = None) -> Dict[str, Any]:
        params = {
            'query': query, 'category': category,
            'minPrice': min_price, 'maxPrice': max_price,
            'sortBy': sort_by, 'page': page, 'limit': limit,
        }
        return self._get('/api/apps', {k: v for k, v in params.items() if v is not None})

    def get_app(self, slug: str) -> Dict[str, Any]:
        return self._get(f'/api/apps/{slug}')

    def categories(self):
        return self._get('/api/apps/meta/categories')

    # ------------------------------------------------------------------
    # Developer
    # ------------------------------------------------------------------

    def create_app(self, title: str, description: str, category: str,
                   price: float) -> Dict[str, Any]:
        return self._post('/api/apps', {'title': title, 'description': description,
                                        'category': category, 'price': price})

    def update_app(self, app_id: int, **fields) -> Dict[str, Any]:
        return self._request('PUT', f'/api/apps/{app_id}', json=fields)

    def delete_app(self, app_id: int) -> None:
        self._request('DELETE', f'/api/apps/{app_id}')

    def submit_app(self, app_id: int) -> Dict[str, Any]:
        return self._post(f'/api/apps/{app_id}/submit')

    def add_version(self, app_id: int, version: str, file_url: str,
                    changelog: str = '', size: int = 0, checksum: str = '') -> Dict[str, Any]:
        return self._post(f'/api/apps/{app_id}/versions', {
            'version': version, 'fileUrl': file_url, 'changelog': changelog,
            'size': size, 'checksum': checksum,
        })

    def add_screenshot(self, app_id: int, file_url: str,
                       order_index: int = None) -> Dict[str, Any]:
        body: Dict[str, Any] = {'fileUrl': file_url}
        if order_index is not None:
            body['orderIndex'] = order_index
        return self._post(f'/api/apps/{app_id}/screenshots', body)

    def my_apps(self):
        return self._get('/api/users/my-apps')

    # ------------------------------------------------------------------
    # Purchases
    # ------------------------------------------------------------------

    def create_payment_intent(self, app_id: int) -> Dict[str, Any]:
        return self._post('/api/purchases/create-payment-intent', {'appId': app_id})

    def confirm_purchase(self, payment_intent_id: str) -> Dict[str, Any]:
        return self._post('/api/purchases/confirm', {'paymentIntentId': payment_intent_id})

    def my_purchases(self):
        return self._get('/api/purchases/my-purchases')

    def owns(self, app_id: int) -> bool:
        return bool(self._get(f'/api/purchases/check/{app_id}').get('owned'))

    def download(self, app_id: int) -> Dict[str, Any]:
        return self._get(f'/api/purchases/download/{app_id}')

    # ------------------------------------------------------------------
    # Reviews
    # ------------------------------------------------------------------

    def create_review(self, app_id: int, rating: int, text: str) -> Dict[str, Any]:
        return self._post('/api/reviews', {'appId': app_id, 'rating': rating, 'text': text})

    def update_review(self, review_id: int, rating: int, text: str) -> Dict[str, Any]:
        return self._request('PUT', f'/api/reviews/{review_id}',
                             json={'rating': rating, 'text': text})

    def delete_review(self, review_id: int) -> None:
        self._request('DELETE', f'/api/reviews/{review_id}')

    def app_reviews(self, app_id: int, page: int = 1, limit: int = 10) -> Dict[str, Any]:
        return self._get(f'/api/reviews/app/{app_id}', {'page': page, 'limit': limit})

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def profile(self) -> Dict[str, Any]:
        return self._get('/api/users/profile')

    def update_profile(self, name: str) -> Dict[str, Any]:
        return self._request('PUT', '/api/users/profile', json={'name': name})

    def upgrade_to_developer(self) -> Dict[str, Any]:
        data = self._post('/api/users/upgrade-to-developer')
        self.token = data['token']
        return data['user']

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    def admin_stats(self) -> Dict[str, Any]:
        return self._get('/api/admin/stats')

    def pending_apps(self, page: int = 1, limit: int = 10) -> Dict[str, Any]:
        return self._get('/api/admin/pending-apps', {'page': page, 'limit': limit})

    def set_app_status(self, app_id: int, status: str) -> Dict[str, Any]:
        return self._request('PUT', f'/api/admin/apps/{app_id}/status',
                             json={'status': status.upper()})

    def list_users(self, page: int = 1, limit: int = 20) -> Dict[str, Any]:
        return self._get('/api/admin/users', {'page': page, 'limit': limit})

    def delete_user(self, user_id: int) -> None:
        self._request('DELETE', f'/api/admin/users/{user_id}')

    def set_user_role(self, user_id: int, role: str) -> Dict[str, Any]:
        return self._request('PUT', f'/api/admin/users/{user_id}/role', json={'role': role})

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _get(self, path: str, params: Dict[str, Any] = None) -> Any:
        return self._request('GET', path, params=params)

    def _post(self, path: str, body: Dict[str, Any] = None) -> Any:
        return self._request('POST', path, json=body or {})

    def _request(self, method: str, path: str, **kwargs) -> Any:
        headers = {'Accept': 'application/json'}
        if self.token:
            headers['Authorization'] = f'Bearer {self.token}'
        url = f'{self.base_url}{path}'
        try:
            resp = self.session.request(method, url, headers=headers,
                                        timeout=self._timeout, **kwargs)
        except requests.RequestException as e:
            logger.warning("Request to %s failed: %s", url, e)
            raise ApiError(f'Could not reach {self.base_url}: {e}') from e

        try:
            body = resp.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            if resp.status_code >= 400:
                raise ApiError(f'HTTP {resp.status_code}', resp.status_code)
            raise ApiError('Server returned a non-JSON response', resp.status_code)
        if resp.status_code >= 400 or not body.get('success', False):
            raise ApiError(body.get('message') or f'HTTP {resp.status_code}',
                           resp.status_code, body.get('error', 'error'))
        return body.get('data')
