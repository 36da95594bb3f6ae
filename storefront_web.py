#!/usr/bin/env python3
"""
Storefront Web API - JSON HTTP API for the app marketplace.
Serves the catalog, purchases, reviews, developer tools and the admin panel.

Every response uses the envelope ``{"success": bool, "data": ..., "message": ...}``.
"""

import logging
import argparse
import os
from contextlib import contextmanager
from datetime import timedelta
from functools import wraps

from flask import Flask, jsonify, request
from flask_jwt_extended import JWTManager, verify_jwt_in_request
from werkzeug.exceptions import HTTPException

import database
from storefront import services as service_layer
from storefront.auth import current_identity, issue_token
from storefront.config import DEFAULT_CONFIG, is_placeholder_value, load_config, setup_logging
from storefront.errors import ForbiddenError, StorefrontError
from storefront.payments import StripePaymentClient
from storefront.schemas import (
    AppCreate, AppUpdate, CatalogQuery, ConfirmPurchaseRequest, LoginRequest,
    PaymentIntentRequest, ProfileUpdate, RegisterRequest, ReviewCreate,
    ReviewUpdate, RoleUpdate, ScreenshotCreate, StatusUpdate, VersionCreate,
    page_params, parse,
)

config = load_config(os.getenv('STOREFRONT_CONFIG', 'config.json'))

# Initialize logging early so service and database logs are captured
log_level = config['log_level']
storefront_logger = setup_logging(log_level)
web_logger = logging.getLogger('storefront.web')
try:
    os.makedirs('logs', exist_ok=True)
    fh = logging.FileHandler('logs/storefront_web.log')
    fh.setFormatter(logging.Formatter('[%(asctime)s] %(levelname)s %(name)s: %(message)s'))
    fh.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    web_logger.addHandler(fh)
except OSError:
    web_logger.warning('Could not create log file handler')

# Bind the configured database and create tables at import; WSGI hosts never call main().
database.configure(config['database_url'])
if not database.init_db():
    web_logger.error('Database initialization failed; check database_url / DATABASE_URL')

app = Flask(__name__)
app.config['JWT_SECRET_KEY'] = config['jwt_secret_key']
app.config['JWT_ACCESS_TOKEN_EXPIRES'] = timedelta(hours=int(config['jwt_expires_hours']))
jwt = JWTManager(app)
if is_placeholder_value(config['jwt_secret_key']) or config['jwt_secret_key'] == DEFAULT_CONFIG['jwt_secret_key']:
    web_logger.warning('JWT_SECRET_KEY is not set: tokens are signed with a development key')

payment_client = StripePaymentClient.from_config(config)
if not payment_client.is_configured:
    web_logger.warning('STRIPE_SECRET_KEY not set: paid purchases will fail until it is configured')

PAGE_DEFAULTS = {
    'reviews': (10, 50),
    'pending_apps': (10, 50),
    'users': (20, 100),
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

@contextmanager
def open_services():
    """Yield the service layer bound to a fresh database session."""
    db = database.SessionLocal()
    try:
        yield service_layer.build(db, payment_client, currency=config['currency'])
    finally:
        db.close()


def ok(data=None, message: str = None, status: int = 200):
    body = {'success': True}
    if data is not None:
        body['data'] = data
    if message:
        body['message'] = message
    return jsonify(body), status


def fail(message: str, status: int, kind: str = 'error'):
    return jsonify({'success': False, 'message': message, 'error': kind}), status


def json_body():
    return request.get_json(silent=True)


def _pages(name: str):
    default, cap = PAGE_DEFAULTS[name]
    return page_params(request.args, default, cap)


# ---------------------------------------------------------------------------
# Auth decorators
# ---------------------------------------------------------------------------

def authenticated_caller():
    """Verify the bearer token and return the caller with their stored role."""
    verify_jwt_in_request()
    with open_services() as svc:
        return svc.users.resolve(current_identity())


def require_login(f):
    """Decorator to require a valid bearer token; passes the caller identity."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        return f(authenticated_caller(), *args, **kwargs)
    return decorated_function


def require_developer(f):
    """Decorator to require the developer (or admin) role."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        caller = authenticated_caller()
        if not caller.is_developer:
            raise ForbiddenError('Developer role required')
        return f(caller, *args, **kwargs)
    return decorated_function


def require_admin(f):
    """Decorator to require admin privileges."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        caller = authenticated_caller()
        if not caller.is_admin:
            raise ForbiddenError('Admin role required')
        return f(caller, *args, **kwargs)
    return decorated_function


# ---------------------------------------------------------------------------
# Error handling
# ---------------------------------------------------------------------------

@app.errorhandler(StorefrontError)
def handle_storefront_error(e: StorefrontError):
    if e.status >= 500:
        web_logger.warning('%s %s failed: %s', request.method, request.path, e.message)
    return fail(e.message, e.status, e.kind)


@app.errorhandler(HTTPException)
def handle_http_error(e: HTTPException):
    return fail(e.description or e.name, e.code or 500, 'http')


@app.errorhandler(Exception)
def handle_unexpected_error(e: Exception):
    web_logger.exception('Unhandled error on %s %s', request.method, request.path)
    return fail('Internal server error', 500)


@jwt.unauthorized_loader
def _missing_token(reason: str):
    return fail('Authentication required', 401, 'unauthorized')


@jwt.invalid_token_loader
def _invalid_token(reason: str):
    return fail(f'Invalid token: {reason}', 401, 'unauthorized')


@jwt.expired_token_loader
def _expired_token(jwt_header, jwt_payload):
    return fail('Token has expired', 401, 'unauthorized')


# ---------------------------------------------------------------------------
# Auth endpoints
# ---------------------------------------------------------------------------

@app.route('/api/auth/register', methods=['POST'])
def api_auth_register():
    """Register a new account and return a bearer token."""
    payload = parse(RegisterRequest, json_body())
    with open_services() as svc:
        user = svc.users.register(payload)
        return ok({'user': user.to_dict(), 'token': issue_token(user)}, status=201)


@app.route('/api/auth/login', methods=['POST'])
def api_auth_login():
    """Log in and return a bearer token."""
    payload = parse(LoginRequest, json_body())
    with open_services() as svc:
        user = svc.users.authenticate(payload)
        if user is None:
            web_logger.info('Failed login for %s', payload.email)
            return fail('Invalid email or password', 401, 'unauthorized')
        return ok({'user': user.to_dict(), 'token': issue_token(user)})


# ---------------------------------------------------------------------------
# Catalog and developer app endpoints
# ---------------------------------------------------------------------------

@app.route('/api/apps', methods=['GET'])
def api_list_apps():
    """Search approved apps."""
    params = parse(CatalogQuery, request.args.to_dict())
    with open_services() as svc:
        return ok(svc.catalog.search(params))


@app.route('/api/apps/meta/categories', methods=['GET'])
def api_categories():
    with open_services() as svc:
        return ok(svc.catalog.categories())


@app.route('/api/apps/<slug>', methods=['GET'])
def api_app_detail(slug: str):
    """Return an approved app by slug."""
    with open_services() as svc:
        return ok(svc.catalog.detail(slug))


@app.route('/api/apps', methods=['POST'])
@require_developer
def api_create_app(caller):
    payload = parse(AppCreate, json_body())
    with open_services() as svc:
        return ok(svc.apps.create(caller, payload), status=201)


@app.route('/api/apps/<int:app_id>', methods=['PUT'])
@require_developer
def api_update_app(caller, app_id: int):
    payload = parse(AppUpdate, json_body())
    with open_services() as svc:
        return ok(svc.apps.update(caller, app_id, payload))


@app.route('/api/apps/<int:app_id>', methods=['DELETE'])
@require_developer
def api_delete_app(caller, app_id: int):
    with open_services() as svc:
        svc.apps.delete(caller, app_id)
    return ok(message='App deleted successfully')


@app.route('/api/apps/<int:app_id>/submit', methods=['POST'])
@require_developer
def api_submit_app(caller, app_id: int):
    """Send a draft app to the moderation queue."""
    with open_services() as svc:
        return ok(svc.apps.submit(caller, app_id), message='App submitted for review')


@app.route('/api/apps/<int:app_id>/versions', methods=['POST'])
@require_developer
def api_add_version(caller, app_id: int):
    payload = parse(VersionCreate, json_body())
    with open_services() as svc:
        return ok(svc.apps.add_version(caller, app_id, payload), status=201)


@app.route('/api/apps/<int:app_id>/screenshots', methods=['POST'])
@require_developer
def api_add_screenshot(caller, app_id: int):
    payload = parse(ScreenshotCreate, json_body())
    with open_services() as svc:
        return ok(svc.apps.add_screenshot(caller, app_id, payload), status=201)


# ---------------------------------------------------------------------------
# Purchase endpoints
# ---------------------------------------------------------------------------

@app.route('/api/purchases/create-payment-intent', methods=['POST'])
@require_login
def api_create_payment_intent(caller):
    """Open a payment intent (or claim a free app) for the caller.

    Body JSON: {"appId": <int>}. The amount always comes from the catalog.
    """
    payload = parse(PaymentIntentRequest, json_body())
    with open_services() as svc:
        return ok(svc.purchases.create_intent(caller, payload.app_id))


@app.route('/api/purchases/confirm', methods=['POST'])
@require_login
def api_confirm_purchase(caller):
    """Record the purchase for a succeeded payment intent (idempotent)."""
    payload = parse(ConfirmPurchaseRequest, json_body())
    with open_services() as svc:
        return ok(svc.purchases.confirm(caller, payload.payment_intent_id))


@app.route('/api/purchases/my-purchases', methods=['GET'])
@require_login
def api_my_purchases(caller):
    with open_services() as svc:
        return ok(svc.purchases.my_purchases(caller))


@app.route('/api/purchases/check/<int:app_id>', methods=['GET'])
@require_login
def api_check_ownership(caller, app_id: int):
    with open_services() as svc:
        return ok(svc.purchases.check(caller, app_id))


@app.route('/api/purchases/download/<int:app_id>', methods=['GET'])
@require_login
def api_download(caller, app_id: int):
    with open_services() as svc:
        return ok(svc.purchases.download(caller, app_id))


# ---------------------------------------------------------------------------
# Review endpoints
# ---------------------------------------------------------------------------

@app.route('/api/reviews', methods=['POST'])
@require_login
def api_create_review(caller):
    """Review an owned app.

    Body JSON: {"appId": <int>, "rating": 1-5, "text": "10-500 chars"}
    """
    payload = parse(ReviewCreate, json_body())
    with open_services() as svc:
        return ok(svc.reviews.create(caller, payload), status=201)


@app.route('/api/reviews/<int:review_id>', methods=['PUT'])
@require_login
def api_update_review(caller, review_id: int):
    payload = parse(ReviewUpdate, json_body())
    with open_services() as svc:
        return ok(svc.reviews.update(caller, review_id, payload))


@app.route('/api/reviews/<int:review_id>', methods=['DELETE'])
@require_login
def api_delete_review(caller, review_id: int):
    with open_services() as svc:
        svc.reviews.delete(caller, review_id)
    return ok(message='Review deleted successfully')


@app.route('/api/reviews/app/<int:app_id>', methods=['GET'])
def api_app_reviews(app_id: int):
    pages = _pages('reviews')
    with open_services() as svc:
        return ok(svc.reviews.list_for_app(app_id, pages['page'], pages['limit']))


# ---------------------------------------------------------------------------
# User endpoints
# ---------------------------------------------------------------------------

@app.route('/api/users/profile', methods=['GET'])
@require_login
def api_get_profile(caller):
    with open_services() as svc:
        return ok(svc.users.profile(caller))


@app.route('/api/users/profile', methods=['PUT'])
@require_login
def api_update_profile(caller):
    payload = parse(ProfileUpdate, json_body())
    with open_services() as svc:
        return ok(svc.users.update_profile(caller, payload))


@app.route('/api/users/my-apps', methods=['GET'])
@require_login
def api_my_apps(caller):
    with open_services() as svc:
        return ok(svc.apps.developer_apps(caller))


@app.route('/api/users/upgrade-to-developer', methods=['POST'])
@require_login
def api_upgrade_to_developer(caller):
    """Turn a plain user into a developer; returns a token with the new role."""
    with open_services() as svc:
        user = svc.users.upgrade_to_developer(caller)
        return ok({'user': user.to_dict(), 'token': issue_token(user)},
                  message='Successfully upgraded to developer account')


# ---------------------------------------------------------------------------
# Admin endpoints
# ---------------------------------------------------------------------------

@app.route('/api/admin/stats', methods=['GET'])
@require_admin
def api_admin_stats(caller):
    with open_services() as svc:
        return ok(svc.admin.stats(caller))


@app.route('/api/admin/pending-apps', methods=['GET'])
@require_admin
def api_admin_pending_apps(caller):
    pages = _pages('pending_apps')
    with open_services() as svc:
        return ok(svc.moderation.pending(pages['page'], pages['limit']))


@app.route('/api/admin/apps/<int:app_id>/status', methods=['PUT'])
@require_login
def api_admin_set_status(caller, app_id: int):
    """Approve or reject an app in review.

    Body JSON: {"status": "APPROVED" | "REJECTED"}. Non-admins get 403 from
    the moderation service.
    """
    payload = parse(StatusUpdate, json_body())
    with open_services() as svc:
        data = svc.moderation.set_status(caller, app_id, payload.status)
    return ok(data, message=f"App {data['status']} successfully")


@app.route('/api/admin/users', methods=['GET'])
@require_admin
def api_admin_users(caller):
    pages = _pages('users')
    with open_services() as svc:
        return ok(svc.admin.list_users(caller, pages['page'], pages['limit']))


@app.route('/api/admin/users/<int:user_id>', methods=['DELETE'])
@require_admin
def api_admin_delete_user(caller, user_id: int):
    with open_services() as svc:
        svc.admin.delete_user(caller, user_id)
    return ok(message='User deleted successfully')


@app.route('/api/admin/users/<int:user_id>/role', methods=['PUT'])
@require_admin
def api_admin_set_role(caller, user_id: int):
    payload = parse(RoleUpdate, json_body())
    with open_services() as svc:
        return ok(svc.admin.set_role(caller, user_id, payload.role))


# ---------------------------------------------------------------------------
# API Documentation - OpenAPI 3.0
# ---------------------------------------------------------------------------

@app.route('/api/health', methods=['GET'])
def api_health():
    return ok({'status': 'ok', 'payments': payment_client.is_configured})


@app.route('/api/openapi.json')
def api_openapi_spec():
    """Serve the OpenAPI 3.0 specification as JSON."""
    from openapi_spec import build_spec
    server_url = request.url_root.rstrip('/')
    return jsonify(build_spec(server_url=server_url))


def main():
    """Main entry point for the web API"""
    parser = argparse.ArgumentParser(description='Storefront Web API')
    parser.add_argument('--host', default=config['host'], help='Interface to bind')
    parser.add_argument('--port', type=int, default=int(config['port']), help='Port to listen on')
    parser.add_argument('--debug', action='store_true', help='Run Flask in debug mode')
    args = parser.parse_args()

    web_logger.info('Storefront API listening on http://%s:%d', args.host, args.port)
    app.run(host=args.host, port=args.port, debug=args.debug)


if __name__ == "__main__":
    main()
