#!/usr/bin/env python3
"""
Storefront CLI - terminal front end for the app marketplace API.
Browse the catalog, buy and download apps, write reviews, manage your own
apps as a developer, and moderate submissions as an admin.
"""

import argparse
import json
import os
import sys
from typing import Any, Dict, Optional

from colorama import init, Fore, Style

from storefront.client import ApiError, StorefrontClient
from storefront.config import setup_logging

# Initialize colorama for cross-platform colored terminal output
init(autoreset=True)

DEFAULT_URL = os.getenv('STOREFRONT_URL', 'http://localhost:5000')
DEFAULT_SESSION = os.path.join(os.path.expanduser('~'), '.storefront_session.json')


# ---------------------------------------------------------------------------
# Session storage
# ---------------------------------------------------------------------------

def load_token(path: str) -> Optional[str]:
    if not os.path.exists(path):
        return None
    try:
        with open(path, 'r') as f:
            return json.load(f).get('token')
    except (OSError, json.JSONDecodeError):
        return None


def save_token(path: str, token: str, user: Dict[str, Any]) -> None:
    with open(path, 'w') as f:
        json.dump({'token': token, 'email': user.get('email'), 'role': user.get('role')}, f)
    try:
        os.chmod(path, 0o600)
    except OSError:
        pass


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

def _price(value) -> str:
    value = float(value or 0)
    return 'Free' if value == 0 else f'${value:.2f}'


def _stars(rating) -> str:
    if rating is None:
        return 'no ratings'
    full = int(round(rating))
    return '★' * full + '☆' * (5 - full) + f' {rating:.1f}'


def print_app_row(app: Dict[str, Any]) -> None:
    print(f"{Fore.CYAN}{Style.BRIGHT}#{app['id']:<4} {app['title']:<32}"
          f"{Fore.WHITE}{_price(app['price']):>9}  "
          f"{Fore.YELLOW}{_stars(app.get('averageRating'))} "
          f"{Fore.WHITE}({app.get('totalReviews', 0)})  "
          f"{Style.DIM}{app['category']} · {app['slug']}")


def print_pagination(pagination: Dict[str, int]) -> None:
    print(f"{Fore.GREEN}Page {pagination['page']}/{max(pagination['pages'], 1)} "
          f"({pagination['total']} total)")


def print_app_detail(app: Dict[str, Any]) -> None:
    print(f"\n{Fore.GREEN}{'='*60}")
    print(f"{Fore.CYAN}{Style.BRIGHT}{app['title']}")
    print(f"{Fore.GREEN}{'='*60}")
    print(f"{Fore.YELLOW}Developer: {Fore.WHITE}{app['developer']['name']}")
    print(f"{Fore.YELLOW}Category:  {Fore.WHITE}{app['category']}")
    print(f"{Fore.YELLOW}Price:     {Fore.WHITE}{_price(app['price'])}")
    print(f"{Fore.YELLOW}Rating:    {Fore.WHITE}{_stars(app.get('averageRating'))} "
          f"({app.get('totalReviews', 0)} reviews)")
    version = app.get('currentVersion')
    if version:
        print(f"{Fore.YELLOW}Version:   {Fore.WHITE}{version['version']} "
              f"({version['size']} bytes)")
    print(f"\n{Fore.WHITE}{app['description']}")
    if app.get('screenshots'):
        print(f"\n{Fore.YELLOW}Screenshots:")
        for shot in app['screenshots']:
            print(f"  {Fore.WHITE}{shot['fileUrl']}")
    if app.get('reviews'):
        print(f"\n{Fore.YELLOW}Recent reviews:")
        for review in app['reviews']:
            print_review(review)


def print_review(review: Dict[str, Any]) -> None:
    author = (review.get('user') or {}).get('name') or 'anonymous'
    print(f"  {Fore.YELLOW}{'★' * review['rating']}{'☆' * (5 - review['rating'])} "
          f"{Fore.CYAN}{author} {Style.DIM}#{review['id']}")
    print(f"    {Fore.WHITE}{review['text']}")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_register(client, args):
    user = client.register(args.email, args.name, args.password)
    save_token(args.session, client.token, user)
    print(f"{Fore.GREEN}Welcome, {user['name']}! You are logged in.")


def cmd_login(client, args):
    user = client.login(args.email, args.password)
    save_token(args.session, client.token, user)
    print(f"{Fore.GREEN}Logged in as {user['email']} ({user['role']})")


def cmd_logout(client, args):
    if os.path.exists(args.session):
        os.remove(args.session)
    print(f"{Fore.GREEN}Logged out")


def cmd_browse(client, args):
    data = client.list_apps(query=args.query, category=args.category,
                            min_price=args.min_price, max_price=args.max_price,
                            sort_by=args.sort, page=args.page, limit=args.limit)
    if not data['apps']:
        print(f"{Fore.YELLOW}No apps match your search.")
        return
    for app in data['apps']:
        print_app_row(app)
    print_pagination(data['pagination'])


def cmd_categories(client, args):
    for category in client.categories():
        print(f"{Fore.CYAN}{category}")


def cmd_show(client, args):
    print_app_detail(client.get_app(args.slug))


def cmd_buy(client, args):
    data = client.create_payment_intent(args.app_id)
    if not data['requiresPayment']:
        print(f"{Fore.GREEN}Free app added to your library.")
        return
    print(f"{Fore.YELLOW}Payment intent {Fore.WHITE}{data['paymentIntentId']}"
          f"{Fore.YELLOW} for {Fore.WHITE}{_price(data['amount'])} {data['currency'].upper()}")
    print(f"{Fore.YELLOW}Client secret: {Fore.WHITE}{data['clientSecret']}")
    print(f"{Fore.CYAN}Complete the payment, then run: "
          f"storefront confirm {data['paymentIntentId']}")


def cmd_confirm(client, args):
    purchase = client.confirm_purchase(args.payment_intent_id)
    title = (purchase.get('app') or {}).get('title', f"app {purchase['appId']}")
    print(f"{Fore.GREEN}Purchase recorded: {title} for {_price(purchase['amount'])}")


def cmd_library(client, args):
    purchases = client.my_purchases()
    if not purchases:
        print(f"{Fore.YELLOW}You have not purchased any apps yet.")
        return
    for purchase in purchases:
        app = purchase.get('app') or {}
        print(f"{Fore.CYAN}#{purchase['appId']:<4} {app.get('title', ''):<32}"
              f"{Fore.WHITE}{_price(purchase['amount'])}  {Style.DIM}{purchase['createdAt']}")


def cmd_download(client, args):
    data = client.download(args.app_id)
    print(f"{Fore.GREEN}Version {data['version']} ({data['size']} bytes)")
    print(f"{Fore.WHITE}{data['downloadUrl']}")
    if data.get('checksum'):
        print(f"{Fore.YELLOW}Checksum: {Fore.WHITE}{data['checksum']}")


def cmd_owns(client, args):
    if client.owns(args.app_id):
        print(f"{Fore.GREEN}You own app #{args.app_id}")
    else:
        print(f"{Fore.YELLOW}You do not own app #{args.app_id}")


def cmd_reviews(client, args):
    data = client.app_reviews(args.app_id, page=args.page)
    if not data['reviews']:
        print(f"{Fore.YELLOW}No reviews yet.")
        return
    for review in data['reviews']:
        print_review(review)
    print_pagination(data['pagination'])


def cmd_review(client, args):
    review = client.create_review(args.app_id, args.rating, args.text)
    print(f"{Fore.GREEN}Review #{review['id']} posted")


def cmd_review_edit(client, args):
    review = client.update_review(args.review_id, args.rating, args.text)
    print(f"{Fore.GREEN}Review #{review['id']} updated")


def cmd_review_delete(client, args):
    client.delete_review(args.review_id)
    print(f"{Fore.GREEN}Review #{args.review_id} deleted")


def cmd_profile(client, args):
    if args.name:
        client.update_profile(args.name)
    user = client.profile()
    counts = user.get('counts', {})
    print(f"{Fore.CYAN}{Style.BRIGHT}{user['name']} {Style.NORMAL}<{user['email']}>")
    print(f"{Fore.YELLOW}Role: {Fore.WHITE}{user['role']}")
    print(f"{Fore.YELLOW}Apps: {Fore.WHITE}{counts.get('apps', 0)}  "
          f"{Fore.YELLOW}Purchases: {Fore.WHITE}{counts.get('purchases', 0)}  "
          f"{Fore.YELLOW}Reviews: {Fore.WHITE}{counts.get('reviews', 0)}")


def cmd_upgrade(client, args):
    user = client.upgrade_to_developer()
    save_token(args.session, client.token, user)
    print(f"{Fore.GREEN}You are now a developer.")


def cmd_my_apps(client, args):
    apps = client.my_apps()
    if not apps:
        print(f"{Fore.YELLOW}You have not created any apps yet.")
        return
    for app in apps:
        counts = app.get('counts', {})
        print(f"{Fore.CYAN}#{app['id']:<4} {app['title']:<32}{Fore.WHITE}{app['status']:<10}"
              f"{_price(app['price']):>9}  {Style.DIM}{counts.get('purchases', 0)} sales, "
              f"{counts.get('reviews', 0)} reviews")


def cmd_create_app(client, args):
    app = client.create_app(args.title, args.description, args.category, args.price)
    print(f"{Fore.GREEN}Created draft #{app['id']} ({app['slug']})")


def cmd_submit(client, args):
    app = client.submit_app(args.app_id)
    print(f"{Fore.GREEN}{app['title']} submitted for review")


def cmd_add_version(client, args):
    version = client.add_version(args.app_id, args.version, args.file_url,
                                 changelog=args.changelog or '', size=args.size,
                                 checksum=args.checksum or '')
    print(f"{Fore.GREEN}Version {version['version']} added")


def cmd_app_edit(client, args):
    fields = {name: getattr(args, name) for name in ('title', 'description', 'category', 'price')
              if getattr(args, name) is not None}
    if not fields:
        print(f"{Fore.YELLOW}Nothing to change; pass --title, --description, --category or --price.")
        return
    app = client.update_app(args.app_id, **fields)
    print(f"{Fore.GREEN}Updated #{app['id']} ({app['slug']})")


def cmd_app_delete(client, args):
    client.delete_app(args.app_id)
    print(f"{Fore.GREEN}App #{args.app_id} deleted")


def cmd_add_screenshot(client, args):
    shot = client.add_screenshot(args.app_id, args.file_url, order_index=args.order)
    print(f"{Fore.GREEN}Screenshot added at position {shot['orderIndex']}")


def cmd_pending(client, args):
    data = client.pending_apps(page=args.page)
    if not data['apps']:
        print(f"{Fore.GREEN}The moderation queue is empty.")
        return
    for app in data['apps']:
        print(f"{Fore.CYAN}#{app['id']:<4} {app['title']:<32}{Fore.WHITE}"
              f"{_price(app['price']):>9}  {Style.DIM}{app['developer'].get('email')}")
    print_pagination(data['pagination'])


def cmd_moderate(client, args):
    app = client.set_app_status(args.app_id, args.status)
    print(f"{Fore.GREEN}{app['title']} is now {app['status']}")


def cmd_stats(client, args):
    stats = client.admin_stats()
    print(f"{Fore.YELLOW}Users:     {Fore.WHITE}{stats['users']['total']} "
          f"({stats['users']['developers']} developers)")
    print(f"{Fore.YELLOW}Apps:      {Fore.WHITE}{stats['apps']['total']} "
          f"({stats['apps']['approved']} approved, {stats['apps']['pending']} pending)")
    print(f"{Fore.YELLOW}Purchases: {Fore.WHITE}{stats['purchases']['total']} "
          f"(revenue {_price(stats['purchases']['revenue'])})")


def cmd_users(client, args):
    data = client.list_users(page=args.page)
    for user in data['users']:
        print(f"{Fore.CYAN}#{user['id']:<4} {user['email']:<32}{Fore.WHITE}{user['role']}")
    print_pagination(data['pagination'])


def cmd_user_delete(client, args):
    client.delete_user(args.user_id)
    print(f"{Fore.GREEN}User #{args.user_id} deleted")


def cmd_user_role(client, args):
    user = client.set_user_role(args.user_id, args.role)
    print(f"{Fore.GREEN}{user['email']} is now {user['role']}")


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Storefront - browse, buy and publish apps',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  storefront browse --category Productivity --sort rating
  storefront show codesnap
  storefront buy 3
  storefront review 3 5 "Does exactly what it says."
        """
    )
    parser.add_argument('--url', default=DEFAULT_URL,
                        help=f'API base URL (default: {DEFAULT_URL})')
    parser.add_argument('--session', default=DEFAULT_SESSION,
                        help='File that stores the login token')
    parser.add_argument('--log-level', default='WARNING',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'])
    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('register', help='Create an account')
    p.add_argument('email')
    p.add_argument('name')
    p.add_argument('password')
    p.set_defaults(func=cmd_register)

    p = sub.add_parser('login', help='Log in')
    p.add_argument('email')
    p.add_argument('password')
    p.set_defaults(func=cmd_login)

    sub.add_parser('logout', help='Forget the stored token').set_defaults(func=cmd_logout)

    p = sub.add_parser('browse', help='Search the catalog')
    p.add_argument('--query', '-q')
    p.add_argument('--category')
    p.add_argument('--min-price', type=float)
    p.add_argument('--max-price', type=float)
    p.add_argument('--sort', choices=['newest', 'oldest', 'price-low', 'price-high', 'rating'])
    p.add_argument('--page', type=int)
    p.add_argument('--limit', type=int)
    p.set_defaults(func=cmd_browse)

    sub.add_parser('categories', help='List categories').set_defaults(func=cmd_categories)

    p = sub.add_parser('show', help='Show an app by slug')
    p.add_argument('slug')
    p.set_defaults(func=cmd_show)

    p = sub.add_parser('buy', help='Start a purchase (free apps are claimed at once)')
    p.add_argument('app_id', type=int)
    p.set_defaults(func=cmd_buy)

    p = sub.add_parser('confirm', help='Record a completed payment')
    p.add_argument('payment_intent_id')
    p.set_defaults(func=cmd_confirm)

    sub.add_parser('library', help='List your purchases').set_defaults(func=cmd_library)

    p = sub.add_parser('download', help='Get the download link of an owned app')
    p.add_argument('app_id', type=int)
    p.set_defaults(func=cmd_download)

    p = sub.add_parser('owns', help='Check whether you own an app')
    p.add_argument('app_id', type=int)
    p.set_defaults(func=cmd_owns)

    p = sub.add_parser('reviews', help='List reviews of an app')
    p.add_argument('app_id', type=int)
    p.add_argument('--page', type=int, default=1)
    p.set_defaults(func=cmd_reviews)

    p = sub.add_parser('review', help='Review an app you own')
    p.add_argument('app_id', type=int)
    p.add_argument('rating', type=int, choices=range(1, 6))
    p.add_argument('text')
    p.set_defaults(func=cmd_review)

    p = sub.add_parser('review-edit', help='Change the rating and text of your review')
    p.add_argument('review_id', type=int)
    p.add_argument('rating', type=int, choices=range(1, 6))
    p.add_argument('text')
    p.set_defaults(func=cmd_review_edit)

    p = sub.add_parser('review-delete', help='Delete your review')
    p.add_argument('review_id', type=int)
    p.set_defaults(func=cmd_review_delete)

    p = sub.add_parser('profile', help='Show (or rename) your profile')
    p.add_argument('--name')
    p.set_defaults(func=cmd_profile)

    sub.add_parser('upgrade', help='Become a developer').set_defaults(func=cmd_upgrade)
    sub.add_parser('my-apps', help='List your apps').set_defaults(func=cmd_my_apps)

    p = sub.add_parser('create-app', help='Create a draft app')
    p.add_argument('title')
    p.add_argument('description')
    p.add_argument('category')
    p.add_argument('price', type=float)
    p.set_defaults(func=cmd_create_app)

    p = sub.add_parser('submit', help='Submit a draft for review')
    p.add_argument('app_id', type=int)
    p.set_defaults(func=cmd_submit)

    p = sub.add_parser('add-version', help='Publish a new version')
    p.add_argument('app_id', type=int)
    p.add_argument('version')
    p.add_argument('file_url')
    p.add_argument('--changelog')
    p.add_argument('--size', type=int, default=0)
    p.add_argument('--checksum')
    p.set_defaults(func=cmd_add_version)

    p = sub.add_parser('app-edit', help='Edit a draft or an app still in review')
    p.add_argument('app_id', type=int)
    p.add_argument('--title')
    p.add_argument('--description')
    p.add_argument('--category')
    p.add_argument('--price', type=float)
    p.set_defaults(func=cmd_app_edit)

    p = sub.add_parser('app-delete', help='Delete one of your apps')
    p.add_argument('app_id', type=int)
    p.set_defaults(func=cmd_app_delete)

    p = sub.add_parser('add-screenshot', help='Attach a screenshot to an app')
    p.add_argument('app_id', type=int)
    p.add_argument('file_url')
    p.add_argument('--order', type=int, help='Position in the gallery (default: last)')
    p.set_defaults(func=cmd_add_screenshot)

    p = sub.add_parser('pending', help='[admin] Show the moderation queue')
    p.add_argument('--page', type=int, default=1)
    p.set_defaults(func=cmd_pending)

    for name, status in (('approve', 'APPROVED'), ('reject', 'REJECTED')):
        p = sub.add_parser(name, help=f'[admin] {name.title()} an app in review')
        p.add_argument('app_id', type=int)
        p.set_defaults(func=cmd_moderate, status=status)

    sub.add_parser('stats', help='[admin] Show statistics').set_defaults(func=cmd_stats)

    p = sub.add_parser('users', help='[admin] List users')
    p.add_argument('--page', type=int, default=1)
    p.set_defaults(func=cmd_users)

    p = sub.add_parser('user-delete', help='[admin] Delete a user without apps')
    p.add_argument('user_id', type=int)
    p.set_defaults(func=cmd_user_delete)

    p = sub.add_parser('user-role', help="[admin] Change a user's role")
    p.add_argument('user_id', type=int)
    p.add_argument('role', choices=['user', 'developer', 'admin'])
    p.set_defaults(func=cmd_user_role)

    return parser


def main(argv=None) -> int:
    """Main entry point"""
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)
    client = StorefrontClient(args.url, token=load_token(args.session))
    try:
        args.func(client, args)
    except ApiError as e:
        print(f"{Fore.RED}Error: {e}")
        if e.status == 401:
            print(f"{Fore.YELLOW}Log in first with: storefront login <email> <password>")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
