#!/usr/bin/env python3
"""
Populate a development database with sample accounts, apps, purchases and
reviews.

Usage:
    python scripts/seed_db.py [--database-url sqlite:///storefront.db] [--seed 42]

Re-running is safe: existing users and apps (matched by email / slug) are
reused and only missing rows are added.
"""
import argparse
import hashlib
import os
import random
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from colorama import init, Fore

import database
from storefront.auth import hash_password
from storefront.config import load_config, setup_logging
from storefront.repositories import (
    AppRepository, PurchaseRepository, ReviewRepository, UserRepository,
)
from storefront.services.app_service import slugify

init(autoreset=True)

SAMPLE_APPS = [
    ('TaskFlow Pro', 'Productivity', 29.99,
     'A powerful task management application with team collaboration features, '
     'deadline tracking, and advanced reporting capabilities.'),
    ('CodeSnap', 'Developer Tools', 9.99,
     'Beautiful code screenshot generator with syntax highlighting, custom themes, '
     'and social sharing capabilities.'),
    ('Pixel Perfect', 'Graphics & Design', 49.99,
     'Professional image editor with AI-powered features, batch processing, '
     'and RAW format support.'),
    ('StudyBuddy', 'Education', 19.99,
     'Interactive learning platform with flashcards, spaced repetition, and '
     'progress tracking for students.'),
    ('RetroGame', 'Games', 14.99,
     'Classic arcade-style platformer game with modern graphics and challenging levels.'),
    ('BusinessCard Maker', 'Business', 24.99,
     'Create professional business cards with templates, QR codes, and '
     'high-quality printing options.'),
]

REVIEW_TEXTS = [
    'Great app! Really helps with productivity.',
    'Love the user interface and features.',
    'Works perfectly, highly recommended!',
    'Good value for money, solid functionality.',
    'Excellent app with regular updates.',
]
REVIEW_RATINGS = [4, 5, 3, 4, 5]


def _user(users: UserRepository, email: str, name: str, password: str, role: str):
    existing = users.find_by_email(email)
    if existing is not None:
        return existing
    return users.create(email, name, hash_password(password), role=role)


def _app(apps: AppRepository, developer_id: int, title: str, category: str,
         price: float, description: str, status: str):
    slug = slugify(title)
    existing = apps.find_by_slug(slug)
    if existing is not None:
        return existing, False
    app = apps.create(developer_id=developer_id, title=title, slug=slug,
                      description=description, category=category, price=price,
                      status=status)
    return app, True


def seed(db, rng: random.Random) -> None:
    users = UserRepository(db)
    apps = AppRepository(db)
    purchases = PurchaseRepository(db)
    reviews = ReviewRepository(db)

    _user(users, 'admin@storefront.local', 'Admin User', 'admin123', 'admin')
    print(f"{Fore.GREEN}Admin user ready")

    developers = [_user(users, f'developer{i}@example.com', f'Developer {i}',
                        'developer123', 'developer') for i in range(1, 4)]
    print(f"{Fore.GREEN}{len(developers)} developers ready")

    buyers = [_user(users, f'user{i}@example.com', f'Test User {i}', 'user123', 'user')
              for i in range(1, 6)]
    print(f"{Fore.GREEN}{len(buyers)} users ready")

    catalog = []
    for index, (title, category, price, description) in enumerate(SAMPLE_APPS):
        developer = developers[index % len(developers)]
        app, created = _app(apps, developer.id, title, category, price, description,
                            status='approved')
        if created:
            apps.add_version(
                app.id, '1.0.0', f'https://cdn.storefront.local/apps/{app.slug}/v1.0.0.zip',
                changelog='Initial release',
                size=rng.randint(1_000_000, 50_000_000),
                checksum=hashlib.sha256(app.slug.encode()).hexdigest(),
            )
            for i in range(1, 4):
                apps.add_screenshot(app.id, f'https://picsum.photos/800/600?random={app.id}-{i}', i)
        catalog.append(app)
    print(f"{Fore.GREEN}{len(catalog)} approved apps ready")

    recorded = 0
    for buyer in buyers[:3]:
        for app in catalog[:rng.randint(1, 3)]:
            _, created = purchases.insert_or_fetch(
                buyer.id, app.id, app.price, 'usd',
                payment_ref=f'pi_seed_{buyer.id}_{app.id}',
            )
            recorded += int(created)
            if created and rng.random() > 0.5:
                reviews.create(buyer.id, app.id, rng.choice(REVIEW_RATINGS),
                               rng.choice(REVIEW_TEXTS))
    print(f"{Fore.GREEN}{recorded} purchases recorded")

    _app(apps, developers[0].id, 'Pending App', 'Utilities', 12.99,
         'This app is waiting for admin approval.', status='review')
    print(f"{Fore.GREEN}Pending app ready for moderation")


def main():
    config = load_config(os.getenv('STOREFRONT_CONFIG', 'config.json'))
    parser = argparse.ArgumentParser(description='Seed the storefront database')
    parser.add_argument('--database-url', default=config['database_url'])
    parser.add_argument('--seed', type=int, default=42, help='Random seed for sizes and reviews')
    args = parser.parse_args()

    setup_logging(config['log_level'])
    database.configure(args.database_url)
    if not database.init_db():
        print(f"{Fore.RED}Could not initialize {args.database_url}")
        sys.exit(1)

    db = database.SessionLocal()
    try:
        seed(db, random.Random(args.seed))
    finally:
        db.close()

    print(f"\n{Fore.CYAN}Test accounts:")
    print("  Admin:     admin@storefront.local / admin123")
    print("  Developer: developer1@example.com / developer123")
    print("  User:      user1@example.com / user123")


if __name__ == '__main__':
    main()
