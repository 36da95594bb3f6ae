#!/usr/bin/env python3
"""
Unit tests for storefront/repositories against an in-memory SQLite database.

Run with:
    python -m pytest tests/test_repositories.py
"""
import os
import sys
import unittest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import database
from storefront.repositories import (
    AppRepository, PurchaseRepository, ReviewRepository, UserRepository,
)


def _make_session():
    engine = create_engine('sqlite:///:memory:', connect_args={"check_same_thread": False})
    database.Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)()


class RepoTestCase(unittest.TestCase):

    def setUp(self):
        self.db = _make_session()
        self.users = UserRepository(self.db)
        self.apps = AppRepository(self.db)
        self.purchases = PurchaseRepository(self.db)
        self.reviews = ReviewRepository(self.db)
        self.dev = self.users.create('dev@example.com', 'Dev', 'hash', role='developer')
        self.buyer = self.users.create('buyer@example.com', 'Buyer', 'hash')

    def tearDown(self):
        self.db.close()

    def _app(self, title, price=1.0, category='Games', status='approved',
             description='A perfectly fine application'):
        slug = title.lower().replace(' ', '-')
        return self.apps.create(self.dev.id, title, slug, description, category,
                                price, status=status)


# ===========================================================================
# Users
# ===========================================================================

class TestUserRepository(RepoTestCase):

    def test_find_by_email_is_case_insensitive(self):
        self.assertEqual(self.users.find_by_email('DEV@Example.com').id, self.dev.id)

    def test_find_by_email_missing_returns_none(self):
        self.assertIsNone(self.users.find_by_email('nobody@example.com'))

    def test_count_by_role(self):
        self.assertEqual(self.users.count(), 2)
        self.assertEqual(self.users.count(role='developer'), 1)

    def test_list_page_newest_first_with_total(self):
        third = self.users.create('third@example.com', 'Third', 'hash')
        users, total = self.users.list_page(0, 2)
        self.assertEqual(total, 3)
        self.assertEqual([u.id for u in users], [third.id, self.buyer.id])

    def test_activity_counts(self):
        app = self._app('Counter')
        self.purchases.insert_or_fetch(self.buyer.id, app.id, 1.0, 'usd')
        self.reviews.create(self.buyer.id, app.id, 5, 'Great little app')
        self.assertEqual(self.users.activity_counts(self.dev.id),
                         {'apps': 1, 'purchases': 0, 'reviews': 0})
        self.assertEqual(self.users.activity_counts(self.buyer.id),
                         {'apps': 0, 'purchases': 1, 'reviews': 1})


# ===========================================================================
# Apps
# ===========================================================================

class TestAppRepositorySearch(RepoTestCase):

    def setUp(self):
        super().setUp()
        self.cheap = self._app('Cheap Game', price=1.0)
        self.mid = self._app('Mid Tool', price=5.0, category='Tools',
                             description='Handles 100% of your csv_files')
        self.pricey = self._app('Pricey Game', price=20.0)
        self.draft = self._app('Hidden Draft', price=3.0, status='draft')

    def _ids(self, **kwargs):
        apps, _ = self.apps.search('approved', **kwargs)
        return [a.id for a in apps]

    def test_only_requested_status(self):
        self.assertNotIn(self.draft.id, self._ids())

    def test_query_matches_title_and_description_case_insensitively(self):
        self.assertEqual(self._ids(query='game', sort_by='price-low'),
                         [self.cheap.id, self.pricey.id])
        self.assertEqual(self._ids(query='CSV'), [self.mid.id])

    def test_query_wildcards_are_literal(self):
        self.assertEqual(self._ids(query='100%'), [self.mid.id])
        self.assertEqual(self._ids(query='csv_f'), [self.mid.id])
        self.assertEqual(self._ids(query='%'), [self.mid.id])

    def test_category_filter(self):
        self.assertEqual(self._ids(category='Tools'), [self.mid.id])

    def test_price_bounds_are_inclusive(self):
        self.assertEqual(self._ids(min_price=1.0, max_price=5.0, sort_by='price-low'),
                         [self.cheap.id, self.mid.id])

    def test_sort_orders(self):
        self.assertEqual(self._ids(sort_by='price-high'),
                         [self.pricey.id, self.mid.id, self.cheap.id])
        self.assertEqual(self._ids(sort_by='newest'),
                         [self.pricey.id, self.mid.id, self.cheap.id])
        self.assertEqual(self._ids(sort_by='oldest'),
                         [self.cheap.id, self.mid.id, self.pricey.id])

    def test_rating_sort_puts_unrated_last(self):
        other = self.users.create('other@example.com', 'Other', 'hash')
        self.reviews.create(self.buyer.id, self.cheap.id, 3, 'Decent enough game')
        self.reviews.create(other.id, self.cheap.id, 5, 'Decent enough game')
        self.reviews.create(self.buyer.id, self.mid.id, 5, 'Excellent tool here')
        self.assertEqual(self._ids(sort_by='rating'),
                         [self.mid.id, self.cheap.id, self.pricey.id])

    def test_pagination_returns_total_of_all_matches(self):
        apps, total = self.apps.search('approved', offset=2, limit=2)
        self.assertEqual(total, 3)
        self.assertEqual(len(apps), 1)


class TestAppRepository(RepoTestCase):

    def test_rating_summary_in_one_call(self):
        rated = self._app('Rated')
        unrated = self._app('Unrated')
        self.reviews.create(self.buyer.id, rated.id, 4, 'Pretty good overall')
        summary = self.apps.rating_summary([rated.id, unrated.id])
        self.assertEqual(summary[rated.id], (4.0, 1))
        self.assertEqual(summary[unrated.id], (None, 0))

    def test_rating_summary_empty(self):
        self.assertEqual(self.apps.rating_summary([]), {})

    def test_categories_sorted_and_distinct(self):
        self._app('B', category='Tools')
        self._app('A', category='Games')
        self._app('C', category='Games')
        self._app('D', category='Secret', status='review')
        self.assertEqual(self.apps.categories('approved'), ['Games', 'Tools'])

    def test_list_by_status_oldest_first(self):
        first = self._app('First', status='review')
        second = self._app('Second', status='review')
        apps, total = self.apps.list_by_status('review', 0, 10)
        self.assertEqual(total, 2)
        self.assertEqual([a.id for a in apps], [first.id, second.id])

    def test_latest_version_breaks_ties_by_id(self):
        app = self._app('Versioned')
        self.assertIsNone(self.apps.latest_version(app.id))
        self.apps.add_version(app.id, '1.0.0', 'https://cdn/1.zip')
        v2 = self.apps.add_version(app.id, '1.1.0', 'https://cdn/2.zip')
        self.assertEqual(self.apps.latest_version(app.id).id, v2.id)

    def test_next_screenshot_index(self):
        app = self._app('Shots')
        self.assertEqual(self.apps.next_screenshot_index(app.id), 0)
        self.apps.add_screenshot(app.id, 'https://img/3.png', 3)
        self.assertEqual(self.apps.next_screenshot_index(app.id), 4)

    def test_sales_counts(self):
        app = self._app('Seller')
        self.purchases.insert_or_fetch(self.buyer.id, app.id, 1.0, 'usd')
        self.assertEqual(self.apps.sales_counts([app.id]),
                         {app.id: {'purchases': 1, 'reviews': 0}})

    def test_delete_cascades_to_children(self):
        app = self._app('Doomed')
        self.apps.add_version(app.id, '1.0.0', 'https://cdn/1.zip')
        self.apps.add_screenshot(app.id, 'https://img/1.png', 0)
        self.purchases.insert_or_fetch(self.buyer.id, app.id, 1.0, 'usd')
        self.reviews.create(self.buyer.id, app.id, 2, 'Not for me really')
        self.apps.delete(app)
        self.assertEqual(self.db.query(database.AppVersion).count(), 0)
        self.assertEqual(self.db.query(database.Screenshot).count(), 0)
        self.assertEqual(self.purchases.count(), 0)
        self.assertEqual(self.db.query(database.Review).count(), 0)


# ===========================================================================
# Purchases
# ===========================================================================

class TestPurchaseRepository(RepoTestCase):

    def setUp(self):
        super().setUp()
        self.app = self._app('Paid', price=9.99)

    def test_insert_then_fetch_existing_pair(self):
        first, created = self.purchases.insert_or_fetch(
            self.buyer.id, self.app.id, 9.99, 'usd', payment_ref='pi_1')
        again, created_again = self.purchases.insert_or_fetch(
            self.buyer.id, self.app.id, 9.99, 'usd', payment_ref='pi_1')
        self.assertTrue(created)
        self.assertFalse(created_again)
        self.assertEqual(first.id, again.id)
        self.assertEqual(self.purchases.count(), 1)

    def test_second_intent_for_same_pair_returns_first_purchase(self):
        first, _ = self.purchases.insert_or_fetch(
            self.buyer.id, self.app.id, 9.99, 'usd', payment_ref='pi_1')
        again, created = self.purchases.insert_or_fetch(
            self.buyer.id, self.app.id, 9.99, 'usd', payment_ref='pi_2')
        self.assertFalse(created)
        self.assertEqual(again.payment_ref, 'pi_1')

    def test_exists_and_find(self):
        self.assertFalse(self.purchases.exists(self.buyer.id, self.app.id))
        self.purchases.insert_or_fetch(self.buyer.id, self.app.id, 9.99, 'usd')
        self.assertTrue(self.purchases.exists(self.buyer.id, self.app.id))
        self.assertIsNotNone(self.purchases.find(self.buyer.id, self.app.id))

    def test_free_claims_may_share_a_null_payment_ref(self):
        other = self._app('Other', price=0)
        self.purchases.insert_or_fetch(self.buyer.id, self.app.id, 0, 'usd')
        _, created = self.purchases.insert_or_fetch(self.buyer.id, other.id, 0, 'usd')
        self.assertTrue(created)

    def test_revenue(self):
        other = self._app('Other', price=0.01)
        self.purchases.insert_or_fetch(self.buyer.id, self.app.id, 9.99, 'usd')
        self.purchases.insert_or_fetch(self.buyer.id, other.id, 0.01, 'usd')
        self.assertEqual(self.purchases.revenue(), 10.0)

    def test_deleting_user_cascades_purchases_and_reviews(self):
        self.purchases.insert_or_fetch(self.buyer.id, self.app.id, 9.99, 'usd')
        self.reviews.create(self.buyer.id, self.app.id, 5, 'Worth every cent')
        self.users.delete(self.buyer)
        self.assertEqual(self.purchases.count(), 0)
        self.assertEqual(self.db.query(database.Review).count(), 0)


# ===========================================================================
# Reviews
# ===========================================================================

class TestReviewRepository(RepoTestCase):

    def test_list_for_app_newest_first(self):
        app = self._app('Reviewed')
        other = self.users.create('other@example.com', 'Other', 'hash')
        first = self.reviews.create(self.buyer.id, app.id, 4, 'First review text')
        second = self.reviews.create(other.id, app.id, 2, 'Second review text')
        reviews, total = self.reviews.list_for_app(app.id, 0, 10)
        self.assertEqual(total, 2)
        self.assertEqual([r.id for r in reviews], [second.id, first.id])

    def test_find_pair(self):
        app = self._app('Reviewed')
        self.assertIsNone(self.reviews.find(self.buyer.id, app.id))
        self.reviews.create(self.buyer.id, app.id, 4, 'First review text')
        self.assertEqual(self.reviews.find(self.buyer.id, app.id).rating, 4)


if __name__ == '__main__':
    unittest.main()
