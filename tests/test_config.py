#!/usr/bin/env python3
"""
Tests for storefront/config.py and storefront/schemas.py helpers.

Run with:
    python -m pytest tests/test_config.py
"""
import json
import logging
import os
import shutil
import sys
import tempfile
import unittest
from unittest.mock import patch

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from storefront.config import (
    DEFAULT_CONFIG, is_placeholder_value, load_config, setup_logging,
)
from storefront.errors import ValidationError
from storefront.schemas import (
    CatalogQuery, PaymentIntentRequest, RegisterRequest, page_params, parse,
)

_ENV_NAMES = ('DATABASE_URL', 'STRIPE_SECRET_KEY', 'STRIPE_API_BASE',
              'STOREFRONT_CURRENCY', 'JWT_SECRET_KEY', 'STOREFRONT_LOG_LEVEL')


class TestLoadConfig(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.mkdtemp()
        env = {k: v for k, v in os.environ.items() if k not in _ENV_NAMES}
        patcher = patch.dict(os.environ, env, clear=True)
        patcher.start()
        self.addCleanup(patcher.stop)

    def tearDown(self):
        shutil.rmtree(self.tmp, ignore_errors=True)

    def _write(self, data, name='config.json'):
        path = os.path.join(self.tmp, name)
        with open(path, 'w') as f:
            if isinstance(data, str):
                f.write(data)
            else:
                json.dump(data, f)
        return path

    def test_defaults_without_file(self):
        config = load_config(os.path.join(self.tmp, 'missing.json'))
        self.assertEqual(config, DEFAULT_CONFIG)

    def test_file_values_override_defaults(self):
        config = load_config(self._write({'currency': 'EUR', 'port': 8080}))
        self.assertEqual(config['currency'], 'eur')
        self.assertEqual(config['port'], 8080)
        self.assertEqual(config['host'], DEFAULT_CONFIG['host'])

    def test_environment_overrides_file(self):
        path = self._write({'database_url': 'sqlite:///file.db'})
        with patch.dict(os.environ, {'DATABASE_URL': 'sqlite:///env.db',
                                     'STRIPE_SECRET_KEY': 'sk_env'}):
            config = load_config(path)
        self.assertEqual(config['database_url'], 'sqlite:///env.db')
        self.assertEqual(config['stripe_secret_key'], 'sk_env')

    def test_invalid_json_falls_back_to_defaults(self):
        config = load_config(self._write('{not json'))
        self.assertEqual(config['database_url'], DEFAULT_CONFIG['database_url'])


class TestHelpers(unittest.TestCase):

    def test_placeholder_values(self):
        self.assertTrue(is_placeholder_value(''))
        self.assertTrue(is_placeholder_value(None))
        self.assertTrue(is_placeholder_value('YOUR_STRIPE_SECRET_KEY'))
        self.assertFalse(is_placeholder_value('sk_live_abc'))

    def test_setup_logging_is_idempotent(self):
        logger = setup_logging('DEBUG')
        handlers = len(logger.handlers)
        setup_logging('ERROR')
        self.assertEqual(len(logger.handlers), handlers)
        self.assertEqual(logger.level, logging.ERROR)


class TestSchemas(unittest.TestCase):

    def test_parse_raises_readable_validation_error(self):
        with self.assertRaises(ValidationError) as ctx:
            parse(RegisterRequest, {'email': 'a@b.co', 'name': 'A', 'password': 'secret1'})
        self.assertIn('name', ctx.exception.message)

    def test_parse_rejects_non_object(self):
        with self.assertRaises(ValidationError):
            parse(RegisterRequest, ['not', 'a', 'dict'])

    def test_payment_request_ignores_amount(self):
        payload = parse(PaymentIntentRequest, {'appId': 4, 'amount': 0.01})
        self.assertEqual(payload.app_id, 4)
        self.assertFalse(hasattr(payload, 'amount'))

    def test_catalog_query_from_strings(self):
        query = parse(CatalogQuery, {'minPrice': '1.5', 'page': '2', 'limit': '99',
                                     'query': '  ', 'sortBy': 'rating'})
        self.assertEqual(query.min_price, 1.5)
        self.assertEqual(query.page, 2)
        self.assertEqual(query.limit, 50)
        self.assertIsNone(query.query)
        self.assertEqual(query.sort_by, 'rating')

    def test_catalog_query_rejects_bad_page(self):
        with self.assertRaises(ValidationError):
            parse(CatalogQuery, {'page': '0'})

    def test_page_params_lenient_with_cap(self):
        self.assertEqual(page_params({'page': 'x', 'limit': '500'}, 20, 100),
                         {'page': 1, 'limit': 100})
        self.assertEqual(page_params({}, 10, 50), {'page': 1, 'limit': 10})
        self.assertEqual(page_params({'page': '3', 'limit': '-1'}, 10, 50),
                         {'page': 3, 'limit': 10})


if __name__ == '__main__':
    unittest.main()
