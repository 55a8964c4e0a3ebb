# Overview: Pytest coverage for request decorators, the error envelope and system endpoints.

"""
API Middleware Tests

Walks the decorator chain in the order it runs:
require_tenant -> require_user -> require_role -> validate_* -> rules -> view

and checks that every short-circuit renders the {ok, error, code, details}
envelope with the right status. Persistence failures surface as 500.
"""

import pytest
from pymongo.errors import ServerSelectionTimeoutError
from sqlalchemy.exc import OperationalError

from commerce.http import ok
from commerce.services import products_service, tenant_user_service
from commerce.validation import validate_params
from commerce.validation.schemas import id_params_schema

from conftest import user_headers


class TestValidationMiddleware:

    def test_invalid_body_lists_every_field(self, client, owner_a_headers):
        resp = client.post(
            '/api/admin/acme/products',
            json={'name': '', 'price': -5, 'colour': 'red'},
            headers=owner_a_headers,
        )
        assert resp.status_code == 400
        body = resp.get_json()
        assert body['ok'] is False
        assert body['code'] == 'VALIDATION_ERROR'
        fields = {d['field'] for d in body['details']}
        assert {'name', 'price', 'colour'} <= fields

    def test_malformed_json(self, client, owner_a_headers):
        resp = client.post(
            '/api/admin/acme/products',
            data='{"name": ',
            content_type='application/json',
            headers=owner_a_headers,
        )
        assert resp.status_code == 400
        assert resp.get_json()['code'] == 'INVALID_JSON'

    def test_query_validation(self, client, owner_a_headers):
        resp = client.get('/api/admin/acme/products?limit=1000', headers=owner_a_headers)
        assert resp.status_code == 400
        assert resp.get_json()['details'][0]['field'] == 'limit'

    def test_header_validation(self, client, tenant_a):
        resp = client.get('/api/storefront/acme/cart', headers={'X-Cart-Session': 'short'})
        assert resp.status_code == 400
        assert resp.get_json()['details'][0]['field'] == 'x-cart-session'

    def test_path_params_are_coerced(self, app, client):
        @validate_params(id_params_schema)
        def probe(params, tenant_slug, id):
            return ok(params)

        app.add_url_rule('/probe/<tenant_slug>/<id>', 'probe', probe)

        resp = client.get('/probe/acme/7')
        assert resp.get_json()['data'] == {'tenant_slug': 'acme', 'id': 7}

        resp = client.get('/probe/Not_Lower/x')
        assert resp.status_code == 400
        assert {d['field'] for d in resp.get_json()['details']} == {'tenant_slug', 'id'}


class TestAuthMiddleware:

    def test_missing_user_header(self, client, tenant_a):
        resp = client.get('/api/admin/acme/products')
        assert resp.status_code == 401
        assert resp.get_json()['code'] == 'UNAUTHORIZED'

    def test_non_numeric_user_id(self, client, tenant_a):
        resp = client.get('/api/admin/acme/products', headers={'X-User-Id': 'abc'})
        assert resp.status_code == 401

    def test_role_too_low(self, client, tenant_a, owner_a_headers):
        resp = client.post(
            '/api/admin/acme/members',
            json={'email': 'viewer@acme.test', 'role': 'VIEWER'},
            headers=owner_a_headers,
        )
        viewer_id = resp.get_json()['data']['userId']

        resp = client.post(
            '/api/admin/acme/products',
            json={'name': 'Mug', 'price': 5},
            headers=user_headers(viewer_id),
        )
        assert resp.status_code == 403
        body = resp.get_json()
        assert body['code'] == 'FORBIDDEN'
        assert body['details'] == {'requiredRole': 'STAFF'}

    def test_tenant_resolved_before_user(self, client, app):
        resp = client.get('/api/admin/nowhere/products')
        assert resp.status_code == 404
        assert resp.get_json()['code'] == 'TENANT_NOT_FOUND'


class TestRuleMiddleware:

    def test_rule_failure_is_400_with_details(self, client, owner_a_headers):
        resp = client.post(
            '/api/admin/acme/products',
            json={'name': 'Mug', 'price': 10, 'compareAtPrice': 5},
            headers=owner_a_headers,
        )
        assert resp.status_code == 400
        body = resp.get_json()
        assert body['code'] == 'INVALID_COMPARE_PRICE'

    def test_not_found_codes_map_to_404(self, client, owner_a_headers):
        resp = client.patch('/api/admin/acme/products/999', json={'name': 'Nope'}, headers=owner_a_headers)
        assert resp.status_code == 404
        assert resp.get_json()['code'] == 'PRODUCT_NOT_FOUND'


class TestErrorHandlers:

    def test_database_failure_is_500(self, client, owner_a_headers, monkeypatch):
        def broken(*args, **kwargs):
            raise OperationalError('SELECT 1', {}, Exception('connection refused'))

        monkeypatch.setattr(products_service, 'list_products', broken)
        resp = client.get('/api/admin/acme/products', headers=owner_a_headers)
        assert resp.status_code == 500
        body = resp.get_json()
        assert body == {'ok': False, 'error': 'Internal server error', 'code': 'INFRASTRUCTURE_ERROR'}

    def test_document_store_failure_is_500(self, client, owner_a_headers, monkeypatch):
        def broken(*args, **kwargs):
            raise ServerSelectionTimeoutError('no servers')

        monkeypatch.setattr(tenant_user_service, 'list_tenant_users', broken)
        resp = client.get('/api/admin/acme/customers', headers=owner_a_headers)
        assert resp.status_code == 500
        assert resp.get_json()['code'] == 'INFRASTRUCTURE_ERROR'

    def test_unknown_route_uses_envelope(self, client, app):
        resp = client.get('/api/does-not-exist')
        assert resp.status_code == 404
        body = resp.get_json()
        assert body['ok'] is False
        assert body['code'] == 'NOT_FOUND'

    def test_success_envelope_is_not_cached(self, client, owner_a_headers):
        resp = client.get('/api/admin/acme/products', headers=owner_a_headers)
        assert resp.status_code == 200
        assert resp.get_json()['ok'] is True
        assert resp.headers['Cache-Control'] == 'no-store'


class TestCors:

    def test_allowed_origin_is_echoed(self, client, tenant_a):
        resp = client.get('/api/storefront/acme/products', headers={'Origin': 'http://localhost:3000'})
        assert resp.headers['Access-Control-Allow-Origin'] == 'http://localhost:3000'
        assert 'X-Tenant-Slug' in resp.headers['Access-Control-Allow-Headers']

    def test_unknown_origin_gets_no_header(self, client, tenant_a):
        resp = client.get('/api/storefront/acme/products', headers={'Origin': 'https://evil.example'})
        assert 'Access-Control-Allow-Origin' not in resp.headers


class TestSystemEndpoints:

    def test_health_reports_each_backend(self, client, app):
        resp = client.get('/api/health')
        body = resp.get_json()
        assert set(body['checks']) == {'database', 'document_store', 'cache'}
        assert body['checks']['database']['status'] == 'healthy'
        assert body['checks']['cache']['status'] == 'healthy'
        assert body['timestamp'].endswith('Z')

    def test_version(self, client, app):
        resp = client.get('/api/version')
        assert resp.status_code == 200
        assert resp.get_json()['api_version'] == '1.0.0'
