# Overview: Pytest coverage for per-store customer records kept in the document store.

"""
Tenant User Tests

- records live in the document store, always filtered by tenantId
- email is unique per store (case-insensitive) but may repeat across stores
- a guest is promoted by linking it to a global user; linking is idempotent
  for the same user and a conflict for a different one
- deactivation keeps the record and its link
"""

import pytest

from commerce.errors import ConflictError, NotFoundError
from commerce.services import tenant_user_service

CUSTOMERS = '/api/admin/acme/customers'


class TestCreate:

    def test_create_via_api(self, client, owner_a_headers):
        resp = client.post(CUSTOMERS, json={'email': 'Jo@Example.com', 'name': 'Jo'}, headers=owner_a_headers)
        assert resp.status_code == 201
        doc = resp.get_json()['data']
        assert doc['email'] == 'jo@example.com'
        assert doc['isGuest'] is True
        assert doc['isActive'] is True
        assert doc['userId'] is None
        assert doc['createdAt'].endswith('Z')
        assert 'tenantId' in doc

    def test_duplicate_email_is_conflict(self, client, owner_a_headers):
        client.post(CUSTOMERS, json={'email': 'jo@example.com'}, headers=owner_a_headers)
        resp = client.post(CUSTOMERS, json={'email': 'JO@example.com'}, headers=owner_a_headers)
        assert resp.status_code == 409
        body = resp.get_json()
        assert body['code'] == 'DUPLICATE_EMAIL'
        assert body['details'] == {'email': 'jo@example.com'}

    def test_same_email_in_two_stores(self, tenant_a, tenant_b):
        a = tenant_user_service.create_tenant_user(tenant_a.id, {'email': 'jo@example.com'})
        b = tenant_user_service.create_tenant_user(tenant_b.id, {'email': 'jo@example.com'})
        assert a['id'] != b['id']

    def test_contact_required(self, client, owner_a_headers):
        resp = client.post(CUSTOMERS, json={'name': 'Nobody'}, headers=owner_a_headers)
        assert resp.status_code == 400
        assert resp.get_json()['details'][0]['field'] == 'email'

    def test_created_with_user_id_is_registered(self, tenant_a):
        doc = tenant_user_service.create_tenant_user(tenant_a.id, {'email': 'reg@example.com', 'user_id': '9'})
        assert doc['isGuest'] is False


class TestLinking:

    def test_link_guest(self, tenant_a):
        guest = tenant_user_service.create_tenant_user(tenant_a.id, {'email': 'g@example.com'})
        linked = tenant_user_service.link_to_global_user(tenant_a.id, guest['id'], '5')
        assert linked['userId'] == '5'
        assert linked['isGuest'] is False

    def test_link_is_idempotent(self, tenant_a):
        guest = tenant_user_service.create_tenant_user(tenant_a.id, {'email': 'g@example.com'})
        first = tenant_user_service.link_to_global_user(tenant_a.id, guest['id'], '5')
        again = tenant_user_service.link_to_global_user(tenant_a.id, guest['id'], '5')
        assert again['id'] == first['id']
        assert again['userId'] == '5'

    def test_link_to_other_user_conflicts(self, tenant_a):
        guest = tenant_user_service.create_tenant_user(tenant_a.id, {'email': 'g@example.com'})
        tenant_user_service.link_to_global_user(tenant_a.id, guest['id'], '5')
        with pytest.raises(ConflictError) as exc_info:
            tenant_user_service.link_to_global_user(tenant_a.id, guest['id'], '6')
        assert exc_info.value.code == 'ALREADY_LINKED'

    def test_storefront_signup_adopts_guest(self, client, tenant_a):
        guest = tenant_user_service.create_tenant_user(tenant_a.id, {'email': 'g@example.com'})

        resp = client.post(
            '/api/storefront/acme/customers/signup',
            json={'email': 'g@example.com', 'name': 'Gina'},
            headers={'X-User-Id': '5'},
        )
        assert resp.status_code == 201
        doc = resp.get_json()['data']
        assert doc['id'] == guest['id']
        assert doc['userId'] == '5'
        assert doc['name'] == 'Gina'
        assert doc['isGuest'] is False

        me = client.get('/api/storefront/acme/customers/me', headers={'X-User-Id': '5'}).get_json()['data']
        assert me['id'] == guest['id']

    def test_signup_without_guest_creates_record(self, tenant_a):
        doc = tenant_user_service.register_customer(tenant_a.id, '8', {'email': 'new@example.com'})
        assert doc['userId'] == '8'
        assert doc['isGuest'] is False
        again = tenant_user_service.register_customer(tenant_a.id, '8', {'email': 'new@example.com'})
        assert again['id'] == doc['id']

    def test_anonymous_me_is_null(self, client, tenant_a):
        resp = client.get('/api/storefront/acme/customers/me')
        assert resp.status_code == 200
        assert resp.get_json()['data'] is None


class TestListAndUpdate:

    def test_search_and_pagination(self, client, tenant_a, owner_a_headers):
        for email, name in (('ann@example.com', 'Ann'), ('bob@example.com', 'Bob'), ('cat@example.com', 'Anna')):
            tenant_user_service.create_tenant_user(tenant_a.id, {'email': email, 'name': name})

        body = client.get(f'{CUSTOMERS}?search=ann', headers=owner_a_headers).get_json()['data']
        assert sorted(d['name'] for d in body['items']) == ['Ann', 'Anna']
        assert body['pagination']['total'] == 2

        body = client.get(f'{CUSTOMERS}?limit=2&page=2', headers=owner_a_headers).get_json()['data']
        assert body['count'] == 1
        assert body['pagination']['totalPages'] == 2

    def test_regex_characters_are_literal(self, tenant_a):
        tenant_user_service.create_tenant_user(tenant_a.id, {'email': 'x@example.com', 'name': 'a.b'})
        tenant_user_service.create_tenant_user(tenant_a.id, {'email': 'y@example.com', 'name': 'axb'})
        result = tenant_user_service.list_tenant_users(tenant_a.id, search='a.b')
        assert [d['name'] for d in result['items']] == ['a.b']

    def test_update_rejects_taken_email(self, tenant_a):
        tenant_user_service.create_tenant_user(tenant_a.id, {'email': 'one@example.com'})
        two = tenant_user_service.create_tenant_user(tenant_a.id, {'email': 'two@example.com'})
        with pytest.raises(ConflictError):
            tenant_user_service.update_tenant_user(tenant_a.id, two['id'], {'email': 'ONE@example.com'})

    def test_update_via_api(self, client, tenant_a, owner_a_headers):
        doc = tenant_user_service.create_tenant_user(tenant_a.id, {'email': 'one@example.com'})
        resp = client.patch(f"{CUSTOMERS}/{doc['id']}", json={'name': 'Renamed'}, headers=owner_a_headers)
        assert resp.status_code == 200
        assert resp.get_json()['data']['name'] == 'Renamed'

    def test_deactivate_keeps_link(self, client, tenant_a, owner_a_headers):
        doc = tenant_user_service.create_tenant_user(tenant_a.id, {'email': 'one@example.com', 'user_id': '3'})
        resp = client.delete(f"{CUSTOMERS}/{doc['id']}", headers=owner_a_headers)
        assert resp.status_code == 200
        body = resp.get_json()['data']
        assert body['isActive'] is False
        assert body['userId'] == '3'

    def test_foreign_record_is_not_found(self, client, tenant_b, owner_a_headers):
        doc = tenant_user_service.create_tenant_user(tenant_b.id, {'email': 'one@example.com'})
        resp = client.get(f"{CUSTOMERS}/{doc['id']}", headers=owner_a_headers)
        assert resp.status_code == 404
        assert resp.get_json()['code'] == 'TENANT_USER_NOT_FOUND'

        with pytest.raises(NotFoundError):
            tenant_user_service.deactivate_tenant_user(tenant_b.id, 'not-an-object-id')
