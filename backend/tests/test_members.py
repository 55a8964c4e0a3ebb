# Overview: Pytest coverage for staff memberships, role hierarchy and the last-owner guard.

"""
Membership Tests

Roles rank OWNER > ADMIN > STAFF > VIEWER.
- owners may grant or revoke any role
- everyone else may only touch roles strictly below their own
- a tenant always keeps one active owner
- removal is a soft delete that stops the membership granting access
"""

import pytest

from commerce.errors import BusinessRuleViolation, NotFoundError
from commerce.services import membership_service

from conftest import user_headers

MEMBERS = '/api/admin/acme/members'


def _invite(client, headers, email, role):
    return client.post(MEMBERS, json={'email': email, 'role': role}, headers=headers)


def _owner_membership(tenant):
    return [m for m in membership_service.list_members(tenant.id) if m['role'] == 'OWNER'][0]


@pytest.fixture
def admin_a(client, owner_a_headers):
    """(membership dict, headers) for an ADMIN of tenant A."""
    member = _invite(client, owner_a_headers, 'admin@acme.test', 'ADMIN').get_json()['data']
    return member, user_headers(member['userId'])


class TestInvite:

    def test_owner_invites_admin(self, client, owner_a_headers):
        resp = _invite(client, owner_a_headers, 'Admin@Acme.test', 'ADMIN')
        assert resp.status_code == 201
        member = resp.get_json()['data']
        assert member['role'] == 'ADMIN'
        assert member['isActive'] is True

        listing = client.get(MEMBERS, headers=owner_a_headers).get_json()['data']
        emails = sorted(m['user']['email'] for m in listing)
        assert emails == ['admin@acme.test', 'owner@acme.test']

    def test_admin_cannot_grant_own_rank(self, client, admin_a):
        _, headers = admin_a
        resp = _invite(client, headers, 'peer@acme.test', 'ADMIN')
        assert resp.status_code == 400
        body = resp.get_json()
        assert body['code'] == 'ROLE_ESCALATION'
        assert body['details'] == {'actorRole': 'ADMIN', 'currentRole': 'VIEWER', 'newRole': 'ADMIN'}

    def test_admin_can_grant_lower_roles(self, client, admin_a):
        _, headers = admin_a
        resp = _invite(client, headers, 'clerk@acme.test', 'STAFF')
        assert resp.status_code == 201

    def test_unknown_role_is_a_validation_error(self, client, owner_a_headers):
        resp = _invite(client, owner_a_headers, 'x@acme.test', 'EMPEROR')
        assert resp.status_code == 400
        assert resp.get_json()['code'] == 'VALIDATION_ERROR'

    def test_staff_cannot_manage_members(self, client, owner_a_headers):
        staff = _invite(client, owner_a_headers, 'clerk@acme.test', 'STAFF').get_json()['data']
        resp = client.get(MEMBERS, headers=user_headers(staff['userId']))
        assert resp.status_code == 403
        assert resp.get_json()['details'] == {'requiredRole': 'ADMIN'}

    def test_reinvite_reactivates_same_membership(self, client, tenant_a, owner_a_headers):
        staff = _invite(client, owner_a_headers, 'clerk@acme.test', 'STAFF').get_json()['data']
        client.delete(f"{MEMBERS}/{staff['id']}", headers=owner_a_headers)

        again = _invite(client, owner_a_headers, 'clerk@acme.test', 'VIEWER').get_json()['data']
        assert again['id'] == staff['id']
        assert again['isActive'] is True
        assert again['role'] == 'VIEWER'


class TestRoleChanges:

    def test_admin_cannot_touch_owner(self, client, tenant_a, admin_a):
        _, headers = admin_a
        owner = _owner_membership(tenant_a)
        resp = client.patch(f"{MEMBERS}/{owner['id']}", json={'role': 'VIEWER'}, headers=headers)
        assert resp.status_code == 400
        assert resp.get_json()['code'] == 'ROLE_ESCALATION'

    def test_sole_owner_cannot_step_down(self, client, tenant_a, owner_a_headers):
        owner = _owner_membership(tenant_a)
        resp = client.patch(f"{MEMBERS}/{owner['id']}", json={'role': 'ADMIN'}, headers=owner_a_headers)
        assert resp.status_code == 400
        assert resp.get_json()['code'] == 'LAST_OWNER'

    def test_owner_can_step_down_once_replaced(self, client, tenant_a, owner_a_headers):
        _invite(client, owner_a_headers, 'heir@acme.test', 'OWNER')
        owner = [m for m in membership_service.list_members(tenant_a.id) if m['user']['email'] == 'owner@acme.test'][0]

        resp = client.patch(f"{MEMBERS}/{owner['id']}", json={'role': 'ADMIN'}, headers=owner_a_headers)
        assert resp.status_code == 200
        assert resp.get_json()['data']['role'] == 'ADMIN'

    def test_unknown_membership(self, tenant_a):
        with pytest.raises(NotFoundError) as exc_info:
            membership_service.change_role(tenant_a.id, 999, 'STAFF', actor_role='OWNER')
        assert exc_info.value.code == 'MEMBER_NOT_FOUND'

    def test_membership_of_other_tenant_is_not_found(self, tenant_a, tenant_b):
        foreign = _owner_membership(tenant_b)
        with pytest.raises(NotFoundError):
            membership_service.change_role(tenant_a.id, foreign['id'], 'VIEWER', actor_role='OWNER')


class TestDeactivate:

    def test_sole_owner_cannot_be_removed(self, tenant_a):
        owner = _owner_membership(tenant_a)
        with pytest.raises(BusinessRuleViolation) as exc_info:
            membership_service.deactivate_member(tenant_a.id, owner['id'], actor_role='OWNER')
        assert exc_info.value.code == 'LAST_OWNER'

    def test_removed_member_loses_access(self, client, owner_a_headers, product_a):
        staff = _invite(client, owner_a_headers, 'clerk@acme.test', 'STAFF').get_json()['data']
        staff_headers = user_headers(staff['userId'])
        assert client.get('/api/admin/acme/products', headers=staff_headers).status_code == 200

        resp = client.delete(f"{MEMBERS}/{staff['id']}", headers=owner_a_headers)
        assert resp.status_code == 200
        assert resp.get_json()['data']['isActive'] is False

        assert client.get('/api/admin/acme/products', headers=staff_headers).status_code == 403

    def test_admin_cannot_remove_admin(self, client, owner_a_headers, admin_a):
        _, headers = admin_a
        other = _invite(client, owner_a_headers, 'second@acme.test', 'ADMIN').get_json()['data']
        resp = client.delete(f"{MEMBERS}/{other['id']}", headers=headers)
        assert resp.status_code == 400
        assert resp.get_json()['code'] == 'ROLE_ESCALATION'
