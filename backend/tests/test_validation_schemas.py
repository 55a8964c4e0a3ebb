# Overview: Pytest coverage for schema validation and error flattening.

"""
Schema Validation Tests

Covers the input conventions shared by every endpoint:
1. camelCase on the wire, snake_case after load
2. Unknown keys are rejected at every nesting level
3. JSON numbers are strict (no "12" for an integer, no true for a price)
4. Update variants are partial and apply no defaults
5. Errors flatten to [{field, message, received}]
"""

import json

import pytest

from commerce.errors import ValidationError
from commerce.validation import flatten_errors, validate, validate_safe
from commerce.validation.schemas import (
    cart_item_schema,
    category_create_schema,
    domain_change_schema,
    order_create_schema,
    product_create_schema,
    product_query_schema,
    product_update_schema,
    store_settings_update_schema,
    tenant_onboarding_schema,
    tenant_user_create_schema,
)

from conftest import ADDRESS, CUSTOMER


def _fields(exc_info) -> set:
    return {e['field'] for e in exc_info.value.errors}


class TestProductSchemas:

    def test_create_maps_camel_case_and_applies_defaults(self):
        data = validate(product_create_schema, {
            'name': 'Mug',
            'price': 9.99,
            'compareAtPrice': 14.99,
            'inventory': {'trackQuantity': True, 'quantity': 4},
            'isFeatured': True,
        })
        assert data['compare_at_price'] == 14.99
        assert data['is_featured'] is True
        assert data['status'] == 'draft'
        assert data['visibility'] == 'public'
        assert data['inventory'] == {
            'track_quantity': True,
            'quantity': 4,
            'allow_backorder': False,
            'low_stock_threshold': 5,
        }
        assert data['categories'] == []

    @pytest.mark.parametrize('schema,payload', [
        (product_create_schema, {
            'name': 'Mug', 'price': 9.99, 'tags': ['a', 'b'], 'inventory': {'quantity': 4},
        }),
        (order_create_schema, {
            'items': [{'productId': 1, 'name': 'Mug', 'price': 10.0, 'quantity': 2, 'total': 20.0}],
            'subtotal': 20.0, 'total': 20.0,
            'customer': dict(CUSTOMER), 'shippingAddress': dict(ADDRESS), 'billingAddress': dict(ADDRESS),
        }),
    ])
    def test_validation_is_repeatable(self, schema, payload):
        original = json.dumps(payload, sort_keys=True)
        first = validate(schema, payload)
        second = validate(schema, payload)
        assert json.dumps(first, sort_keys=True, default=str) == json.dumps(second, sort_keys=True, default=str)
        assert json.dumps(payload, sort_keys=True) == original

    def test_rejects_unknown_top_level_key(self):
        with pytest.raises(ValidationError) as exc_info:
            validate(product_create_schema, {'name': 'Mug', 'price': 1, 'colour': 'red'})
        assert 'colour' in _fields(exc_info)

    def test_rejects_unknown_nested_key(self):
        with pytest.raises(ValidationError) as exc_info:
            validate(product_create_schema, {'name': 'Mug', 'price': 1, 'inventory': {'qty': 3}})
        assert 'inventory.qty' in _fields(exc_info)

    def test_rejects_server_assigned_fields(self):
        with pytest.raises(ValidationError) as exc_info:
            validate(product_create_schema, {'name': 'Mug', 'price': 1, 'tenantId': 2})
        assert 'tenantId' in _fields(exc_info)

    def test_price_must_be_a_number(self):
        with pytest.raises(ValidationError) as exc_info:
            validate(product_create_schema, {'name': 'Mug', 'price': '12'})
        assert 'price' in _fields(exc_info)

        with pytest.raises(ValidationError):
            validate(product_create_schema, {'name': 'Mug', 'price': True})

    def test_integer_fields_are_strict(self):
        with pytest.raises(ValidationError) as exc_info:
            validate(product_create_schema, {'name': 'Mug', 'price': 1, 'categories': ['3']})
        assert 'categories.0' in _fields(exc_info)

    def test_price_upper_bound(self):
        with pytest.raises(ValidationError):
            validate(product_create_schema, {'name': 'Mug', 'price': 1000000})

    def test_update_is_partial_without_defaults(self):
        data = validate(product_update_schema, {'price': 5.0})
        assert data == {'price': 5.0}

    def test_errors_report_received_value(self):
        with pytest.raises(ValidationError) as exc_info:
            validate(product_create_schema, {'name': '', 'price': -1})
        by_field = {e['field']: e for e in exc_info.value.errors}
        assert by_field['price']['received'] == -1
        assert by_field['name']['received'] == ''


class TestQuerySchemas:

    def test_query_strings_coerce_and_split_tags(self):
        data = validate(product_query_schema, {
            'page': '2', 'limit': '5', 'inStock': 'true', 'tags': 'red, blue', 'sortBy': 'price',
        })
        assert data['page'] == 2
        assert data['limit'] == 5
        assert data['in_stock'] is True
        assert data['tags'] == ['red', 'blue']
        assert data['sort_order'] == 'desc'

    def test_limit_is_capped(self):
        with pytest.raises(ValidationError):
            validate(product_query_schema, {'limit': '500'})


class TestOrderAndCartSchemas:

    def _order(self, **overrides):
        body = {
            'items': [{'productId': 1, 'name': 'Mug', 'price': 10.0, 'quantity': 2, 'total': 20.0}],
            'subtotal': 20.0,
            'total': 20.0,
            'customer': dict(CUSTOMER),
            'shippingAddress': dict(ADDRESS),
            'billingAddress': dict(ADDRESS),
        }
        body.update(overrides)
        return body

    def test_order_number_is_optional_on_create(self):
        data = validate(order_create_schema, self._order())
        assert 'order_number' not in data
        assert data['items'][0]['product_id'] == 1
        assert data['shipping_address']['country'] == 'US'

    def test_order_needs_at_least_one_item(self):
        with pytest.raises(ValidationError) as exc_info:
            validate(order_create_schema, self._order(items=[]))
        assert 'items' in _fields(exc_info)

    def test_country_must_be_two_letters(self):
        address = {**ADDRESS, 'country': 'USA'}
        with pytest.raises(ValidationError) as exc_info:
            validate(order_create_schema, self._order(shippingAddress=address))
        assert 'shippingAddress.country' in _fields(exc_info)

    def test_cart_item_quantity_minimum(self):
        with pytest.raises(ValidationError):
            validate(cart_item_schema, {'productId': 1, 'quantity': 0})


class TestTenantSchemas:

    def test_onboarding_slug_format(self):
        with pytest.raises(ValidationError) as exc_info:
            validate(tenant_onboarding_schema, {
                'slug': 'Bad Slug!', 'name': 'Store', 'ownerEmail': 'o@x.test', 'ownerName': 'O',
            })
        assert 'slug' in _fields(exc_info)

    def test_settings_update_keeps_only_sent_groups(self):
        data = validate(store_settings_update_schema, {'theme': {'primaryColor': '#112233'}})
        assert data == {'theme': {'primary_color': '#112233'}}
        assert store_settings_update_schema.dump(data) == {'theme': {'primaryColor': '#112233'}}

    def test_settings_color_format(self):
        with pytest.raises(ValidationError):
            validate(store_settings_update_schema, {'theme': {'primaryColor': 'red'}})

    def test_domain_accepts_null(self):
        assert validate(domain_change_schema, {'domain': None}) == {'domain': None}
        with pytest.raises(ValidationError):
            validate(domain_change_schema, {'domain': 'not a domain'})

    def test_category_slug_is_optional(self):
        data = validate(category_create_schema, {'name': 'Kitchen'})
        assert 'slug' not in data
        assert data['sort_order'] == 0


class TestTenantUserSchema:

    def test_requires_email_or_phone(self):
        ok, errors = validate_safe(tenant_user_create_schema, {'name': 'Nobody'})
        assert ok is False
        assert errors[0]['field'] == 'email'

    def test_phone_only_is_enough(self):
        ok, data = validate_safe(tenant_user_create_schema, {'phone': '+15551234567'})
        assert ok is True
        assert data['is_guest'] is True


class TestFlattenErrors:

    def test_nested_list_paths(self):
        messages = {'items': {0: {'quantity': ['Quantity must be at least 1']}}}
        data = {'items': [{'quantity': 0}]}
        assert flatten_errors(messages, data) == [
            {'field': 'items.0.quantity', 'message': 'Quantity must be at least 1', 'received': 0},
        ]

    def test_schema_level_messages_use_parent_path(self):
        messages = {'_schema': ['Broken']}
        assert flatten_errors(messages, {}) == [{'field': '', 'message': 'Broken', 'received': {}}]
