# Overview: Pytest coverage for products, categories and stock movements through the admin API.

"""
Catalog Tests

Products:
- plan limit counts non-archived products only
- SKU unique per tenant, compare-at price above price, categories owned
- archive is a soft delete; quantity edits become ADJUSTMENT movements

Categories:
- slugs derived from names (with transliteration) and made unique per tenant
- parents must exist, the tree stays acyclic, only empty leaves are deleted

Inventory:
- manual IN / OUT / ADJUSTMENT / RETURN movements
- low-stock report severities and the summary block
"""

import pytest

from commerce.errors import BusinessRuleViolation
from commerce.extensions import db
from commerce.services import categories_service, inventory_service, products_service
from commerce.services.categories_service import slugify, unique_slug
from commerce.tenancy import tenant_transaction

PRODUCTS = '/api/admin/acme/products'
CATEGORIES = '/api/admin/acme/categories'


class TestProductApi:

    def test_create_with_defaults(self, client, tenant_a, owner_a_headers):
        resp = client.post(
            PRODUCTS,
            json={'name': 'Kettle', 'price': 40, 'inventory': {'trackQuantity': True, 'quantity': 4}},
            headers=owner_a_headers,
        )
        assert resp.status_code == 201
        product = resp.get_json()['data']
        assert product['status'] == 'draft'
        assert product['visibility'] == 'public'
        assert product['inventory'] == {
            'trackQuantity': True,
            'quantity': 4,
            'allowBackorder': False,
            'lowStockThreshold': 5,
        }
        assert product['tenantId'] == tenant_a.id

        movements = inventory_service.list_movements(tenant_a.id, product_id=product['id'])
        assert [(m['type'], m['quantityDelta']) for m in movements] == [('IN', 4)]

    def test_duplicate_sku(self, client, owner_a_headers, product_a):
        resp = client.post(PRODUCTS, json={'name': 'Copy', 'price': 5, 'sku': 'MUG-A'}, headers=owner_a_headers)
        assert resp.status_code == 400
        body = resp.get_json()
        assert body['code'] == 'DUPLICATE_SKU'
        assert body['details'] == {'sku': 'MUG-A', 'existingProductId': product_a.id}

    def test_same_sku_in_other_tenant_is_fine(self, client, owner_b_headers, product_a):
        resp = client.post(
            '/api/admin/beta/products',
            json={'name': 'Mug', 'price': 5, 'sku': 'MUG-A'},
            headers=owner_b_headers,
        )
        assert resp.status_code == 201

    def test_plan_limit(self, client, tenant_a, owner_a_headers, make_product):
        products = [make_product(tenant_a, name=f'Item {i}') for i in range(10)]

        resp = client.post(PRODUCTS, json={'name': 'Eleventh', 'price': 5}, headers=owner_a_headers)
        assert resp.status_code == 400
        body = resp.get_json()
        assert body['code'] == 'PRODUCT_LIMIT_EXCEEDED'
        assert body['details'] == {'current': 10, 'limit': 10, 'plan': 'free'}

        products_service.archive_product(tenant_a.id, products[0].id)
        resp = client.post(PRODUCTS, json={'name': 'Eleventh', 'price': 5}, headers=owner_a_headers)
        assert resp.status_code == 201

    def test_unknown_category(self, client, owner_a_headers):
        resp = client.post(PRODUCTS, json={'name': 'Mug', 'price': 5, 'categories': [999]}, headers=owner_a_headers)
        assert resp.status_code == 400
        assert resp.get_json()['code'] == 'INVALID_CATEGORY'

    def test_foreign_category_is_unknown(self, tenant_a, tenant_b):
        foreign = categories_service.create_category(tenant_b.id, {'name': 'Theirs'})
        with pytest.raises(BusinessRuleViolation) as exc_info:
            products_service.create_product(tenant_a.id, {'name': 'Mug', 'price': 5, 'categories': [foreign.id]})
        assert exc_info.value.code == 'INVALID_CATEGORY'

    def test_update_checks_compare_price_against_stored_price(self, client, owner_a_headers, product_a):
        resp = client.patch(f'{PRODUCTS}/{product_a.id}', json={'compareAtPrice': 10}, headers=owner_a_headers)
        assert resp.status_code == 400
        assert resp.get_json()['code'] == 'INVALID_COMPARE_PRICE'

        resp = client.patch(f'{PRODUCTS}/{product_a.id}', json={'compareAtPrice': 15}, headers=owner_a_headers)
        assert resp.status_code == 200
        assert resp.get_json()['data']['compareAtPrice'] == 15

    def test_update_is_partial(self, client, owner_a_headers, product_a):
        resp = client.patch(f'{PRODUCTS}/{product_a.id}', json={'name': 'Big Mug'}, headers=owner_a_headers)
        product = resp.get_json()['data']
        assert product['name'] == 'Big Mug'
        assert product['price'] == 12.5
        assert product['sku'] == 'MUG-A'
        assert product['status'] == 'active'

    def test_quantity_edit_is_recorded(self, client, tenant_a, owner_a_headers, product_a):
        resp = client.patch(
            f'{PRODUCTS}/{product_a.id}',
            json={'inventory': {'quantity': 25}},
            headers=owner_a_headers,
        )
        assert resp.get_json()['data']['inventory']['quantity'] == 25
        latest = inventory_service.list_movements(tenant_a.id, product_id=product_a.id)[0]
        assert (latest['type'], latest['quantityDelta'], latest['quantityAfter']) == ('ADJUSTMENT', 15, 25)

    def test_assign_categories(self, client, tenant_a, owner_a_headers, product_a):
        kitchen = categories_service.create_category(tenant_a.id, {'name': 'Kitchen'})
        resp = client.patch(f'{PRODUCTS}/{product_a.id}', json={'categories': [kitchen.id]}, headers=owner_a_headers)
        assert resp.get_json()['data']['categories'] == [kitchen.id]

        listing = client.get(f'{PRODUCTS}?categoryId={kitchen.id}', headers=owner_a_headers).get_json()['data']
        assert [p['id'] for p in listing['items']] == [product_a.id]

    def test_archive(self, client, owner_a_headers, product_a):
        resp = client.delete(f'{PRODUCTS}/{product_a.id}', headers=owner_a_headers)
        assert resp.status_code == 200
        assert resp.get_json()['data']['status'] == 'archived'

        listing = client.get(PRODUCTS, headers=owner_a_headers).get_json()['data']
        assert listing['items'] == []
        archived = client.get(f'{PRODUCTS}?status=archived', headers=owner_a_headers).get_json()['data']
        assert [p['id'] for p in archived['items']] == [product_a.id]


class TestProductFilters:

    @pytest.fixture
    def catalog(self, tenant_a, make_product):
        return {
            'mug': make_product(tenant_a, name='Mug', price=10.0, tags=['kitchen', 'gift'], is_featured=True),
            'pot': make_product(tenant_a, name='Pot', price=30.0, tags=['kitchen']),
            'gone': make_product(tenant_a, name='Sold Out Vase', price=50.0, inventory={'quantity': 0}),
        }

    def _ids(self, client, headers, query):
        resp = client.get(f'{PRODUCTS}?{query}', headers=headers)
        assert resp.status_code == 200, resp.get_json()
        return [p['id'] for p in resp.get_json()['data']['items']]

    def test_price_range_and_sort(self, client, owner_a_headers, catalog):
        ids = self._ids(client, owner_a_headers, 'priceMin=5&priceMax=40&sortBy=price&sortOrder=asc')
        assert ids == [catalog['mug'].id, catalog['pot'].id]

    def test_in_stock(self, client, owner_a_headers, catalog):
        assert self._ids(client, owner_a_headers, 'inStock=false') == [catalog['gone'].id]
        assert catalog['gone'].id not in self._ids(client, owner_a_headers, 'inStock=true')

    def test_tags_and_flags(self, client, owner_a_headers, catalog):
        assert self._ids(client, owner_a_headers, 'tags=gift') == [catalog['mug'].id]
        assert self._ids(client, owner_a_headers, 'isFeatured=true') == [catalog['mug'].id]
        kitchen = self._ids(client, owner_a_headers, 'tags=kitchen&sortBy=name&sortOrder=asc')
        assert kitchen == [catalog['mug'].id, catalog['pot'].id]

    def test_search_and_pagination(self, client, owner_a_headers, catalog):
        assert self._ids(client, owner_a_headers, 'search=vase') == [catalog['gone'].id]

        resp = client.get(f'{PRODUCTS}?limit=2&page=2', headers=owner_a_headers)
        page = resp.get_json()['data']
        assert page['count'] == 1
        assert page['pagination'] == {
            'page': 2, 'limit': 2, 'total': 3, 'totalPages': 2, 'hasNext': False, 'hasPrev': True,
        }


class TestSlugs:

    @pytest.mark.parametrize('name,expected', [
        ('Kitchen & Dining', 'kitchen-dining'),
        ('Café Crème', 'cafe-creme'),
        ('  Spaced   Out  ', 'spaced-out'),
        ('قهوة', 'qhwh'),
        ('!!!', 'category'),
        ('', 'category'),
    ])
    def test_slugify(self, name, expected):
        assert slugify(name) == expected

    def test_unique_slug_appends_counter(self, tenant_a):
        categories_service.create_category(tenant_a.id, {'name': 'Kitchen'})
        second = categories_service.create_category(tenant_a.id, {'name': 'Kitchen'})
        assert second.slug == 'kitchen-1'

        with tenant_transaction(tenant_a.id) as session:
            assert unique_slug(session, tenant_a.id, 'Kitchen') == 'kitchen-2'
            assert unique_slug(session, tenant_a.id, 'Kitchen', current_id=second.id) == 'kitchen-1'

    def test_slugs_are_per_tenant(self, tenant_a, tenant_b):
        categories_service.create_category(tenant_a.id, {'name': 'Kitchen'})
        assert categories_service.create_category(tenant_b.id, {'name': 'Kitchen'}).slug == 'kitchen'

    def test_long_names_keep_slug_within_column(self, tenant_a):
        name = 'a' * 100
        first = categories_service.create_category(tenant_a.id, {'name': name})
        second = categories_service.create_category(tenant_a.id, {'name': name})
        assert first.slug == name
        assert second.slug == 'a' * 98 + '-1'

        with tenant_transaction(tenant_a.id) as session:
            third = unique_slug(session, tenant_a.id, name)
        assert third == 'a' * 98 + '-2'
        assert len(third) <= 100


class TestCategoryApi:

    def _create(self, client, headers, **body):
        return client.post(CATEGORIES, json=body, headers=headers)

    def test_create_and_list(self, client, owner_a_headers):
        resp = self._create(client, owner_a_headers, name='Kitchen', sortOrder=2)
        assert resp.status_code == 201
        assert resp.get_json()['data']['slug'] == 'kitchen'
        self._create(client, owner_a_headers, name='Bath', sortOrder=1)

        names = [c['name'] for c in client.get(CATEGORIES, headers=owner_a_headers).get_json()['data']]
        assert names == ['Bath', 'Kitchen']

    def test_explicit_duplicate_slug(self, client, owner_a_headers):
        self._create(client, owner_a_headers, name='Kitchen')
        resp = self._create(client, owner_a_headers, name='Cookware', slug='kitchen')
        assert resp.status_code == 400
        assert resp.get_json()['code'] == 'DUPLICATE_SLUG'

    def test_cycle_is_rejected(self, client, owner_a_headers):
        parent = self._create(client, owner_a_headers, name='Home').get_json()['data']
        child = self._create(client, owner_a_headers, name='Kitchen', parentId=parent['id']).get_json()['data']

        resp = client.patch(f"{CATEGORIES}/{parent['id']}", json={'parentId': child['id']}, headers=owner_a_headers)
        assert resp.status_code == 400
        assert resp.get_json()['code'] == 'CIRCULAR_REFERENCE'

        resp = client.patch(f"{CATEGORIES}/{parent['id']}", json={'parentId': parent['id']}, headers=owner_a_headers)
        assert resp.get_json()['code'] == 'CIRCULAR_REFERENCE'

    def test_missing_parent(self, tenant_a):
        with pytest.raises(BusinessRuleViolation) as exc_info:
            categories_service.create_category(tenant_a.id, {'name': 'Orphan', 'parent_id': 999})
        assert exc_info.value.code == 'PARENT_CATEGORY_NOT_FOUND'

    def test_delete_guards(self, client, tenant_a, owner_a_headers, make_product):
        parent = self._create(client, owner_a_headers, name='Home').get_json()['data']
        child = self._create(client, owner_a_headers, name='Kitchen', parentId=parent['id']).get_json()['data']
        make_product(tenant_a, name='Pan', categories=[child['id']])

        resp = client.delete(f"{CATEGORIES}/{parent['id']}", headers=owner_a_headers)
        assert resp.status_code == 400
        assert resp.get_json()['code'] == 'HAS_CHILD_CATEGORIES'

        resp = client.delete(f"{CATEGORIES}/{child['id']}", headers=owner_a_headers)
        assert resp.status_code == 400
        assert resp.get_json()['code'] == 'HAS_PRODUCTS'

    def test_delete_leaf(self, client, owner_a_headers):
        leaf = self._create(client, owner_a_headers, name='Leaf').get_json()['data']
        resp = client.delete(f"{CATEGORIES}/{leaf['id']}", headers=owner_a_headers)
        assert resp.get_json()['data'] == {'id': leaf['id'], 'deleted': True}
        assert client.get(f"{CATEGORIES}/{leaf['id']}", headers=owner_a_headers).status_code == 404

    def test_storefront_lists_active_only(self, client, owner_a_headers):
        self._create(client, owner_a_headers, name='Open')
        self._create(client, owner_a_headers, name='Closed', status='inactive')
        names = [c['name'] for c in client.get('/api/storefront/acme/categories').get_json()['data']]
        assert names == ['Open']


class TestInventory:

    def _adjust(self, client, headers, product, **body):
        body.setdefault('reason', 'Manual')
        return client.post(f'/api/admin/acme/inventory/products/{product.id}/adjust', json=body, headers=headers)

    def test_receive_stock(self, client, owner_a_headers, product_a):
        resp = self._adjust(client, owner_a_headers, product_a, type='IN', quantity=5, reference='PO-7')
        assert resp.status_code == 201
        data = resp.get_json()['data']
        assert data['product']['inventory']['quantity'] == 15
        assert data['movement']['quantityDelta'] == 5
        assert data['movement']['reference'] == 'PO-7'
        assert data['movement']['createdBy'] == owner_a_headers['X-User-Id']

    def test_stock_count_sets_absolute_quantity(self, client, owner_a_headers, product_a):
        data = self._adjust(client, owner_a_headers, product_a, type='ADJUSTMENT', quantity=2).get_json()['data']
        assert data['movement']['quantityDelta'] == -8
        assert data['product']['inventory']['quantity'] == 2

    def test_cannot_go_negative(self, client, owner_a_headers, product_a):
        resp = self._adjust(client, owner_a_headers, product_a, type='OUT', quantity=11)
        assert resp.status_code == 400
        assert resp.get_json()['code'] == 'INSUFFICIENT_INVENTORY'

    def test_backorder_allows_negative(self, tenant_a, make_product):
        product = make_product(tenant_a, name='Preorder', inventory={'quantity': 1, 'allow_backorder': True})
        result = inventory_service.adjust_stock(tenant_a.id, product.id, {'type': 'OUT', 'quantity': 3, 'reason': 'x'})
        assert result['product']['inventory']['quantity'] == -2

    def test_foreign_product(self, client, owner_a_headers, product_b):
        resp = self._adjust(client, owner_a_headers, product_b, type='IN', quantity=1)
        assert resp.status_code == 404

    def test_low_stock_report(self, client, tenant_a, owner_a_headers, make_product, product_a):
        medium = make_product(tenant_a, name='Medium', inventory={'quantity': 2})
        critical = make_product(tenant_a, name='Empty', inventory={'quantity': 0})
        high = make_product(tenant_a, name='High', inventory={'quantity': 1})
        make_product(tenant_a, name='Untracked', inventory={'track_quantity': False, 'quantity': 0})

        alerts = client.get('/api/admin/acme/inventory/low-stock', headers=owner_a_headers).get_json()['data']
        assert [(a['productId'], a['severity']) for a in alerts] == [
            (critical.id, 'CRITICAL'),
            (high.id, 'HIGH'),
            (medium.id, 'MEDIUM'),
        ]
        assert alerts[0]['alertType'] == 'OUT_OF_STOCK'

    def test_summary(self, client, tenant_a, owner_a_headers, make_product, product_a):
        make_product(tenant_a, name='Empty', price=99.0, inventory={'quantity': 0})
        make_product(tenant_a, name='Low', price=2.0, inventory={'quantity': 1})

        summary = client.get('/api/admin/acme/inventory/summary', headers=owner_a_headers).get_json()['data']
        assert summary == {
            'totalProducts': 3,
            'lowStockProducts': 1,
            'outOfStockProducts': 1,
            'totalValue': 127.0,
            'recentMovements': 2,
        }

    def test_movement_history_is_newest_first(self, tenant_a, product_a):
        inventory_service.adjust_stock(tenant_a.id, product_a.id, {'type': 'OUT', 'quantity': 1, 'reason': 'Broken'})
        inventory_service.adjust_stock(tenant_a.id, product_a.id, {'type': 'RETURN', 'quantity': 1, 'reason': 'Back'})
        history = inventory_service.list_movements(tenant_a.id, product_id=product_a.id)
        assert [m['type'] for m in history] == ['RETURN', 'OUT', 'IN']
        db.session.expire_all()
        assert products_service.get_product(tenant_a.id, product_a.id).quantity == 10
