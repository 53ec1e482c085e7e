"""
HTTP-level tests: routing, request validation and error translation.
"""
from conftest import make_listing, make_product, make_shop, make_update, ts


class TestHealth:

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestCatalogApi:

    def test_register_owner_open_shop_and_list(self, client):
        owner = client.post("/api/users", json={
            "phone_number": "9876543210", "name": "Asha", "user_type": "shop_owner",
        })
        assert owner.status_code == 201
        owner_id = owner.json()["id"]

        shop = client.post("/api/shops", json={
            "owner_id": owner_id, "shop_name": "Asha Traders", "category": "mixed", "city": "Pune",
        })
        assert shop.status_code == 201
        shop_id = shop.json()["id"]

        product = client.post("/api/products", json={"name": "Tomato", "category": "vegetables", "unit": "kg"})
        assert product.status_code == 201
        product_id = product.json()["id"]

        listing = client.post("/api/shop-products", json={
            "shop_id": shop_id, "product_id": product_id, "price": 42.5,
        })
        assert listing.status_code == 201
        assert listing.json()["current_price"] == 42.5

        summary = client.get("/api/prices/summary").json()
        assert summary[0]["min_price"] == 42.5
        assert summary[0]["best_shop"]["id"] == shop_id

        listings = client.get(f"/api/owners/{owner_id}/listings").json()
        assert listings[0]["product_name"] == "Tomato"

    def test_not_found_is_404(self, client):
        response = client.get("/api/products/product_missing")
        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "NotFoundError"
        assert "product_missing" in body["message"]

    def test_duplicate_product_is_422(self, client):
        client.post("/api/products", json={"name": "Tomato", "category": "vegetables", "unit": "kg"})
        response = client.post("/api/products", json={"name": "TOMATO", "category": "vegetables", "unit": "kg"})
        assert response.status_code == 422
        assert response.json()["details"]["field"] == "name"

    def test_delete_listing(self, client, market):
        listing = market["listings"][(market["shops"][0].id, market["apple"].id)]
        assert client.delete(f"/api/shop-products/{listing.id}").status_code == 204
        assert client.delete(f"/api/shop-products/{listing.id}").status_code == 404

    def test_dangling_reference_is_500(self, client, store):
        make_product(store, "product_a")
        make_listing(store, "sp_1", "shop_gone", "product_a", price=10)

        response = client.get("/api/prices/summary")
        assert response.status_code == 500
        assert response.json()["error"] == "ReferentialIntegrityError"


class TestPricesApi:

    def test_compare(self, client, market):
        tomato = market["tomato"].id
        shop_ids = [shop.id for shop in market["shops"]]
        response = client.get("/api/prices/compare", params={"product_ids": [tomato], "shop_ids": shop_ids})

        assert response.status_code == 200
        best = [cell for cell in response.json()["cells"] if cell["is_best_price"]]
        assert [cell["shop_id"] for cell in best] == [shop_ids[0]]

    def test_submit_update_and_pay(self, client, market):
        listing = market["listings"][(market["shops"][1].id, market["onion"].id)]
        response = client.post("/api/prices/updates", json={
            "shop_product_id": listing.id, "price": 35,
            "updated_by_type": "staff", "updated_by_id": "staff_1",
        })
        assert response.status_code == 201
        update_id = response.json()["id"]

        paid = client.patch(f"/api/prices/updates/{update_id}/payment", json={"payment_status": "paid"})
        assert paid.json()["payment_status"] == "paid"

        history = client.get(f"/api/prices/listings/{listing.id}/history").json()
        assert [u["price"] for u in history] == [35]

    def test_history_accepts_naive_bounds(self, client, store):
        make_product(store, "product_a", name="Tomato")
        make_shop(store, "shop_a", name="Asha")
        make_listing(store, "sp_1", "shop_a", "product_a", price=90)
        make_update(store, "pu_1", "sp_1", 100, days_ago=20)
        make_update(store, "pu_2", "sp_1", 90, days_ago=5)

        start = ts(10).replace(tzinfo=None).isoformat()
        response = client.get("/api/prices/history/products/product_a", params={"start": start})
        assert response.status_code == 200
        assert [e["update_id"] for e in response.json()] == ["pu_2"]

        response = client.get("/api/prices/history/products/product_a", params={"end": "2000-01-01T00:00:00"})
        assert response.status_code == 200
        assert response.json() == []

    def test_rejects_non_positive_price(self, client, market):
        listing = market["listings"][(market["shops"][1].id, market["onion"].id)]
        response = client.post("/api/prices/updates", json={
            "shop_product_id": listing.id, "price": 0,
            "updated_by_type": "staff", "updated_by_id": "staff_1",
        })
        assert response.status_code == 422


class TestInsightsApi:

    def test_best_deals(self, client, market):
        deals = client.get("/api/insights/best-deals").json()
        assert deals[0]["product"]["name"] == "Tomato"
        assert deals[0]["deal_score"] == 220

    def test_popular_shops_limit(self, client, market):
        response = client.get("/api/insights/popular-shops", params={"limit": 1})
        assert len(response.json()) == 1

    def test_purchase_views(self, client):
        body = {"purchases": [
            {"product_id": "p1", "category": "fruits", "amount": 30, "purchased_at": "2024-06-01T10:00:00Z"},
            {"product_id": "p2", "category": "vegetables", "amount": 10, "purchased_at": "2024-06-02T10:00:00Z"},
        ]}
        distribution = client.post("/api/insights/category-distribution", json=body).json()
        assert distribution == {"fruits": 50.0, "vegetables": 50.0}

        patterns = client.post("/api/insights/purchasing-patterns", json=body).json()
        assert [p["category"] for p in patterns] == ["fruits", "vegetables"]

    def test_recommendations_without_body(self, client, market):
        response = client.post(f"/api/insights/recommendations/{market['buyer'].id}")
        assert response.status_code == 200
        assert response.json()[0]["title"] == "Visit Asha Traders"


class TestAccountsApi:

    def test_subscription_flow(self, client, market):
        buyer_id = market["buyer"].id
        created = client.post("/api/subscriptions", json={"user_id": buyer_id})
        assert created.status_code == 201

        status = client.get(f"/api/users/{buyer_id}/subscription").json()
        assert status["id"] == created.json()["id"]

        cancelled = client.post(f"/api/subscriptions/{status['id']}/cancel").json()
        assert cancelled["status"] == "cancelled"
        assert client.get(f"/api/users/{buyer_id}/subscription").json() is None

    def test_user_by_phone(self, client, market):
        response = client.get("/api/users/by-phone/9123456789")
        assert response.json()["id"] == market["buyer"].id
        assert client.get("/api/users/by-phone/9000000000").status_code == 404


class TestFavoritesAndNotificationsApi:

    def test_toggle_favorite(self, client, market):
        body = {"user_id": market["buyer"].id, "type": "product", "item_id": market["apple"].id}
        assert client.post("/api/favorites/toggle", json=body).json() == {"is_favorite": True}

        products = client.get(f"/api/favorites/{market['buyer'].id}/products").json()
        assert [p["name"] for p in products] == ["Apple"]

        assert client.post("/api/favorites/toggle", json=body).json() == {"is_favorite": False}

    def test_notifications(self, client):
        created = client.post("/api/notifications", json={"user_id": "u1", "type": "system", "title": "Hello"})
        assert created.status_code == 201

        assert client.get("/api/notifications/users/u1/unread-count").json() == {"count": 1}
        client.post(f"/api/notifications/{created.json()['id']}/read")
        assert client.get("/api/notifications/users/u1/unread-count").json() == {"count": 0}


class TestMigrationApi:

    def test_export_import_round_trip(self, client, market):
        exported = client.get("/api/migration/export").json()
        assert exported["metadata"]["totalProducts"] == 3

        counts = client.post(
            "/api/migration/import", params={"clear_before_import": True}, json=exported
        ).json()
        assert counts["products"] == 3
        assert counts["priceUpdates"] == 4

    def test_bad_import_is_400(self, client):
        response = client.post("/api/migration/import", json={"version": "1.0.0"})
        assert response.status_code == 400
        assert response.json()["error"] == "ImportFormatError"

    def test_sql_and_integrity(self, client, market):
        sql = client.get("/api/migration/export/sql")
        assert sql.headers["content-type"].startswith("text/plain")
        assert "INSERT INTO shops" in sql.text

        assert client.get("/api/migration/integrity").json() == {"ok": True, "notes": []}

    def test_sql_dialect_option(self, client, market):
        sqlite_sql = client.get("/api/migration/export/sql", params={"dialect": "sqlite"})
        assert "INSERT INTO products" in sqlite_sql.text

        response = client.get("/api/migration/export/sql", params={"dialect": "oracle"})
        assert response.status_code == 422
        assert response.json()["details"]["field"] == "dialect"
