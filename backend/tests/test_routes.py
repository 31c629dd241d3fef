# Overview: Pytest coverage for the JSON API: status codes and response shapes.

from cubepos.extensions import db
from cubepos.models import ProductVariant, Sale

from conftest import make_cube, make_rental, make_variant


def _checkout_payload(tenant_id, variant_id, *, quantity=1, paid=500, key="route-key-0001"):
    return {
        "idempotency_key": key,
        "tenant_id": tenant_id,
        "items": [{"variant_id": variant_id, "quantity": quantity, "unit_price_cents": 500}],
        "payments": [{"method": "CASH", "amount_cents": paid}],
    }


class TestPosRoutes:
    def test_checkout_then_replay(self, client, db_session, tenant_a):
        variant_id = make_variant(db_session, tenant_a, stock=3).id
        payload = _checkout_payload(tenant_a.id, variant_id, quantity=2, paid=1000)

        first = client.post("/api/pos/checkout", json=payload)
        second = client.post("/api/pos/checkout", json=payload)

        assert first.status_code == 201
        assert second.status_code == 200
        assert first.get_json()["sale"]["id"] == second.get_json()["sale"]["id"]
        assert first.get_json()["sale"]["total_cents"] == 1000
        assert db.session.get(ProductVariant, variant_id).stock == 1
        assert db_session.query(Sale).count() == 1

    def test_bad_payload_is_400(self, client, db_session, tenant_a):
        response = client.post("/api/pos/checkout", json={"idempotency_key": "route-key-0001"})
        assert response.status_code == 400
        assert "items" in response.get_json()["error"]

    def test_wrongly_typed_fields_are_400(self, client, db_session, tenant_a):
        variant_id = make_variant(db_session, tenant_a).id

        bad_method = _checkout_payload(tenant_a.id, variant_id)
        bad_method["payments"][0]["method"] = 5
        bad_currency = dict(_checkout_payload(tenant_a.id, variant_id), currency=840)
        huge_basket = _checkout_payload(tenant_a.id, variant_id, paid=10**19)
        huge_basket["items"][0].update(quantity=10**19, unit_price_cents=1)

        for payload in (bad_method, bad_currency, huge_basket):
            response = client.post("/api/pos/checkout", json=payload)
            assert response.status_code == 400
        assert db.session.get(ProductVariant, variant_id).stock == 10

    def test_payment_mismatch_is_400(self, client, db_session, tenant_a):
        variant_id = make_variant(db_session, tenant_a).id
        response = client.post("/api/pos/checkout", json=_checkout_payload(tenant_a.id, variant_id, paid=400))
        assert response.status_code == 400
        assert response.get_json()["details"] == {"total_cents": 500, "paid_cents": 400}

    def test_insufficient_stock_is_409(self, client, db_session, tenant_a):
        variant_id = make_variant(db_session, tenant_a, stock=1).id
        response = client.post(
            "/api/pos/checkout",
            json=_checkout_payload(tenant_a.id, variant_id, quantity=2, paid=1000),
        )
        assert response.status_code == 409
        details = response.get_json()["details"]
        assert details["variant_id"] == variant_id
        assert details["available"] == 1
        assert db.session.get(ProductVariant, variant_id).stock == 1

    def test_unknown_variant_is_404(self, client, db_session, tenant_a):
        response = client.post("/api/pos/checkout", json=_checkout_payload(tenant_a.id, 987654))
        assert response.status_code == 404

    def test_get_sale(self, client, db_session, tenant_a):
        variant_id = make_variant(db_session, tenant_a).id
        sale_id = client.post(
            "/api/pos/checkout", json=_checkout_payload(tenant_a.id, variant_id)
        ).get_json()["sale"]["id"]

        found = client.get(f"/api/pos/sales/{sale_id}")
        missing = client.get("/api/pos/sales/424242")

        assert found.status_code == 200
        assert found.get_json()["sale"]["items"][0]["product_name"] == "Tote Bag"
        assert missing.status_code == 404


class TestBillingRoutes:
    def test_allocate_rental(self, client, db_session, tenant_a):
        cube_id = make_cube(db_session).id
        body = {
            "tenant_id": tenant_a.id,
            "cube_id": cube_id,
            "start_date": "2024-01-01T00:00:00Z",
            "end_date": "2024-03-01T00:00:00Z",
        }

        created = client.post("/api/billing/rentals", json=body)
        again = client.post("/api/billing/rentals", json=body)

        assert created.status_code == 201
        rental = created.get_json()["rental"]
        assert rental["status"] == "ACTIVE"
        assert rental["daily_rate"] == "10.00"
        assert rental["start_date"] == "2024-01-01T00:00:00Z"
        assert again.status_code == 409

    def test_allocate_rejects_bad_dates(self, client, db_session, tenant_a):
        cube_id = make_cube(db_session).id
        response = client.post("/api/billing/rentals", json={
            "tenant_id": tenant_a.id,
            "cube_id": cube_id,
            "start_date": "2024-03-01",
            "end_date": "2024-01-01",
        })
        assert response.status_code == 400

    def test_record_and_list_payments(self, client, db_session, tenant_a):
        rental_id = make_rental(db_session, tenant_a, make_cube(db_session)).id

        posted = client.post(
            f"/api/billing/rentals/{rental_id}/payments",
            json={"amount": "100.00", "method": "cash"},
        )
        listed = client.get(f"/api/billing/rentals/{rental_id}/payments")

        assert posted.status_code == 201
        assert posted.get_json()["payment"]["amount"] == "100.00"
        assert posted.get_json()["summary"]["balance_due"] == "40.00"
        assert listed.status_code == 200
        body = listed.get_json()
        assert [p["method"] for p in body["payments"]] == ["CASH"]
        assert body["summary"]["overdue"] is True

    def test_payment_errors(self, client, db_session, tenant_a):
        rental_id = make_rental(db_session, tenant_a, make_cube(db_session)).id

        bad_amount = client.post(f"/api/billing/rentals/{rental_id}/payments", json={"amount": 0, "method": "CASH"})
        unknown = client.post("/api/billing/rentals/5555/payments", json={"amount": 10, "method": "CASH"})
        unknown_list = client.get("/api/billing/rentals/5555/payments")

        assert bad_amount.status_code == 400
        assert unknown.status_code == 404
        assert unknown_list.status_code == 404

    def test_overdue_list(self, client, db_session, tenant_a):
        make_rental(db_session, tenant_a, make_cube(db_session))

        response = client.get("/api/billing/rentals/overdue")

        assert response.status_code == 200
        body = response.get_json()
        assert body["count"] == 1
        assert body["rentals"][0]["cube_code"] == "C-01"
        assert body["rentals"][0]["summary"]["balance_due"] == "140.00"

    def test_run_reminders(self, client, db_session, tenant_a, notifier):
        make_rental(db_session, tenant_a, make_cube(db_session))

        response = client.post("/api/billing/reminders/run")

        assert response.status_code == 200
        stats = response.get_json()
        assert (stats["processed"], stats["sent"], stats["errors"]) == (1, 1, 0)
        assert [email.to for email in notifier.sent] == ["owner@acme.test"]


class TestInventoryRoutes:
    def test_update_variant(self, client, db_session, tenant_a):
        variant_id = make_variant(db_session, tenant_a, stock=10).id

        response = client.put(f"/api/inventory/variants/{variant_id}", json={
            "tenant_id": tenant_a.id,
            "actor_user_id": tenant_a.user_id,
            "price": "6.25",
            "stock": 12,
        })

        assert response.status_code == 200
        variant = response.get_json()["variant"]
        assert (variant["price"], variant["stock"]) == ("6.25", 12)

    def test_update_errors(self, client, db_session, tenant_a, tenant_b):
        variant_id = make_variant(db_session, tenant_b).id
        body = {"tenant_id": tenant_a.id, "actor_user_id": tenant_a.user_id, "stock": 3}

        foreign = client.put(f"/api/inventory/variants/{variant_id}", json=body)
        empty = client.put(f"/api/inventory/variants/{variant_id}", json={"tenant_id": tenant_b.id})

        assert foreign.status_code == 404
        assert empty.status_code == 400

    def test_logs(self, client, db_session, tenant_a):
        variant = make_variant(db_session, tenant_a, stock=10)
        variant_id, product_id = variant.id, variant.product_id
        client.put(f"/api/inventory/variants/{variant_id}", json={
            "tenant_id": tenant_a.id,
            "actor_user_id": tenant_a.user_id,
            "stock": 4,
        })

        listed = client.get(f"/api/inventory/products/{product_id}/logs?tenant_id={tenant_a.id}")
        missing_tenant = client.get(f"/api/inventory/products/{product_id}/logs")

        assert listed.status_code == 200
        [log] = listed.get_json()["logs"]
        assert (log["change_type"], log["previous_value"], log["new_value"]) == (
            "VARIANT_STOCK_UPDATE", "10", "4"
        )
        assert missing_tenant.status_code == 400

    def test_barcode_lookup(self, client, db_session, tenant_a):
        variant_id = make_variant(db_session, tenant_a, barcode="9300000000017").id

        found = client.get("/api/inventory/variants/lookup?barcode=9300000000017")
        blank = client.get("/api/inventory/variants/lookup?barcode=")
        unknown = client.get("/api/inventory/variants/lookup?barcode=0000")

        assert found.status_code == 200
        body = found.get_json()
        assert body["variant"]["id"] == variant_id
        assert body["product"]["name"] == "Tote Bag"
        assert body["tenant"] == {"id": tenant_a.id, "business_name": "Acme Crafts"}
        assert blank.status_code == 400
        assert unknown.status_code == 404

    def test_product_approval(self, client, db_session, tenant_a):
        variant = make_variant(db_session, tenant_a)
        product_id = variant.product_id

        rejected = client.put(f"/api/inventory/products/{product_id}/approve",
                              json={"approve": False, "actor_user_id": tenant_a.user_id})
        bad = client.put(f"/api/inventory/products/{product_id}/approve",
                         json={"approve": "no", "actor_user_id": tenant_a.user_id})
        missing = client.put("/api/inventory/products/777/approve",
                             json={"approve": True, "actor_user_id": tenant_a.user_id})
        logs = client.get(f"/api/inventory/products/{product_id}/logs?tenant_id={tenant_a.id}")

        assert rejected.status_code == 200
        assert [v["approval_status"] for v in rejected.get_json()["variants"]] == ["REJECTED"]
        assert bad.status_code == 400
        assert missing.status_code == 404
        assert [log["change_type"] for log in logs.get_json()["logs"]] == ["APPROVAL"]
