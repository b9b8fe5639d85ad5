from conftest import ADMIN


def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json() == {"status": "ok"}


def test_login_validation_errors(client):
    res = client.post("/api/v1/auth/login", json={"email": "not-an-email", "password": "short"})
    assert res.status_code == 400
    body = res.json()
    assert "Invalid email address" in body["errors"]
    assert "Password must be at least 8 characters long" in body["errors"]
    assert body["message"] == body["errors"][0]


def test_missing_fields_are_reported(client):
    res = client.post("/api/v1/auth/sync-admin", json={"email": "admin@inventory.io"})
    assert res.status_code == 400
    assert "Full name is required" in res.json()["errors"]
    assert "Password is required" in res.json()["errors"]


def test_sync_admin_then_conflict(client):
    res = client.post("/api/v1/auth/sync-admin", json=ADMIN)
    assert res.status_code == 201
    assert res.json()["role"] == "admin"
    assert "password_hash" not in res.json()

    res = client.post("/api/v1/auth/sync-admin", json=ADMIN)
    assert res.status_code == 409
    assert res.json()["code"] == "ALREADY_EXISTS"


def test_login_and_refresh(client, admin):
    res = client.post("/api/v1/auth/login", json={"email": ADMIN["email"], "password": ADMIN["password"]})
    assert res.status_code == 200
    tokens = res.json()
    assert tokens["user"]["email"] == ADMIN["email"]

    res = client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert res.status_code == 200

    res = client.post("/api/v1/auth/logout", json={"refresh_token": tokens["refresh_token"]})
    assert res.json() == {"logged_out": True}

    res = client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert res.status_code == 401


def test_wrong_password_is_unauthorized(client, admin):
    res = client.post("/api/v1/auth/login", json={"email": ADMIN["email"], "password": "wrong-password"})
    assert res.status_code == 401
    assert res.json()["message"] == "Invalid credentials"


def test_protected_routes_need_token(client):
    assert client.get("/api/v1/products").status_code == 401
    res = client.get("/api/v1/products", headers={"Authorization": "Bearer garbage"})
    assert res.status_code == 401


def test_make_staff_is_admin_only(client, admin_headers):
    res = client.post("/api/v1/auth/make-staff", json={"email": "clerk@inventory.io"}, headers=admin_headers)
    assert res.status_code == 201
    password = res.json()["temporary_password"]

    res = client.post("/api/v1/auth/login", json={"email": "clerk@inventory.io", "password": password})
    staff_headers = {"Authorization": f"Bearer {res.json()['access_token']}"}
    res = client.post("/api/v1/auth/make-staff", json={"email": "other@inventory.io"}, headers=staff_headers)
    assert res.status_code == 403

    res = client.get("/api/v1/users", headers=admin_headers)
    assert res.json()["pagination"]["total_count"] == 2
    assert all("password_hash" not in u for u in res.json()["data"])


def test_reset_password(client, admin_headers):
    res = client.post(
        "/api/v1/auth/reset-password",
        json={"old_password": ADMIN["password"], "password": "brand-new-pass"},
        headers=admin_headers,
    )
    assert res.status_code == 200
    res = client.post("/api/v1/auth/login", json={"email": ADMIN["email"], "password": "brand-new-pass"})
    assert res.status_code == 200


def test_forgot_password_hides_token_outside_development(client, admin):
    res = client.post("/api/v1/auth/forgot-password", json={"email": ADMIN["email"]})
    assert res.status_code == 200
    assert "reset_token" not in res.json()


def _create_product(client, headers, **overrides):
    data = {"sku": "LAMP-1", "name": "Desk Lamp", "stock": 4, "price": 100, "discount": 10, "status": "active"}
    data.update(overrides)
    return client.post("/api/v1/products", json=data, headers=headers)


def test_product_crud_and_search(client, admin_headers):
    res = _create_product(client, admin_headers, supplier={"name": "Acme Lighting"})
    assert res.status_code == 201
    lamp = res.json()
    assert _create_product(client, admin_headers).status_code == 409
    assert _create_product(client, admin_headers, sku="X-1", discount=150).status_code == 400

    _create_product(client, admin_headers, sku="CHAIR-1", name="Office Chair", status="draft")

    res = client.get("/api/v1/products", params={"search": "lamp"}, headers=admin_headers)
    body = res.json()
    assert body["success"] is True
    assert [p["sku"] for p in body["data"]] == ["LAMP-1"]
    assert body["data"][0]["created_by"]["email"] == ADMIN["email"]

    res = client.get("/api/v1/products", params={"status": "draft", "limit": 500}, headers=admin_headers)
    assert res.json()["pagination"]["limit"] == 100
    assert [p["sku"] for p in res.json()["data"]] == ["CHAIR-1"]

    res = client.put(f"/api/v1/products/{lamp['_id']}", json={"price": 120}, headers=admin_headers)
    assert res.json()["price"] == 120

    assert client.delete(f"/api/v1/products/{lamp['_id']}", headers=admin_headers).json() == {"deleted": True}
    assert client.get(f"/api/v1/products/{lamp['_id']}", headers=admin_headers).status_code == 404


def test_order_total_is_computed(client, admin_headers):
    lamp = _create_product(client, admin_headers).json()
    chair = _create_product(client, admin_headers, sku="CHAIR-1", name="Chair", price=50, discount=0).json()
    res = client.post("/api/v1/orders", json={
        "customer_info": {"name": "Grace", "phone": "555-0100"},
        "items": [
            {"product_id": lamp["_id"], "quantity": 2},
            {"product_id": chair["_id"], "quantity": 1},
        ],
    }, headers=admin_headers)
    assert res.status_code == 201
    order = res.json()
    assert order["total_price"] == 230
    assert [i["price"] for i in order["items"]] == [90, 50]

    res = client.get("/api/v1/orders", params={"search": "grace"}, headers=admin_headers)
    assert res.json()["pagination"]["total_count"] == 1
    assert res.json()["data"][0]["user_id"]["email"] == ADMIN["email"]

    res = client.patch(f"/api/v1/orders/{order['_id']}/status", json={"status": "shipped"}, headers=admin_headers)
    assert res.json()["status"] == "shipped"
    res = client.patch(f"/api/v1/orders/{order['_id']}/status", json={"status": "lost"}, headers=admin_headers)
    assert res.status_code == 400


def test_order_needs_items(client, admin_headers):
    res = client.post("/api/v1/orders", json={"items": []}, headers=admin_headers)
    assert res.status_code == 400


def _login(client, password=ADMIN["password"]):
    res = client.post("/api/v1/auth/login", json={"email": ADMIN["email"], "password": password})
    tokens = res.json()
    return tokens, {"Authorization": f"Bearer {tokens['access_token']}"}


def test_logout_revokes_access_token(client, admin):
    tokens, headers = _login(client)
    assert client.get("/api/v1/products", headers=headers).status_code == 200
    client.post("/api/v1/auth/logout", json={"refresh_token": tokens["refresh_token"]})
    res = client.get("/api/v1/products", headers=headers)
    assert res.status_code == 401
    assert res.json()["message"] == "Session has ended"


def test_reset_password_revokes_access_token(client, admin):
    _, headers = _login(client)
    res = client.post(
        "/api/v1/auth/reset-password",
        json={"old_password": ADMIN["password"], "password": "brand-new-pass"},
        headers=headers,
    )
    assert res.status_code == 200
    assert client.get("/api/v1/products", headers=headers).status_code == 401


def test_refreshed_token_follows_its_session(client, admin):
    tokens, _ = _login(client)
    res = client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    headers = {"Authorization": f"Bearer {res.json()['access_token']}"}
    assert client.get("/api/v1/products", headers=headers).status_code == 200
    client.post("/api/v1/auth/logout", json={"refresh_token": tokens["refresh_token"]})
    assert client.get("/api/v1/products", headers=headers).status_code == 401


def test_reset_token_route(client, store, settings, admin):
    settings.app_env = "development"
    token = client.post("/api/v1/auth/forgot-password", json={"email": ADMIN["email"]}).json()["reset_token"]
    res = client.post("/api/v1/auth/reset-password/token", json={"token": token, "password": "via-token-pass"})
    assert res.status_code == 200
    _, headers = _login(client, "via-token-pass")
    assert client.get("/api/v1/products", headers=headers).status_code == 200

    res = client.post("/api/v1/auth/reset-password/token", json={"token": token, "password": "again-pass-1"})
    assert res.status_code == 401


def test_order_status_by_order_id(client, admin_headers):
    client.post("/api/v1/orders", json={"items": [{"product_id": "0123456789abcdef01234567", "quantity": 1}], "order_id": "ORD-42"}, headers=admin_headers)
    res = client.patch("/api/v1/orders/ORD-42/status", json={"status": "canceled"}, headers=admin_headers)
    assert res.status_code == 200
    assert res.json()["status"] == "canceled"
