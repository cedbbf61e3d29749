from fastapi.testclient import TestClient


REQUIRED_ROUTES = {
    "/api/auth/register",
    "/api/auth/login",
    "/api/users/profile",
    "/api/shops",
    "/api/shops/{shop_id}/approve",
    "/api/shops/{shop_id}/toggle-status",
    "/api/menu-items/shop/{shop_id}",
    "/api/menu-items/{item_id}/options",
    "/api/orders",
    "/api/orders/{order_id}/status",
    "/api/orders/status/{status}",
    "/api/orders/shop/{shop_id}/revenue",
    "/api/notifications",
    "/internal/metrics",
}


def test_api_startup_and_router_registration(monkeypatch):
    from app import main

    monkeypatch.setattr(main, "_startup_tasks", lambda: None)

    with TestClient(main.app) as client:
        response = client.get("/")
        docs_response = client.get("/docs")
        openapi_response = client.get("/openapi.json")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert docs_response.status_code == 200
    assert openapi_response.status_code == 200

    paths = {route.path for route in main.app.routes}
    assert REQUIRED_ROUTES.issubset(paths)
