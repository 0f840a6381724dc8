def test_root_and_health(client):
    assert client.get("/").json()["success"] is True
    assert client.get("/health").json() == {"ok": True}


def test_health_supabase_reports_tables_and_rate_limit(client):
    body = client.get("/health/supabase").json()
    assert set(body["tables"]) == {"parcels", "payments", "users"}
    assert body["connect_ok"] is True
    assert body["rate_limit"]["enabled"] is False


def test_unknown_route_uses_envelope(client):
    r = client.get("/nope/nope/nope")
    assert r.status_code == 404
    assert r.json() == {"success": False, "message": "Not Found"}


def test_security_headers(client):
    r = client.get("/health")
    assert r.headers["X-Frame-Options"] == "DENY"
    assert r.headers["X-Content-Type-Options"] == "nosniff"


def test_hsts_header_follows_enable_hsts(client, monkeypatch):
    # désactivé par défaut, ajouté seulement quand ENABLE_HSTS est vrai
    assert "Strict-Transport-Security" not in client.get("/health").headers
    monkeypatch.setattr("unishift.app_setup.middlewares.ENABLE_HSTS", True)
    r = client.get("/health")
    assert r.headers["Strict-Transport-Security"].startswith("max-age=")
