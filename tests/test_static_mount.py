from fastapi.testclient import TestClient

from backend.app.main import app

client = TestClient(app)


def test_root_redirects_to_static():
    """Bare / should redirect to /static/."""
    resp = client.get("/", follow_redirects=False)
    assert resp.status_code in (301, 302, 303, 307, 308)
    loc = resp.headers.get("location", "")
    assert "/static/" in loc
