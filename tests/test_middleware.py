import pytest

from app.core.auth import ADMIN_TOKEN_COOKIE, USER_TOKEN_COOKIE, create_admin_token
from app.core.config import settings
from app.core.middleware import redirect_target
from tests.conftest import make_user_token


@pytest.mark.parametrize(
    "path, has_user, has_admin, expected",
    [
        ("/", False, False, None),
        ("/dashboard", False, False, "/login?redirect=%2Fdashboard"),
        ("/my-audits/42", False, False, "/login?redirect=%2Fmy-audits%2F42"),
        ("/dashboard", True, False, None),
        ("/login", True, False, "/dashboard"),
        ("/signup", True, False, "/dashboard"),
        ("/login", False, False, None),
        ("/admin", False, False, "/admin/login"),
        ("/admin/audits", False, False, "/admin/login"),
        ("/admin/audits", False, True, None),
        ("/admin/login", False, False, None),
        ("/admin/login", False, True, "/admin"),
        ("/administrator", False, False, None),
    ],
)
def test_redirect_target(path, has_user, has_admin, expected):
    assert redirect_target(path, has_user, has_admin) == expected


def test_coming_soon_mode():
    assert redirect_target("/", False, False, coming_soon=True) == "/coming-soon"
    assert redirect_target("/pricing", True, False, coming_soon=True) == "/coming-soon"
    assert redirect_target("/coming-soon", False, False, coming_soon=True) is None
    assert redirect_target("/_next/static/app.js", False, False, coming_soon=True) is None
    assert redirect_target("/admin/audits", False, True, coming_soon=True) is None


async def test_protected_page_redirects_to_login(client):
    response = await client.get("/dashboard")
    assert response.status_code == 307
    assert response.headers["location"] == "/login?redirect=%2Fdashboard"


async def test_signed_in_visitor_is_sent_to_dashboard(client):
    token = make_user_token("00000000-0000-0000-0000-000000000009")
    response = await client.get("/login", headers={"Cookie": f"{USER_TOKEN_COOKIE}={token}"})
    assert response.status_code == 307
    assert response.headers["location"] == "/dashboard"


async def test_admin_cookie_opens_admin_pages(client):
    token, _ = create_admin_token(settings.ADMIN_EMAIL)
    response = await client.get("/admin/login", headers={"Cookie": f"{ADMIN_TOKEN_COOKIE}={token}"})
    assert response.status_code == 307
    assert response.headers["location"] == "/admin"


async def test_api_routes_are_not_redirected(client, monkeypatch):
    monkeypatch.setattr(settings, "COMING_SOON_MODE", True)
    response = await client.get("/api/health")
    assert response.status_code == 200
