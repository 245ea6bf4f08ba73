"""Static site server used for local runs."""
import httpx
import pytest
from werkzeug.test import Client

from ui_harness.site_server import StaticSiteServer, create_static_app


@pytest.fixture
def site(tmp_path):
    (tmp_path / "index.html").write_text("<h1 data-testid='greeting'>Welcome, user!</h1>", encoding="utf-8")
    (tmp_path / "style.css").write_text("body { color: black; }", encoding="utf-8")
    return tmp_path


def test_root_serves_index(site):
    client = Client(create_static_app(site))

    response = client.get("/")

    assert response.status_code == 200
    assert b"Welcome, user!" in response.data
    assert response.mimetype == "text/html"


def test_assets_and_missing_files(site):
    client = Client(create_static_app(site))

    assert client.get("/style.css").mimetype == "text/css"
    assert client.get("/missing.html").status_code == 404
    assert client.get("/../secret.txt").status_code == 404


def test_server_runs_on_free_port(site):
    with StaticSiteServer(site) as server:
        assert server.port != 0
        response = httpx.get(server.url)

    assert response.status_code == 200
    assert "Welcome, user!" in response.text
    assert server.server is None


def test_directory_without_index_is_rejected(tmp_path):
    with pytest.raises(FileNotFoundError):
        StaticSiteServer(tmp_path).start()


def test_bundled_site_has_suite_fixtures():
    from pathlib import Path

    index = Path(__file__).resolve().parents[1] / "ui_tests" / "site" / "index.html"
    html = index.read_text(encoding="utf-8")

    for marker in ("login-form", "confirmBtn", "promptBtn", "hover-me", "delayed-content", "hidden-msg", "data-testid"):
        assert marker in html
