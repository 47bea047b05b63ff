# Tests for the HTTP routes.

import logging
import os

import pytest
from fastapi.testclient import TestClient

from file_browser.api.main import create_app
from file_browser.api.pages import human_size, render_listing
from file_browser.config import Settings
from file_browser.services import file_catalog
from file_browser.services.file_catalog import DirectoryUnreadableError, FileCatalog, ListingRequest


@pytest.fixture
def root(tmp_path):
    (tmp_path / "Readme.txt").write_text("hello")
    (tmp_path / "score.csv").write_text("1,2,3\n")
    (tmp_path / "docs").mkdir()
    (tmp_path / "docs" / "guide.md").write_text("# guide")
    return tmp_path


@pytest.fixture
def client(root):
    return TestClient(create_app(Settings(root_dir=root)))


@pytest.fixture
def locked(root, monkeypatch):
    target = root / "locked" / "inner"
    target.mkdir(parents=True)
    real_stat = os.stat

    def guarded_stat(path, *args, **kwargs):
        if isinstance(path, (str, os.PathLike)) and os.fspath(path) == os.fspath(target):
            raise PermissionError(13, "Permission denied", os.fspath(path))
        return real_stat(path, *args, **kwargs)

    monkeypatch.setattr(file_catalog.os, "stat", guarded_stat)
    return target


class TestBrowse:
    """Tests for GET /."""

    def test_root_listing(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        assert "text/html" in resp.headers["content-type"]
        assert ">docs/<" in resp.text
        assert ">Readme.txt<" in resp.text
        assert "Up one level" not in resp.text

    def test_directories_listed_first(self, client):
        text = client.get("/").text
        assert text.index(">docs/<") < text.index(">Readme.txt<") < text.index(">score.csv<")

    def test_nested_listing_with_breadcrumbs(self, client):
        resp = client.get("/", params={"path": "docs"})
        assert resp.status_code == 200
        assert ">guide.md<" in resp.text
        assert "href='/?path=docs'>docs</a>" in resp.text
        assert "Up one level" in resp.text

    def test_filter(self, client):
        resp = client.get("/", params={"q": "RE"})
        assert ">Readme.txt<" in resp.text
        assert ">score.csv<" in resp.text
        assert ">docs/<" not in resp.text

    def test_filter_without_matches(self, client):
        resp = client.get("/", params={"q": "zzz"})
        assert "No entries match the filter." in resp.text

    def test_sort_by_size_descending(self, client):
        text = client.get("/", params={"sort": "size", "order": "desc"}).text
        assert text.index(">docs/<") < text.index(">score.csv<") < text.index(">Readme.txt<")

    def test_unknown_sort_values_fall_back(self, client):
        resp = client.get("/", params={"sort": "colour", "order": "up"})
        assert resp.status_code == 200
        assert "name='sort' value='name'" in resp.text
        assert "name='order' value='asc'" in resp.text

    @pytest.mark.parametrize("path", ["../", "../../etc/passwd", "docs/../../x"])
    def test_traversal_rejected(self, client, path):
        resp = client.get("/", params={"path": path})
        assert resp.status_code == 400

    def test_missing_directory(self, client):
        assert client.get("/", params={"path": "ghost"}).status_code == 404

    def test_file_is_not_listable(self, client):
        assert client.get("/", params={"path": "Readme.txt"}).status_code == 404

    def test_unreadable_directory(self, client, monkeypatch):
        def deny(*args, **kwargs):
            raise DirectoryUnreadableError("Cannot read directory ''")

        monkeypatch.setattr(file_catalog, "list_entries", deny)
        assert client.get("/").status_code == 500

    def test_permission_denied_is_a_handled_server_error(self, client, locked, caplog):
        with caplog.at_level(logging.WARNING, logger="file_browser.api"):
            resp = client.get("/", params={"path": "locked/inner"})
        assert resp.status_code == 500
        assert "Cannot read directory" in resp.json()["detail"]
        assert "Listing failed" in caplog.text

    def test_query_parameters_are_declared(self, client):
        parameters = client.get("/openapi.json").json()["paths"]["/"]["get"]["parameters"]
        assert {param["name"] for param in parameters} == {"path", "q", "sort", "order"}

    def test_names_are_escaped(self, client, root):
        (root / "<b>bold.txt").write_text("x")
        resp = client.get("/")
        assert "<b>bold" not in resp.text
        assert "&lt;b&gt;bold.txt" in resp.text

    def test_security_header(self, client):
        resp = client.get("/")
        assert "default-src 'self'" in resp.headers["content-security-policy"]


class TestDownload:
    """Tests for GET /download."""

    def test_download_file(self, client):
        resp = client.get("/download", params={"path": "docs/guide.md"})
        assert resp.status_code == 200
        assert resp.content == b"# guide"
        disposition = resp.headers["content-disposition"]
        assert disposition.startswith("attachment")
        assert "guide.md" in disposition

    def test_directory_redirects_to_listing(self, client):
        resp = client.get("/download", params={"path": "docs/"}, follow_redirects=False)
        assert resp.status_code == 303
        assert resp.headers["location"] == "/?path=docs"

    def test_missing_file(self, client):
        assert client.get("/download", params={"path": "nope.txt"}).status_code == 404

    def test_permission_denied_is_a_handled_server_error(self, client, locked):
        resp = client.get("/download", params={"path": "locked/inner"})
        assert resp.status_code == 500
        assert "Cannot read" in resp.json()["detail"]

    def test_traversal_rejected(self, client):
        assert client.get("/download", params={"path": "../secret"}).status_code == 400


def test_static_stylesheet(client):
    resp = client.get("/static/style.css")
    assert resp.status_code == 200
    assert "font-family" in resp.text


def test_render_listing_accepts_raw_sort_values(root):
    result = FileCatalog(root).build_listing(ListingRequest(sort="size", order="desc"))
    html = render_listing(result)
    assert "Size &darr;" in html
    assert "name='sort' value='size'" in html


@pytest.mark.parametrize(
    ("size", "is_dir", "expected"),
    [
        (0, False, "0.00 B"),
        (1536, False, "1.50 KB"),
        (5 * 1024**3, False, "5.00 GB"),
        (3 * 1024**5, False, "3072.00 TB"),
        (4096, True, "—"),
    ],
)
def test_human_size(size, is_dir, expected):
    assert human_size(size, is_dir) == expected
