"""Tests for the content stores in garden.sources."""

import json
import time
from concurrent.futures import ThreadPoolExecutor

import httpx
import pytest

from garden.exceptions import ContentStoreError
from garden.sources import ContentStore, DropboxStore, FilesystemStore, is_note_path


def _write_note(root, rel, content="body"):
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# is_note_path
# ---------------------------------------------------------------------------


class TestIsNotePath:
    EXCLUDED = frozenset({"templates", ".obsidian"})

    def test_plain_note(self):
        assert is_note_path("/journal/2025.01.01.md", self.EXCLUDED)

    def test_non_markdown(self):
        assert not is_note_path("/image.png", self.EXCLUDED)

    def test_excluded_dir_case_insensitive(self):
        assert not is_note_path("/Templates/daily.md", self.EXCLUDED)

    def test_dot_directories_and_files(self):
        assert not is_note_path("/.trash/old.md", self.EXCLUDED)
        assert not is_note_path("/notes/.hidden.md", self.EXCLUDED)

    def test_excluded_name_as_file_stem_is_fine(self):
        assert is_note_path("/templates.md", self.EXCLUDED)


# ---------------------------------------------------------------------------
# FilesystemStore
# ---------------------------------------------------------------------------


class TestFilesystemStore:
    def test_reads_nested_notes(self, tmp_path):
        _write_note(tmp_path, "a.md", "Alpha")
        _write_note(tmp_path, "sub/b.md", "Beta")
        notes = FilesystemStore(tmp_path).fetch_all_notes()
        assert [(n.path, n.filename, n.content) for n in notes] == [
            ("/a.md", "a.md", "Alpha"),
            ("/sub/b.md", "b.md", "Beta"),
        ]
        assert all(n.modified_at.tzinfo is not None for n in notes)

    def test_skips_excluded_and_hidden(self, tmp_path):
        _write_note(tmp_path, "keep.md")
        _write_note(tmp_path, "templates/daily.md")
        _write_note(tmp_path, ".obsidian/workspace.md")
        _write_note(tmp_path, ".hidden.md")
        _write_note(tmp_path, "notes.txt")
        notes = FilesystemStore(tmp_path).fetch_all_notes()
        assert [n.filename for n in notes] == ["keep.md"]

    def test_custom_excluded_dirs(self, tmp_path):
        _write_note(tmp_path, "drafts/x.md")
        _write_note(tmp_path, "templates/y.md")
        notes = FilesystemStore(tmp_path, excluded_dirs={"drafts"}).fetch_all_notes()
        assert [n.filename for n in notes] == ["y.md"]

    def test_missing_directory_raises(self, tmp_path):
        with pytest.raises(ContentStoreError, match="filesystem"):
            FilesystemStore(tmp_path / "missing").fetch_all_notes()

    def test_non_utf8_note_is_decoded_with_replacement(self, tmp_path, caplog):
        _write_note(tmp_path, "good.md", "fine")
        (tmp_path / "bad.md").write_bytes(b"caf\xe9\n")
        notes = FilesystemStore(tmp_path).fetch_all_notes()
        assert [(n.filename, n.content) for n in notes] == [("bad.md", "caf\ufffd\n"), ("good.md", "fine")]
        assert "not valid UTF-8" in caplog.text

    def test_satisfies_protocol(self, tmp_path):
        assert isinstance(FilesystemStore(tmp_path), ContentStore)


# ---------------------------------------------------------------------------
# DropboxStore
# ---------------------------------------------------------------------------


FILES = {
    "/notes/kyoto.md": "Kyoto [[Osaka]]",
    "/notes/日記.md": "今日は晴れ",
    "/templates/daily.md": "template",
}


def _entry(path, tag="file"):
    return {
        ".tag": tag,
        "name": path.rsplit("/", 1)[-1],
        "path_lower": path.lower(),
        "path_display": path,
        "server_modified": "2025-03-01T10:00:00Z",
    }


class FakeDropbox:
    """Routes requests like the Dropbox HTTP API."""

    def __init__(self, rate_limit_once=False, fail_download=False):
        self.rate_limit_once = rate_limit_once
        self.fail_download = fail_download
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests.append(path)
        if path == "/oauth2/token":
            return httpx.Response(200, json={"access_token": "tok", "expires_in": 14400})
        assert request.headers["Authorization"] == "Bearer tok"
        if path == "/2/files/list_folder":
            if self.rate_limit_once:
                self.rate_limit_once = False
                return httpx.Response(429, headers={"Retry-After": "1"})
            return httpx.Response(
                200,
                json={
                    "entries": [_entry("/notes", tag="folder"), _entry("/notes/kyoto.md")],
                    "has_more": True,
                    "cursor": "c1",
                },
            )
        if path == "/2/files/list_folder/continue":
            assert json.loads(request.content) == {"cursor": "c1"}
            return httpx.Response(
                200,
                json={
                    "entries": [_entry("/notes/日記.md"), _entry("/templates/daily.md")],
                    "has_more": False,
                },
            )
        if path == "/2/files/download":
            if self.fail_download:
                return httpx.Response(500)
            arg = json.loads(request.headers["Dropbox-API-Arg"])
            for display, content in FILES.items():
                if display.lower() == arg["path"]:
                    return httpx.Response(200, content=content.encode("utf-8"))
            return httpx.Response(409)
        return httpx.Response(404)


def _store(handler, sleeps=None):
    return DropboxStore(
        app_key="key",
        app_secret="secret",
        refresh_token="refresh",
        client=httpx.Client(transport=httpx.MockTransport(handler)),
        sleep=(sleeps.append if sleeps is not None else lambda s: None),
    )


class TestDropboxStore:
    def test_fetches_all_notes(self):
        handler = FakeDropbox()
        with _store(handler) as store:
            notes = store.fetch_all_notes()
        assert sorted((n.path, n.content) for n in notes) == [
            ("/notes/kyoto.md", "Kyoto [[Osaka]]"),
            ("/notes/日記.md", "今日は晴れ"),
        ]
        assert notes[0].modified_at.isoformat() == "2025-03-01T10:00:00+00:00"
        assert handler.requests.count("/oauth2/token") == 1

    def test_rate_limit_is_retried(self):
        sleeps = []
        store = _store(FakeDropbox(rate_limit_once=True), sleeps)
        notes = store.fetch_all_notes()
        assert len(notes) == 2
        assert sleeps == [1.0]

    def test_rate_limit_exhausted(self):
        def always_limited(request):
            if request.url.path == "/oauth2/token":
                return httpx.Response(200, json={"access_token": "tok", "expires_in": 14400})
            return httpx.Response(429)

        sleeps = []
        store = _store(always_limited, sleeps)
        with pytest.raises(ContentStoreError, match="rate-limited"):
            store.fetch_all_notes()
        assert sleeps == [2.0, 4.0, 8.0, 16.0]

    def test_download_failure_raises(self):
        store = _store(FakeDropbox(fail_download=True))
        with pytest.raises(ContentStoreError, match="download"):
            store.fetch_all_notes()

    def test_token_failure_raises(self):
        store = _store(lambda request: httpx.Response(400, text="invalid_grant"))
        with pytest.raises(ContentStoreError, match="token refresh failed"):
            store.fetch_all_notes()

    def test_transport_error_wrapped(self):
        def broken(request):
            raise httpx.ConnectError("offline", request=request)

        with pytest.raises(ContentStoreError, match="offline"):
            _store(broken).fetch_all_notes()

    def test_credentials_from_env(self, monkeypatch):
        monkeypatch.setenv("GARDEN_DROPBOX_APP_KEY", "env-key")
        monkeypatch.setenv("GARDEN_DROPBOX_REFRESH_TOKEN", "env-refresh")
        seen = {}

        def handler(request):
            seen.update(dict(httpx.QueryParams(request.content.decode())))
            return httpx.Response(400)

        store = DropboxStore(client=httpx.Client(transport=httpx.MockTransport(handler)))
        with pytest.raises(ContentStoreError):
            store.fetch_all_notes()
        assert seen["client_id"] == "env-key"
        assert seen["refresh_token"] == "env-refresh"

    def test_token_response_without_access_token(self):
        store = _store(lambda request: httpx.Response(200, json={"error": "nope"}))
        with pytest.raises(ContentStoreError, match="unexpected token response"):
            store.fetch_all_notes()

    def test_http_date_retry_after_falls_back_to_backoff(self):
        handler = FakeDropbox(rate_limit_once=True)
        original = handler.__call__

        def with_http_date(request):
            response = original(request)
            if response.status_code == 429:
                return httpx.Response(429, headers={"Retry-After": "Wed, 21 Oct 2026 07:28:00 GMT"})
            return response

        sleeps = []
        assert len(_store(with_http_date, sleeps).fetch_all_notes()) == 2
        assert sleeps == [2.0]

    def test_non_utf8_download_is_decoded_with_replacement(self):
        def handler(request):
            path = request.url.path
            if path == "/oauth2/token":
                return httpx.Response(200, json={"access_token": "tok", "expires_in": 14400})
            if path == "/2/files/list_folder":
                return httpx.Response(200, json={"entries": [_entry("/bad.md")], "has_more": False})
            return httpx.Response(200, content=b"caf\xe9")

        notes = _store(handler).fetch_all_notes()
        assert notes[0].content == "caf\ufffd"

    def test_concurrent_workers_refresh_token_once(self):
        token_posts = []

        def slow_token(request):
            if request.url.path == "/oauth2/token":
                token_posts.append(request)
                time.sleep(0.05)
                return httpx.Response(200, json={"access_token": "tok", "expires_in": 14400})
            return httpx.Response(404)

        store = _store(slow_token)
        with ThreadPoolExecutor(max_workers=8) as pool:
            tokens = list(pool.map(lambda _: store._access_token(), range(8)))
        assert tokens == ["tok"] * 8
        assert len(token_posts) == 1
