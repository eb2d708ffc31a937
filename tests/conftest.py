import contextlib

import pytest

from redashbot.config import HostConfig
from redashbot.errors import FetchError, RenderError
from redashbot.models import Dashboard, InviteResult, Query, QueryResult


HOST = HostConfig(url="https://bi.example.com", alias="http://redash.internal", api_key="secret")


class FakeChat:
    """Records everything a handler sends back to the channel."""

    def __init__(self, fail_react=False):
        self.replies = []
        self.uploads = []
        self.reactions = []
        self.events = []
        self.fail_react = fail_react

    async def reply(self, text):
        self.events.append("reply")
        self.replies.append(text)

    async def upload(self, path, filename, comment):
        self.events.append("upload")
        with open(path, "rb") as fh:
            content = fh.read()
        self.uploads.append({"path": path, "filename": filename, "comment": comment, "content": content})

    async def react(self, name):
        self.events.append("react")
        if self.fail_react:
            raise RuntimeError("already_reacted")
        self.reactions.append(name)


class FakeRedash:
    """In-memory stand-in for RedashClient."""

    def __init__(self, host=HOST, queries=None, results=None, dashboards=None, invite_link=None, fail_with=None):
        self.host = host
        self.queries = queries or {}
        self.results = results or {}
        self.dashboards = dashboards or {}
        self.invite_link = invite_link
        self.fail_with = fail_with
        self.calls = []

    def _check(self, call):
        self.calls.append(call)
        if self.fail_with:
            raise self.fail_with

    def get_query(self, query_id):
        self._check(("get_query", str(query_id)))
        if str(query_id) not in self.queries:
            raise FetchError(f"GET /api/queries/{query_id} returned HTTP 404: Query not found", status=404)
        return Query.model_validate(self.queries[str(query_id)])

    def get_query_results(self, query_id):
        self._check(("get_query_results", str(query_id)))
        return QueryResult.model_validate(self.results[str(query_id)])

    def get_dashboard(self, dashboard_id):
        self._check(("get_dashboard", str(dashboard_id)))
        return Dashboard.model_validate(self.dashboards[str(dashboard_id)])

    def create_user(self, name, email):
        self._check(("create_user", name, email))
        return InviteResult(invite_link=self.invite_link)

    def embed_url(self, query_id, visualization_id):
        return f"{self.host.alias_url}/embed/query/{query_id}/visualization/{visualization_id}?api_key={self.host.api_key}"

    def query_url(self, query_id, visualization_id):
        return f"{self.host.base_url}/queries/{query_id}/#{visualization_id}"


class FakeScreenshotter:
    """Writes the embed URL into a temp file instead of launching a browser."""

    def __init__(self, tmp_path, fail_on=None):
        self.tmp_path = tmp_path
        self.fail_on = fail_on
        self.urls = []
        self.paths = []

    @contextlib.asynccontextmanager
    async def capture(self, url):
        self.urls.append(url)
        if self.fail_on and self.fail_on in url:
            raise RenderError(f"Screenshot of {url} failed")
        path = self.tmp_path / f"shot-{len(self.urls)}.png"
        path.write_bytes(url.encode())
        self.paths.append(path)
        try:
            yield str(path)
        finally:
            path.unlink()


@pytest.fixture
def chat():
    return FakeChat()


@pytest.fixture
def screenshotter(tmp_path):
    return FakeScreenshotter(tmp_path)
