import pytest

pytest_plugins = ["pytester"]


class StubResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


class StubTransport:
    """Records every call and answers with queued (or default) responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def _call(self, method, url, headers=None, data=None):
        self.calls.append({"method": method, "url": url, "headers": headers, "data": data})
        if self.responses:
            return self.responses.pop(0)
        return StubResponse(200, {})

    def get(self, url, **kwargs):
        return self._call("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self._call("POST", url, **kwargs)

    def put(self, url, **kwargs):
        return self._call("PUT", url, **kwargs)

    def delete(self, url, **kwargs):
        return self._call("DELETE", url, **kwargs)

    def patch(self, url, **kwargs):
        return self._call("PATCH", url, **kwargs)

    def head(self, url, **kwargs):
        return self._call("HEAD", url, **kwargs)


@pytest.fixture
def response_factory():
    return StubResponse


@pytest.fixture
def transport_factory():
    return StubTransport


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for var in ("API_BASE_URL", "API_TOKEN", "API_SUITE_STRICT_MERGE", "API_TIMEOUT", "API_SUITE_CONFIG"):
        monkeypatch.delenv(var, raising=False)
