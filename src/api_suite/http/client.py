"""Default transport: a requests session bound to a base URL."""

from urllib.parse import urlsplit

import requests

from api_suite.config import load_settings


class HttpClient:
    """Verb-specific calls taking (url, headers=, data=), returning requests.Response."""

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ):
        settings = load_settings(base_url=base_url, token=token, timeout=timeout)
        self.base_url = settings.base_url
        self.timeout = settings.timeout
        self.session = session or requests.Session()
        if settings.token:
            self.session.headers["Authorization"] = f"Bearer {settings.token}"

    def url_for(self, url: str) -> str:
        if urlsplit(url).scheme:
            return url
        return f"{self.base_url.rstrip('/')}/{url.lstrip('/')}"

    def request(self, method: str, url: str, headers: dict | None = None, data=None) -> requests.Response:
        if isinstance(data, str):
            data = data.encode("utf-8")
        return self.session.request(
            method,
            self.url_for(url),
            headers=headers,
            data=data,
            timeout=self.timeout,
        )

    def get(self, url, **kwargs):
        return self.request("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self.request("POST", url, **kwargs)

    def put(self, url, **kwargs):
        return self.request("PUT", url, **kwargs)

    def delete(self, url, **kwargs):
        return self.request("DELETE", url, **kwargs)

    def patch(self, url, **kwargs):
        return self.request("PATCH", url, **kwargs)

    def head(self, url, **kwargs):
        return self.request("HEAD", url, **kwargs)

    def close(self) -> None:
        self.session.close()
