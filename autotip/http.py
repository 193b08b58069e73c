"""Blocking requests calls pushed onto the reactor's thread pool."""

import platform
import requests
from twisted.internet import threads

from autotip import __version__

USER_AGENT = f"autotip/{__version__} (Python; {platform.system()})"


class HTTPClient:
    def __init__(self, timeout=10, session=None):
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": USER_AGENT})

    def _request(self, method, url, **kwargs):
        kwargs.setdefault("timeout", self.timeout)
        return self.session.request(method, url, **kwargs)

    def get(self, url, params=None, headers=None):
        return threads.deferToThread(self._request, "GET", url, params=params, headers=headers)

    def post(self, url, json=None):
        return threads.deferToThread(self._request, "POST", url, json=json)

    def close(self):
        self.session.close()


def json_body(response):
    """Decoded JSON body, or None when the server sent something else."""
    try:
        return response.json()
    except ValueError:
        return None
