import json
from twisted.internet import defer

from autotip.session import SessionToken


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=None):
        self.status_code = status_code
        if text is None:
            text = json.dumps(body) if body is not None else ""
        self.text = text

    def json(self):
        return json.loads(self.text)


class FakeHTTP:
    """Answers requests from a table of url suffix -> response (or exception)."""

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []

    def _answer(self, method, url, payload):
        self.calls.append((method, url, payload))
        for suffix, answer in self.routes.items():
            if url.endswith(suffix):
                if callable(answer):
                    answer = answer()
                if isinstance(answer, Exception):
                    return defer.fail(answer)
                if isinstance(answer, defer.Deferred):
                    return answer
                return defer.succeed(answer)
        return defer.succeed(FakeResponse(404, text="not found"))

    def get(self, url, params=None, headers=None):
        return self._answer("GET", url, params)

    def post(self, url, json=None):
        return self._answer("POST", url, json)

    def requests_to(self, suffix):
        return [c for c in self.calls if c[1].endswith(suffix)]


def make_token(key="abc", keep_alive=60, tip_wave=900, tip_cycle=5):
    return SessionToken(key, keep_alive, tip_wave, tip_cycle)


def tips_body(*pairs, success=True):
    return {"success": success,
            "tips": [{"username": u, "gamemode": g} for u, g in pairs]}
