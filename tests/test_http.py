from twisted.trial import unittest

from autotip.http import USER_AGENT, HTTPClient, json_body
from tests.helpers import FakeResponse


class RecordingSession:
    def __init__(self):
        self.headers = {}
        self.requests = []
        self.closed = False

    def request(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        return FakeResponse(200, {"success": True})

    def close(self):
        self.closed = True


class HTTPClientTests(unittest.TestCase):
    def setUp(self):
        self.session = RecordingSession()
        self.http = HTTPClient(timeout=7, session=self.session)

    def test_user_agent(self):
        self.assertEqual(self.session.headers["User-Agent"], USER_AGENT)

    def test_get_uses_default_timeout(self):
        d = self.http.get("https://autotip.example/tip", params={"key": "abc"})

        def check(response):
            self.assertEqual(response.status_code, 200)
            method, url, kwargs = self.session.requests[0]
            self.assertEqual((method, url), ("GET", "https://autotip.example/tip"))
            self.assertEqual(kwargs["params"], {"key": "abc"})
            self.assertEqual(kwargs["timeout"], 7)
        return d.addCallback(check)

    def test_post_uses_default_timeout(self):
        d = self.http.post("https://session.example/join", json={"serverId": "x"})

        def check(_):
            method, _url, kwargs = self.session.requests[0]
            self.assertEqual(method, "POST")
            self.assertEqual(kwargs["json"], {"serverId": "x"})
            self.assertEqual(kwargs["timeout"], 7)
        return d.addCallback(check)

    def test_explicit_timeout_wins(self):
        self.http._request("GET", "https://autotip.example/", timeout=1)
        self.assertEqual(self.session.requests[0][2]["timeout"], 1)

    def test_close(self):
        self.http.close()
        self.assertTrue(self.session.closed)


class JsonBodyTests(unittest.TestCase):
    def test_json(self):
        self.assertEqual(json_body(FakeResponse(200, {"success": True})), {"success": True})

    def test_not_json(self):
        self.assertIsNone(json_body(FakeResponse(502, text="<html>Bad Gateway</html>")))
        self.assertIsNone(json_body(FakeResponse(204, text="")))
