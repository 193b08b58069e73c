import json
from twisted.internet.error import ConnectionDone, ConnectionRefusedError
from twisted.internet.testing import StringTransport
from twisted.python.failure import Failure
from twisted.trial import unittest

from autotip.client import GameClientFactory
from autotip.config import AutotipConfig, Credentials

SESSION = {"accessToken": "tok",
           "selectedProfile": {"id": "069a79f444e94726a5befca90e38aaf5", "name": "Notch"}}


class RecordingController:
    def __init__(self):
        self.events = []

    def clientConnected(self, client):
        self.events.append(("connected", client))

    def loggedIn(self, profile):
        self.events.append(("login", profile))

    def messageReceived(self, message):
        self.events.append(("message", message))

    def kicked(self, reason):
        self.events.append(("kicked", reason))

    def disconnected(self, reason=None):
        self.events.append(("disconnected", reason))

    def connectionFailed(self, reason=None):
        self.events.append(("failed", reason))

    def fatalError(self, failure):
        self.events.append(("fatal", failure))


class GameClientProtocolTests(unittest.TestCase):
    def setUp(self):
        self.controller = RecordingController()
        self.config = AutotipConfig()
        self.factory = GameClientFactory(self.controller, self.config,
                                         Credentials("me@example.com", "hunter2", legacy=True))
        self.proto = self.factory.buildProtocol(("127.0.0.1", 25580))
        self.transport = StringTransport()
        self.proto.makeConnection(self.transport)

    def sent(self):
        return [json.loads(line) for line in self.transport.value().splitlines()]

    def receive(self, **event):
        self.proto.dataReceived(json.dumps(event).encode("utf-8") + b"\n")

    def kinds(self):
        return [kind for kind, _ in self.controller.events]

    def test_connect_announces_account(self):
        [hello] = self.sent()
        self.assertEqual(hello["type"], "connect")
        self.assertEqual((hello["host"], hello["port"], hello["version"]),
                         ("mc.hypixel.net", 25565, "1.8.9"))
        self.assertEqual((hello["auth"], hello["username"], hello["password"]),
                         ("mojang", "me@example.com", "hunter2"))
        self.assertEqual(self.controller.events, [("connected", self.proto)])

    def test_chat(self):
        self.transport.clear()
        self.proto.chat("/tip Foo skywars")
        self.assertEqual(self.sent(), [{"type": "chat", "text": "/tip Foo skywars"}])

    def test_session_then_login(self):
        self.receive(type="session", session=SESSION)
        self.receive(type="login")
        kind, profile = self.controller.events[-1]
        self.assertEqual(kind, "login")
        self.assertEqual(profile.name, "Notch")
        self.assertEqual(profile.access_token, "tok")

    def test_login_without_session_quits(self):
        self.transport.clear()
        self.receive(type="login")
        self.assertNotIn("login", self.kinds())
        self.assertEqual(self.sent()[0]["type"], "quit")
        self.assertTrue(self.transport.disconnecting)

    def test_message(self):
        self.receive(type="message", text="You tipped Foo in Arcade!",
                     formatted="§aYou tipped Foo in Arcade!", hover="Rewards\n+10 Arcade Coins")
        kind, message = self.controller.events[-1]
        self.assertEqual(kind, "message")
        self.assertEqual(message.text, "You tipped Foo in Arcade!")
        self.assertEqual(message.position, "chat")
        self.assertEqual(message.hover_lines(), ["+10 Arcade Coins"])

    def test_kick_reason_reaches_disconnect(self):
        self.receive(type="kicked", reason="You logged in from another location!")
        self.assertTrue(self.transport.disconnecting)
        self.proto.connectionLost(Failure(ConnectionDone()))
        self.assertEqual(self.controller.events[-2:],
                         [("kicked", "You logged in from another location!"),
                          ("disconnected", "You logged in from another location!")])

    def test_plain_disconnect(self):
        self.proto.connectionLost(Failure(ConnectionDone()))
        kind, reason = self.controller.events[-1]
        self.assertEqual(kind, "disconnected")
        self.assertIn("Connection was closed cleanly", reason)

    def test_malformed_lines_are_ignored(self):
        self.proto.dataReceived(b"not json\n[1, 2]\n")
        self.receive(type="no-such-event")
        self.assertEqual(self.kinds(), ["connected"])

    def test_handler_errors_are_fatal(self):
        self.receive(type="session")
        kind, failure = self.controller.events[-1]
        self.assertEqual(kind, "fatal")
        self.assertTrue(failure.check(KeyError))


class GameClientFactoryTests(unittest.TestCase):
    def test_connection_failed(self):
        controller = RecordingController()
        factory = GameClientFactory(controller, AutotipConfig(), Credentials("a", "b"))
        factory.clientConnectionFailed(None, Failure(ConnectionRefusedError()))
        self.assertEqual(controller.events[0][0], "failed")
