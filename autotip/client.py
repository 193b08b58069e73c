"""Connection to the external game client.

The game protocol itself is handled by a separate client process (a headless
game client). We talk to it over TCP, one JSON object per line:

  sent:     {"type": "connect", host, port, version, auth, username, password}
            {"type": "chat", "text": "/tip Foo skywars"}
            {"type": "quit", "reason": ...}
  received: {"type": "session", "session": {accessToken, selectedProfile: {id, name}}}
            {"type": "login"}
            {"type": "message", "text", "formatted", "hover", "position"}
            {"type": "kicked", "reason": ...}
"""

import json
from twisted.internet import protocol
from twisted.logger import Logger
from twisted.protocols import basic
from twisted.python.failure import Failure

from autotip.chat import ChatMessage
from autotip.login import GameProfile

log = Logger()


class GameClientProtocol(basic.LineReceiver):
    delimiter = b"\n"
    MAX_LENGTH = 1 << 20

    profile = None
    kick_reason = None

    @property
    def controller(self):
        return self.factory.controller

    def connectionMade(self):
        c = self.factory.config
        creds = self.factory.credentials
        self.sendEvent("connect", host=c.host, port=c.port, version=c.version,
                       auth=creds.auth, username=creds.username, password=creds.password)
        self.controller.clientConnected(self)

    def sendEvent(self, kind, **fields):
        fields["type"] = kind
        self.sendLine(json.dumps(fields).encode("utf-8"))

    def chat(self, text):
        self.sendEvent("chat", text=text)

    def quit(self, reason=""):
        self.sendEvent("quit", reason=reason)
        self.transport.loseConnection()

    def lineReceived(self, line):
        try:
            event = json.loads(line.decode("utf-8"))
        except ValueError:
            log.warn("ignoring malformed line from game client: {line!r}", line=line[:200])
            return
        if not isinstance(event, dict):
            log.warn("ignoring non-object event from game client: {event!r}", event=event)
            return
        handler = getattr(self, f"event_{event.get('type')}", None)
        if handler is None:
            log.debug("unhandled game client event {type}", type=event.get("type"))
            return
        try:
            handler(event)
        except Exception:
            self.controller.fatalError(Failure())

    def lineLengthExceeded(self, line):
        log.warn("game client sent an overlong line, dropping it")

    def event_session(self, event):
        self.profile = GameProfile.from_session(event["session"])

    def event_login(self, event):
        if self.profile is None:
            log.error("game client logged in without a session, disconnecting")
            self.quit("no session")
            return
        self.controller.loggedIn(self.profile)

    def event_message(self, event):
        message = ChatMessage(event.get("text", ""), hover=event.get("hover"),
                              position=event.get("position", "chat"),
                              formatted=event.get("formatted"))
        self.controller.messageReceived(message)

    def event_kicked(self, event):
        self.kick_reason = event.get("reason", "")
        self.controller.kicked(self.kick_reason)
        self.transport.loseConnection()

    def connectionLost(self, reason=None):
        if self.kick_reason is not None:
            why = self.kick_reason
        else:
            why = reason.getErrorMessage() if reason is not None else ""
        self.controller.disconnected(why)


class GameClientFactory(protocol.ClientFactory):
    protocol = GameClientProtocol

    def __init__(self, controller, config, credentials):
        self.controller = controller
        self.config = config
        self.credentials = credentials

    def startedConnecting(self, connector):
        log.debug("Started to connect.")

    def buildProtocol(self, addr):
        log.info("Connected to game client at {addr}", addr=addr)
        p = self.protocol()
        p.factory = self
        return p

    def clientConnectionLost(self, connector, reason):
        log.info("Lost connection. Reason: {reason}", reason=reason.getErrorMessage())

    def clientConnectionFailed(self, connector, reason):
        log.warn("Connection failed. Reason: {reason}", reason=reason.getErrorMessage())
        self.controller.connectionFailed(reason.getErrorMessage())
