"""Ties the tipping pipeline to the lifetime of a game-client connection.

Each connection gets its own RewardSession and TipDispatcher; both are thrown
away when the connection ends and rebuilt after the next login.
"""

from twisted.internet import defer, reactor, task
from twisted.logger import Logger

from autotip.chat import (TIP_FAILED, TIP_RECEIVED, TIP_SENT, ChatFilter, classify,
                          karma_for, tips_received, tips_sent, to_ansi)
from autotip.logger import game_log
from autotip.login import AccountSessionClient
from autotip.session import RewardSession
from autotip.tipper import TipDispatcher

log = Logger()

# kick reasons meaning the owner is playing on this account right now
ELSEWHERE_REASONS = ("logged in from another location",)


def logged_in_elsewhere(reason):
    reason = str(reason or "").lower()
    return any(r in reason for r in ELSEWHERE_REASONS)


class SessionLifecycleController:
    def __init__(self, config, http, ledger, status_checker, connect,
                 clock=None, authenticator=None):
        self.config = config
        self.http = http
        self.ledger = ledger
        self.status_checker = status_checker
        self.connect = connect
        self.clock = clock or reactor
        self.authenticator = authenticator or AccountSessionClient(http, ledger, config)
        self.chat_filter = ChatFilter(config)

        self.client = None
        self.profile = None
        self.session = None
        self.dispatcher = None
        self.authenticating = False
        self.shutting_down = False
        self._reconnect = None
        self._status_poll = None

    # connection events, called by the game client

    def clientConnected(self, client):
        self.client = client

    def loggedIn(self, profile):
        self.profile = profile
        log.debug("Logged on {host}:{port} as {profile}",
                  host=self.config.host, port=self.config.port, profile=profile)
        self.setLang(self.config.language)

        xp, coins, karma = self.ledger.get_lifetime_stats(profile.dashless)
        log.info("{stats}", stats=to_ansi(
            f"You've earned §3{xp} Exp§r, §6{coins} Coins§r and §d{karma} Karma§r using §bautotip§r"))

        d = task.deferLater(self.clock, 1, self.startSession)
        d.addErrback(self.fatalError)
        return d

    @defer.inlineCallbacks
    def startSession(self):
        if self.session is not None or self.authenticating or self.client is None:
            return
        client = self.client
        self.authenticating = True
        try:
            token = yield self.authenticator.authenticate(self.profile)
        finally:
            self.authenticating = False

        session = RewardSession(token, self.http, self.config.autotip_url, self.clock,
                                on_error=self.fatalError)
        if client is not self.client or self.shutting_down:
            # connection went away while we were logging in
            yield session.logOut()
            return
        self.session = session
        self.dispatcher = TipDispatcher(client.chat, self.clock)
        log.info("Autotip session started, tipping every {rate}s", rate=token.tip_cycle_rate)
        yield session.start(self.dispatcher)

    def messageReceived(self, message):
        if message.position != "chat":
            return
        text = message.text
        self.logChat(message)

        kind = classify(text)
        if kind == TIP_SENT:
            lines = message.hover_lines()
            tips = tips_sent(text)
            karma = karma_for(tips, lines, self.config.tip_karma)
            lines.append(f"§d+{karma} Karma")
            self.recordTip("sent", tips, lines)
            self.logRewards(lines)
        elif kind == TIP_RECEIVED:
            lines = message.hover_lines()
            tips = tips_received(text)
            if tips is not None:
                self.recordTip("received", tips, lines)
            self.logRewards(lines)
        elif kind == TIP_FAILED and self.dispatcher is not None:
            self.dispatcher.tipFailed()

    def kicked(self, reason):
        log.info("Kicked for {reason}", reason=reason)

    def disconnected(self, reason=None):
        self.client = None
        d = self.teardown()
        if self.shutting_down:
            return d
        if logged_in_elsewhere(reason) and self.profile is not None:
            log.info("Account is in use elsewhere, waiting until it goes offline")
            self.waitUntilInactive()
        else:
            self.scheduleReconnect()
        return d

    def connectionFailed(self, reason=None):
        log.warn("Could not reach the game client: {reason}", reason=reason)
        if not self.shutting_down:
            self.scheduleReconnect()

    def fatalError(self, failure):
        log.failure("Unexpected error, restarting the connection", failure)
        if self.client is not None:
            # the client's disconnect brings us back through disconnected()
            self.client.quit()
            return None
        d = self.teardown()
        if not self.shutting_down:
            self.scheduleReconnect()
        return d

    # helpers

    def setLang(self, language):
        if self.client is None:
            return
        log.info("Changing language to {language}", language=language)
        self.client.chat(f"/lang {language}")

    def recordTip(self, kind, amount, lines):
        if self.profile is None:
            return
        self.ledger.tip_increment(self.profile.dashless, {"type": kind, "amount": amount},
                                  lines, username=self.profile.name)

    def logChat(self, message):
        ansi = to_ansi(message.formatted or message.text)
        if self.chat_filter.is_hidden(message.text):
            log.debug("{chat}", chat=ansi)
        else:
            game_log.info("{chat}", chat=ansi)

    def logRewards(self, lines):
        if self.config.print_rewards:
            for line in lines:
                game_log.info("{reward}", reward=to_ansi(f"{line}§r"))

    def teardown(self):
        if self.dispatcher is not None:
            self.dispatcher.stop()
            self.dispatcher = None
        return self.closeSession()

    def closeSession(self):
        session, self.session = self.session, None
        if session is None:
            return defer.succeed(None)
        return session.logOut()

    def scheduleReconnect(self, delay=None):
        if self._reconnect is not None and self._reconnect.active():
            return
        delay = self.config.reconnect_delay if delay is None else delay
        log.info("Reconnecting in {delay}s", delay=delay)
        self._reconnect = self.clock.callLater(delay, self.reconnect)

    def reconnect(self):
        self._reconnect = None
        if self.shutting_down:
            return
        log.info("Logging in...")
        self.connect()

    def waitUntilInactive(self):
        if self._status_poll is not None and self._status_poll.running:
            return
        self._status_poll = task.LoopingCall(self.checkStillActive)
        self._status_poll.clock = self.clock
        self._status_poll.start(self.config.active_poll_interval, now=False)

    def checkStillActive(self):
        d = self.status_checker.isOnline(self.profile.uuid)

        def checked(online):
            if online:
                log.info("Account is still online elsewhere")
                return
            self.stopStatusPoll()
            self.reconnect()

        def failed(failure):
            log.warn("Could not check account status: {error}", error=failure.value)

        d.addCallbacks(checked, failed)
        return d

    def stopStatusPoll(self):
        if self._status_poll is not None and self._status_poll.running:
            self._status_poll.stop()
        self._status_poll = None

    def shutdown(self):
        """Leave the game tidy and log out; gives up after shutdown_timeout."""
        log.info("Received kill signal, shutting down gracefully.")
        self.shutting_down = True
        self.stopStatusPoll()
        if self._reconnect is not None and self._reconnect.active():
            self._reconnect.cancel()
        self._reconnect = None

        d = defer.succeed(None)
        if self.client is not None:
            # need to leave limbo before /lang works
            self.client.chat("/hub")
            d = task.deferLater(self.clock, 1, self.setLang, self.config.change_language)
            d.addCallback(lambda _: task.deferLater(self.clock, 1, lambda: None))

        def logOut(_):
            if self.session is None:
                log.warn("Closing without establishing autotip session.")
                return None
            return self.teardown().addCallback(
                lambda _: log.info("Closed out remaining connections."))

        def timedOut(result, timeout):
            log.error("Could not close connections in {timeout}s, forcefully shutting down",
                      timeout=timeout)
            return None

        d.addCallback(logOut)
        d.addTimeout(self.config.shutdown_timeout, self.clock, onTimeoutCancel=timedOut)
        return d
