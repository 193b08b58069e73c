"""The autotip reward session: key, cadence, and the two recurring requests."""

from twisted.internet import defer, reactor, task
from twisted.logger import Logger

from autotip.errors import LoginError, SessionStateError
from autotip.http import json_body
from autotip.tipper import TipTarget

log = Logger()

UNSTARTED = "unstarted"
ACTIVE = "active"
CLOSED = "closed"


class SessionToken:
    def __init__(self, session_key, keep_alive_rate, tip_wave_rate, tip_cycle_rate, raw=None):
        self.session_key = session_key
        self.keep_alive_rate = keep_alive_rate
        self.tip_wave_rate = tip_wave_rate
        self.tip_cycle_rate = tip_cycle_rate
        self.raw = raw

    @classmethod
    def from_json(cls, body):
        try:
            key = body["sessionKey"]
            rates = [int(body[k]) for k in ("keepAliveRate", "tipWaveRate", "tipCycleRate")]
        except (KeyError, TypeError, ValueError) as e:
            raise LoginError(f"login response is missing session fields: {e}", body)
        if not key or any(r <= 0 for r in rates):
            raise LoginError("login response has an empty key or a non-positive rate", body)
        return cls(key, *rates, raw=body)

    def __repr__(self):
        return (f"SessionToken(key={self.session_key!r}, keepAlive={self.keep_alive_rate}, "
                f"tipWave={self.tip_wave_rate}, tipCycle={self.tip_cycle_rate})")


def parse_tips(body):
    """TipTargets from a tip-fetch response, None if it is unusable."""
    if not isinstance(body, dict) or not body.get("success"):
        return None
    tips = body.get("tips")
    if not isinstance(tips, list):
        return None
    targets = []
    for tip in tips:
        if not isinstance(tip, dict):
            return None
        username, gamemode = tip.get("username"), tip.get("gamemode")
        if not isinstance(username, str) or not isinstance(gamemode, str):
            return None
        targets.append(TipTarget(username, gamemode))
    return targets


class RewardSession:
    def __init__(self, token, http, base_url, clock=None, on_error=None):
        self.token = token
        self.http = http
        self.base_url = base_url.rstrip("/")
        self.clock = clock or reactor
        self.on_error = on_error
        self.state = UNSTARTED
        self.dispatcher = None
        self.looping_calls = {}
        self._logout_done = False
        self._logout_waiters = []

    @property
    def key(self):
        return self.token.session_key

    def _get(self, endpoint):
        return self.http.get(f"{self.base_url}/{endpoint}", params={"key": self.key})

    def start(self, dispatcher):
        if self.state != UNSTARTED:
            raise SessionStateError(f"cannot start a session that is {self.state}")
        self.dispatcher = dispatcher
        dispatcher.attach(self)
        self.state = ACTIVE
        for name, rate, func in (("keepalive", self.token.keep_alive_rate, self.sendKeepAlive),
                                 ("tipwave", self.token.tip_wave_rate, self.requestTipWave)):
            call = task.LoopingCall(func)
            call.clock = self.clock
            call.start(rate, now=False).addErrback(self._timerFailed, name)
            self.looping_calls[name] = call
        return self.requestTipWave()

    def _timerFailed(self, failure, name):
        log.failure("{name} timer stopped", failure, name=name)
        if self.on_error is not None and self.state == ACTIVE:
            self.on_error(failure)

    def sendKeepAlive(self):
        d = self._get("keepalive")

        def sent(_):
            log.debug("Keeping alive session {key}", key=self.key)

        def failed(failure):
            log.error("Failed sending keepalive request! {error}", error=failure.value)

        d.addCallbacks(sent, failed)
        return d

    def requestTipWave(self, gamemodes=()):
        if self.state != ACTIVE:
            log.debug("not requesting tips, session is {state}", state=self.state)
            return defer.succeed(None)
        games = list(gamemodes)
        d = self._get("tip")

        def received(response):
            targets = parse_tips(json_body(response))
            if targets is None:
                log.warn("Tipper sent an invalid or unsuccessful response: {status} {body}",
                         status=response.status_code, body=response.text[:200])
                return None
            if self.state != ACTIVE:
                return None
            if games:
                targets = [t for t in targets if t.gamemode in games]
            log.debug("Need to tip {targets}", targets=targets)
            self.dispatcher.updateQueue(targets)
            return targets

        def failed(failure):
            log.warn("Failed fetching tips! {error}", error=failure.value)

        d.addCallbacks(received, failed)
        return d

    def _stopTimers(self):
        for call in self.looping_calls.values():
            if call.running:
                call.stop()
        self.looping_calls = {}

    def logOut(self):
        """Close the session. Always resolves, even when the request fails."""
        if self.state == CLOSED:
            if self._logout_done:
                return defer.succeed(None)
            waiter = defer.Deferred()
            self._logout_waiters.append(waiter)
            return waiter
        self.state = CLOSED
        self._stopTimers()

        d = self._get("logout")

        def done(response):
            log.debug("Autotip logout: {body}", body=response.text)

        def failed(failure):
            log.error("Failed sending logout request! {error}", error=failure.value)

        def notify(_):
            self._logout_done = True
            waiters, self._logout_waiters = self._logout_waiters, []
            for waiter in waiters:
                waiter.callback(None)

        d.addCallbacks(done, failed)
        d.addCallback(notify)
        return d
