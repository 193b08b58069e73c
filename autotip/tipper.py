"""Tip queue and paced dispatch of /tip commands.

Targets arrive in waves from the reward session and replace whatever was
still queued. One command goes out every tip_cycle_rate seconds. Whether a tip
worked is only visible in chat, so failures are reported back through
tipFailed() and attributed to the gamemode of the last command sent.
"""

from collections import namedtuple
from twisted.internet import reactor
from twisted.logger import Logger

log = Logger()

TipTarget = namedtuple("TipTarget", ["username", "gamemode"])

WILDCARD = "all"


def command_for(target):
    if target.gamemode != WILDCARD:
        return f"/tip {target.username} {target.gamemode}"
    return "/tipall"


class TipDispatcher:
    def __init__(self, send_command, clock=None, tip_cycle_rate=5):
        self.send_command = send_command
        self.clock = clock or reactor
        self.tip_cycle_rate = tip_cycle_rate
        self.session = None
        self.queue = []
        self.failures = set()
        self.last_gamemode = None
        self.tipping = False
        self.stopped = False
        self.sent = 0
        self._next = None

    def attach(self, session):
        self.session = session
        self.tip_cycle_rate = session.token.tip_cycle_rate

    def updateQueue(self, targets):
        if self.stopped:
            return
        self.queue = list(targets)
        self.tip()

    def tipFailed(self):
        if self.last_gamemode is None:
            log.debug("tip failure reported before any tip was sent")
            return
        self.failures.add(self.last_gamemode)

    def tip(self):
        if self.tipping:
            return
        if not self.queue:
            self.checkFailedTips()
            return
        self.tipping = True
        self._doTip()

    def _doTip(self):
        self._next = None
        if self.stopped:
            self.tipping = False
            return
        if not self.queue:
            self.tipping = False
            self.checkFailedTips()
            return

        target = self.queue.pop(0)
        self.last_gamemode = target.gamemode
        command = command_for(target)
        log.debug("{command}", command=command)
        try:
            self.send_command(command)
            self.sent += 1
        except Exception:
            log.failure("could not send {command}", command=command)
        self._next = self.clock.callLater(self.tip_cycle_rate, self._doTip)

    def checkFailedTips(self):
        """Ask for new players in every gamemode that failed, once the queue is empty."""
        if self.queue or not self.failures or self.session is None:
            return
        games = sorted(self.failures)
        self.failures = set()
        log.debug("Found failed tips in {games}, requesting new players...", games=games)
        self.session.requestTipWave(games)

    def stop(self):
        self.stopped = True
        self.queue = []
        if self._next is not None and self._next.active():
            self._next.cancel()
        self._next = None
        self.tipping = False
