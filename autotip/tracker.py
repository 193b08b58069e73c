"""Lifetime tip statistics, one JSON document per account."""

import copy
import json
import os
import re
from twisted.logger import Logger

log = Logger()

RE_EXP = re.compile(r'\+(\d+) Hypixel Experience')
RE_KARMA = re.compile(r'\+(\d+) Karma')
RE_COINS = re.compile(r'\+(\d+) ([\w\s]+?) Coins')

DEFAULT_STATS = {"username": None,
                 "tips_sent": 0,
                 "tips_received": 0,
                 "exp": 0,
                 "karma": 0,
                 "coins": {}}


def default_stats():
    return copy.deepcopy(DEFAULT_STATS)


def update_stats(stats, lines, tip):
    """Return a copy of stats with one tip event and its reward lines applied.

    tip is {"type": "sent" | "received", "amount": n}.
    """
    new = default_stats()
    new.update(copy.deepcopy(stats))
    if tip["type"] == "sent":
        new["tips_sent"] += int(tip["amount"])
    else:
        new["tips_received"] += int(tip["amount"])
    for line in lines:
        m = RE_EXP.search(line)
        if m:
            new["exp"] += int(m.group(1))
            continue
        m = RE_KARMA.search(line)
        if m:
            new["karma"] += int(m.group(1))
            continue
        m = RE_COINS.search(line)
        if m:
            game = m.group(2).strip()
            new["coins"][game] = new["coins"].get(game, 0) + int(m.group(1))
    return new


class StatsLedger:
    def __init__(self, stats_dir="stats"):
        self.stats_dir = stats_dir

    def path(self, uuid):
        return os.path.join(self.stats_dir, uuid, "tips.json")

    def _ensure(self, uuid):
        path = self.path(uuid)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        if not os.path.exists(path):
            self._write(path, default_stats())
        return path

    def _write(self, path, stats):
        tmp = f"{path}.tmp"
        with open(tmp, "w") as f:
            json.dump(stats, f, indent=2)
        os.replace(tmp, path)

    def get_stats(self, uuid):
        try:
            path = self._ensure(uuid)
            with open(path) as f:
                stats = json.load(f)
        except (IOError, OSError, json.JSONDecodeError) as e:
            log.error("could not read stats for {uuid}: {e}", uuid=uuid, e=e)
            return default_stats()
        merged = default_stats()
        merged.update(stats)
        return merged

    def tip_increment(self, uuid, tip, lines, username=None):
        stats = update_stats(self.get_stats(uuid), lines, tip)
        if username:
            stats["username"] = username
        try:
            self._write(self._ensure(uuid), stats)
        except (IOError, OSError) as e:
            log.error("could not write stats for {uuid}: {e}", uuid=uuid, e=e)
        return stats

    def get_tip_count(self, uuid):
        return self.get_stats(uuid)["tips_sent"]

    def get_lifetime_stats(self, uuid):
        """(xp, coins, karma) summed over the whole ledger."""
        stats = self.get_stats(uuid)
        coins = sum((stats.get("coins") or {}).values())
        return stats.get("exp") or 0, coins, stats.get("karma") or 0
