"""Chat message handling: tip outcome detection, console filtering, colours."""

import re

TIP_SENT = "sent"
TIP_RECEIVED = "received"
TIP_FAILED = "failed"

# any of these means the last /tip did not go through
FAILURE_PREFIXES = (
    "That player is not online, try another user!",
    "You've already tipped that person today",
    "Can't find a player by the name of",
)

# Pre-compiled regex patterns
RE_TIPPED_MANY = re.compile(r'tipped \w* players in (\d+)')
RE_TIPPED_BY = re.compile(r'by (\d+) players?')
RE_ALREADY_TIPPED = re.compile(r"You've already tipped someone in the past hour in [\w\s]*! Wait a bit and try again!")
RE_FRIEND_JOIN = re.compile(r'(^Friend|Guild) > \w+ (left|joined)\.$')
RE_MVP_JOIN = re.compile(r'^\[MVP\++]\s\S+\sjoined the lobby!$')
RE_MVP_JOIN_BANNER = re.compile(r'^\s*>>> \[MVP\++]\s\S+\sjoined the lobby! <<<\s*$')
RE_WATCHDOG = (
    re.compile(r'^\[WATCHDOG ANNOUNCEMENT]$'),
    re.compile(r'^Watchdog has banned [0-9,]+ players in the last 7 days\.$'),
    re.compile(r'^Staff have banned an additional [0-9,]+ in the last 7 days\.$'),
    re.compile(r'^Blacklisted modifications are a bannable offense!$'),
)
RE_ANSI = re.compile(r'[\x1b\x9b][\[()#;?]*(?:[0-9]{1,4}(?:;[0-9]{0,4})*)?[0-9A-ORZcf-nqry=><]')

TIP_NOISE = {
    "A kick occurred in your connection, so you have been routed to limbo!",
    "Illegal characters in chat",
    "That player is not online, try another user!",
    "No one has a network booster active right now! Try again later.",
    "You already tipped everyone that has boosters active, so there isn't anybody to be tipped right now!",
    "You've already tipped someone in the past hour in",
    "You are AFK. Move around to return from AFK.",
}

# section sign colour codes to ANSI escapes
ANSI_CODES = {"0": "\x1b[30m", "1": "\x1b[34m", "2": "\x1b[32m", "3": "\x1b[36m",
              "4": "\x1b[31m", "5": "\x1b[35m", "6": "\x1b[33m", "7": "\x1b[37m",
              "8": "\x1b[90m", "9": "\x1b[94m", "a": "\x1b[92m", "b": "\x1b[96m",
              "c": "\x1b[91m", "d": "\x1b[95m", "e": "\x1b[93m", "f": "\x1b[97m",
              "l": "\x1b[1m", "o": "\x1b[3m", "n": "\x1b[4m", "m": "\x1b[9m",
              "k": "\x1b[6m", "r": "\x1b[0m"}
RE_SECTION = re.compile('§([0-9a-fklmnor])')


def to_ansi(src=""):
    return RE_SECTION.sub(lambda m: ANSI_CODES[m.group(1)], src) + "\x1b[0m"


def strip_ansi(text):
    return RE_ANSI.sub('', text)


def strip_codes(text):
    return RE_SECTION.sub('', text)


class ChatMessage:
    def __init__(self, text, hover=None, position="chat", formatted=None):
        self.text = strip_codes(text)
        # text keeps its section sign colour codes here
        self.formatted = formatted if formatted is not None else text
        self.hover = hover
        self.position = position

    def hover_lines(self):
        # first hover line is a title, the rewards follow
        if not self.hover:
            return []
        return self.hover.split("\n")[1:]

    def __str__(self):
        return self.text

    def __repr__(self):
        return f"ChatMessage({self.text!r}, position={self.position!r})"


def classify(text):
    if text.startswith("You tipped"):
        return TIP_SENT
    if text.startswith("You were tipped"):
        return TIP_RECEIVED
    if text.startswith(FAILURE_PREFIXES):
        return TIP_FAILED
    return None


def tips_sent(text):
    m = RE_TIPPED_MANY.search(text)
    return int(m.group(1)) if m else 1


def tips_received(text):
    m = RE_TIPPED_BY.search(text)
    return int(m.group(1)) if m else None


def karma_for(tips, lines, tip_karma):
    # a /tipall that reaches Quakecraft gets five tips there without karma
    if tips > 1 and any("Quakecraft" in line for line in lines):
        return (tips - 5) * tip_karma
    return tips * tip_karma


class ChatFilter:
    """Decides which chat lines are noise on the console."""

    def __init__(self, config):
        self.config = config

    def is_hidden(self, text):
        c = self.config
        if c.hide_tip_messages:
            if text in TIP_NOISE or RE_ALREADY_TIPPED.search(text):
                return True
        if c.hide_join_messages and RE_FRIEND_JOIN.search(text):
            return True
        if c.hide_mvp_join_messages:
            if RE_MVP_JOIN.search(text) or RE_MVP_JOIN_BANNER.search(text):
                return True
        if c.hide_watchdog_messages:
            if text == "" or any(r.search(text) for r in RE_WATCHDOG):
                return True
        return False
