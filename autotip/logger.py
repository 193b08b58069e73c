"""Log observers: coloured console, error/game/debug files rotated daily.

Modules log through their own twisted.logger.Logger; chat from the game goes
to the "game" namespace so it can be kept in its own file.
"""

import os
import sys
from twisted.logger import (FileLogObserver, FilteringLogObserver, LogLevel,
                            LogLevelFilterPredicate, Logger, PredicateResult,
                            eventAsText, formatTime, globalLogBeginner)
from twisted.python.logfile import DailyLogFile

from autotip.chat import strip_ansi

GAME = "game"
TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

game_log = Logger(namespace=GAME)


def format_line(event, ansi=True):
    text = eventAsText(event, includeTimestamp=False, includeSystem=False)
    if not text:
        return None
    if not ansi:
        text = strip_ansi(text)
    level = GAME if event.get("log_namespace") == GAME else event.get("log_level", LogLevel.info).name
    when = formatTime(event.get("log_time"), timeFormat=TIME_FORMAT)
    return f"{when} {level}: {text}\n"


def file_line(event):
    return format_line(event, ansi=False)


def game_only(event):
    if event.get("log_namespace") == GAME:
        return PredicateResult.yes
    return PredicateResult.no


def level_at_least(level):
    return LogLevelFilterPredicate(defaultLogLevel=level)


def build_observers(log_dir, dev=False, stdout=None):
    """Returns (observers, files); files must stay open while logging."""
    os.makedirs(log_dir, exist_ok=True)
    console_level = LogLevel.debug if dev else LogLevel.info
    files = {"error": DailyLogFile.fromFullPath(os.path.join(log_dir, "error.log")),
             "game": DailyLogFile.fromFullPath(os.path.join(log_dir, "game.log"))}
    observers = [
        FilteringLogObserver(FileLogObserver(stdout or sys.stdout, format_line),
                             [level_at_least(console_level)]),
        FilteringLogObserver(FileLogObserver(files["error"], file_line),
                             [level_at_least(LogLevel.error)]),
        FilteringLogObserver(FileLogObserver(files["game"], file_line), [game_only]),
    ]
    if dev:
        files["debug"] = DailyLogFile.fromFullPath(os.path.join(log_dir, "debug.log"))
        observers.append(FilteringLogObserver(FileLogObserver(files["debug"], file_line),
                                              [level_at_least(LogLevel.debug)]))
    return observers, files


def setup_logging(config):
    observers, files = build_observers(config.log_dir, config.dev)
    globalLogBeginner.beginLoggingTo(observers, redirectStandardIO=False)
    return files
