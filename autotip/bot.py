#!/usr/bin/env python3
# -*- coding: UTF-8 -*-
"""

*** THIS IS THE AUTOTIP BOT ***

autotip - keeps a game account tipping boosters on the Hypixel network
          through the autotip reward service

Copyright (c) the autotip authors
All rights reserved.

Redistribution and use in source and binary forms, with or without
modification, are permitted provided that the following conditions are
met:

1. Redistributions of source code must retain the above copyright
notice, this list of conditions and the following disclaimer.

2. Redistributions in binary form must reproduce the above copyright
notice, this list of conditions and the following disclaimer in the
documentation and/or other materials provided with the distribution.

THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS
IS" AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED
TO, THE IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A
PARTICULAR PURPOSE ARE DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT
HOLDER OR CONTRIBUTORS BE LIABLE FOR ANY DIRECT, INDIRECT, INCIDENTAL,
SPECIAL, EXEMPLARY, OR CONSEQUENTIAL DAMAGES (INCLUDING, BUT NOT LIMITED
TO, PROCUREMENT OF SUBSTITUTE GOODS OR SERVICES; LOSS OF USE, DATA, OR
PROFITS; OR BUSINESS INTERRUPTION) HOWEVER CAUSED AND ON ANY THEORY OF
LIABILITY, WHETHER IN CONTRACT, STRICT LIABILITY, OR TORT (INCLUDING
NEGLIGENCE OR OTHERWISE) ARISING IN ANY WAY OUT OF THE USE OF THIS
SOFTWARE, EVEN IF ADVISED OF THE POSSIBILITY OF SUCH DAMAGE.
"""

from twisted.internet import reactor
from twisted.logger import Logger
import argparse
import sys

from autotip import __version__
from autotip.client import GameClientFactory
from autotip.config import AutotipConfig, Credentials
from autotip.controller import SessionLifecycleController
from autotip.errors import ConfigError
from autotip.http import HTTPClient
from autotip.logger import setup_logging
from autotip.status import AccountStatusChecker
from autotip.tracker import StatsLedger

log = Logger()


def parse_args(argv=None):
    parser = argparse.ArgumentParser(prog="autotip", description="Tip boosters automatically through the autotip service.")
    parser.add_argument("-c", "--config", help="path to autotip.toml (default: search path)")
    parser.add_argument("--credentials", help="path to the credentials JSON file")
    parser.add_argument("--dev", action="store_true", help="verbose logging to logs/debug.log")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def build(config, credentials, clock=reactor):
    """Wire the bot together; returns (controller, factory)."""
    http = HTTPClient(timeout=config.http_timeout)
    ledger = StatsLedger(config.stats_dir)
    status = AccountStatusChecker(http, config.status_url, config.api_key)

    def connect():
        return clock.connectTCP(config.bridge_host, config.bridge_port, factory)

    controller = SessionLifecycleController(config, http, ledger, status, connect, clock=clock)
    factory = GameClientFactory(controller, config, credentials)
    return controller, factory


def main(argv=None):
    args = parse_args(argv)
    config = AutotipConfig()
    try:
        config.fetch(args.config)
        if args.dev:
            config.dev = True
        credentials = Credentials.load(args.credentials or config.credentials_file)
    except ConfigError as e:
        sys.exit(f"autotip: {e}")

    # log files must stay open for the life of the reactor
    log_files = setup_logging(config)
    log.info("Starting autotip {version}...", version=__version__)

    controller, factory = build(config, credentials)
    reactor.addSystemEventTrigger("before", "shutdown", controller.shutdown)
    reactor.callWhenRunning(controller.reconnect)
    reactor.run()
    controller.http.close()
    for f in log_files.values():
        f.close()


if __name__ == '__main__':
    main()
