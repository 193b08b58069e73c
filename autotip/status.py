"""Checks whether the account is currently online somewhere else."""

from twisted.internet import defer
from twisted.logger import Logger

from autotip.errors import StatusLookupError
from autotip.hashing import remove_dashes
from autotip.http import json_body

log = Logger()


class AccountStatusChecker:
    def __init__(self, http, status_url, api_key=""):
        self.http = http
        self.status_url = status_url
        self.api_key = api_key

    @defer.inlineCallbacks
    def isOnline(self, uuid):
        headers = {"API-Key": self.api_key} if self.api_key else None
        res = yield self.http.get(self.status_url, params={"uuid": remove_dashes(uuid)},
                                  headers=headers)
        body = json_body(res)
        if res.status_code != 200 or not isinstance(body, dict) or not body.get("success"):
            raise StatusLookupError(f"status lookup returned {res.status_code}: {res.text[:200]}")
        session = body.get("session") or {}
        online = bool(session.get("online"))
        log.debug("account {uuid} online: {online}", uuid=uuid, online=online)
        return online
