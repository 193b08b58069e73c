"""Two-step login: join a session with the account provider, then present the
same server hash to the autotip server to get a reward session."""

import platform
from twisted.internet import defer
from twisted.logger import Logger

from autotip.errors import AuthenticationError, LoginError
from autotip.hashing import remove_dashes, server_hash
from autotip.http import json_body
from autotip.session import SessionToken

log = Logger()

JOIN_OK = (200, 204)


class GameProfile:
    """Who the game client logged in as."""

    def __init__(self, uuid, name, access_token):
        self.uuid = uuid
        self.name = name
        self.access_token = access_token

    @property
    def dashless(self):
        return remove_dashes(self.uuid)

    @classmethod
    def from_session(cls, session):
        # same shape the account provider hands to game clients
        profile = session["selectedProfile"]
        return cls(profile["id"], profile["name"], session["accessToken"])

    def __repr__(self):
        return f"GameProfile({self.name!r}, {self.dashless})"


class AccountSessionClient:
    def __init__(self, http, ledger, config, hasher=server_hash):
        self.http = http
        self.ledger = ledger
        self.config = config
        self.hasher = hasher

    @defer.inlineCallbacks
    def joinServer(self, profile, hash):
        payload = {"accessToken": profile.access_token,
                   "selectedProfile": profile.dashless,
                   "serverId": hash}
        try:
            res = yield self.http.post(self.config.join_url, json=payload)
        except Exception as e:
            log.error("Error {error} during authentication: Session servers down?", error=e)
            raise AuthenticationError(f"session join failed: {e}") from e
        if res.status_code not in JOIN_OK:
            log.error("Error {status} during authentication: Session servers down?",
                      status=res.status_code)
            raise AuthenticationError(f"session join returned {res.status_code}",
                                      status=res.status_code)
        return True

    @defer.inlineCallbacks
    def autotipLogin(self, profile, hash):
        params = {"username": profile.name,
                  "uuid": profile.dashless,
                  "tips": self.ledger.get_tip_count(profile.dashless) + 1,
                  "v": self.config.client_version,
                  "mc": self.config.version,
                  "os": platform.system(),
                  "hash": hash}
        try:
            res = yield self.http.get(f"{self.config.autotip_url.rstrip('/')}/login", params=params)
        except Exception as e:
            log.error("Unable to login to autotip: {error}", error=e)
            raise LoginError(f"autotip login request failed: {e}") from e
        body = json_body(res)
        if body is None:
            log.warn("Invalid json response from autotip login server! {text}", text=res.text[:200])
            body = {}
        if not isinstance(body, dict) or not body.get("success"):
            log.error("Autotip login failed! {body}", body=body or res.text)
            raise LoginError("autotip login was not successful", body or res.text)
        return body

    @defer.inlineCallbacks
    def authenticate(self, profile):
        """Returns a SessionToken; errors are left for the caller to handle."""
        log.debug("Trying to log in as {uuid}", uuid=profile.dashless)
        hash = self.hasher(profile.uuid)
        log.debug("Server hash is: {hash}", hash=hash)

        yield self.joinServer(profile, hash)
        log.debug("Successfully created Mojang session!")

        body = yield self.autotipLogin(profile, hash)
        token = SessionToken.from_json(body)
        log.debug("Autotip session: {token}", token=token)
        return token
