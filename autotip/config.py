import json
import os
import sys
import toml
from more_itertools import flatten
from pathlib import Path, PurePath
from twisted.logger import Logger

from autotip import CLIENT_VERSION
from autotip.errors import ConfigError

log = Logger()


class GenericDescriptor():
    def __set_name__(self, owner, name):
        self.public_name = name
        self.private_name = '_' + name

    def __get__(self, obj, objtype=None):
        if obj is None:
            return self
        value = getattr(obj, self.private_name)
        return value

    def __set__(self, obj, value):
        setattr(obj, self.private_name, value)


class AutotipConfig:
    __default_file__ = "autotip.toml"
    __search_path__ = [
        Path.cwd(),
        Path(__file__).resolve().parent,
        PurePath(Path.home(), '.config'),
        Path("/etc/autotip")
    ]
    # game server the bridge connects the bot to
    host                   = GenericDescriptor()
    port                   = GenericDescriptor()
    version                = GenericDescriptor()
    bridge_host            = GenericDescriptor()
    bridge_port            = GenericDescriptor()
    credentials_file       = GenericDescriptor()
    # tipping and chat
    tip_karma              = GenericDescriptor()
    print_rewards          = GenericDescriptor()
    language               = GenericDescriptor()
    change_language        = GenericDescriptor()
    hide_tip_messages      = GenericDescriptor()
    hide_join_messages     = GenericDescriptor()
    hide_mvp_join_messages = GenericDescriptor()
    hide_watchdog_messages = GenericDescriptor()
    # files
    stats_dir              = GenericDescriptor()
    log_dir                = GenericDescriptor()
    dev                    = GenericDescriptor()
    # lifecycle
    reconnect_delay        = GenericDescriptor()
    active_poll_interval   = GenericDescriptor()
    shutdown_timeout       = GenericDescriptor()
    # remote services
    autotip_url            = GenericDescriptor()
    join_url               = GenericDescriptor()
    status_url             = GenericDescriptor()
    api_key                = GenericDescriptor()
    client_version         = GenericDescriptor()
    http_timeout           = GenericDescriptor()

    def __init__(self):
        self.host                   = "mc.hypixel.net"
        self.port                   = 25565
        self.version                = "1.8.9"
        self.bridge_host            = "127.0.0.1"
        self.bridge_port            = 25580
        self.credentials_file       = "credentials.json"
        self.tip_karma              = 500
        self.print_rewards          = True
        self.language               = "english"
        self.change_language        = "english"
        self.hide_tip_messages      = True
        self.hide_join_messages     = True
        self.hide_mvp_join_messages = True
        self.hide_watchdog_messages = True
        self.stats_dir              = "stats"
        self.log_dir                = "logs"
        self.dev                    = False
        self.reconnect_delay        = 10
        self.active_poll_interval   = 300
        self.shutdown_timeout       = 10
        self.autotip_url            = "https://autotip.sk1er.club"
        self.join_url               = "https://sessionserver.mojang.com/session/minecraft/join"
        self.status_url             = "https://api.hypixel.net/status"
        self.api_key                = ""
        self.client_version         = CLIENT_VERSION
        self.http_timeout           = 10

    @classmethod
    def known_keys(cls):
        return [k for k, v in vars(cls).items() if isinstance(v, GenericDescriptor)]

    def update(self, dict_obj):
        # tables only group settings, [game] host = ... sets host
        tables = [v for v in dict_obj.values() if isinstance(v, dict)]
        scalars = [(k, v) for k, v in dict_obj.items() if not isinstance(v, dict)]
        known = self.known_keys()
        for key, val in flatten([scalars, flatten(map(lambda t: t.items(), tables))]):
            if key not in known:
                log.warn("ignoring unknown config key {key}", key=key)
                continue
            setattr(self, key, val)

    def from_file(self, file_path=None):
        try:
            self.update(toml.load(file_path))
        except (OSError, toml.TomlDecodeError) as e:
            log.error("parsing {path}: failed", path=file_path)
            raise ConfigError(f"could not parse {file_path}: {e}") from e

    def fetch_and_update(self):
        path_join = lambda p: Path(p, self.__default_file__).resolve()
        fexists = lambda f: Path(f).resolve().exists()
        found = next(filter(fexists, map(path_join, iter(self.__search_path__))), None)
        if found is None:
            log.info("no {name} in search path, using defaults",
                     name=self.__default_file__)
            return
        self.from_file(found)

    def fetch(self, file_path=None):
        if file_path:
            self.from_file(file_path)
        else:
            self.fetch_and_update()
        self.apply_environment()

    def apply_environment(self, environ=None, argv=None):
        environ = os.environ if environ is None else environ
        argv = sys.argv if argv is None else argv
        if environ.get("AUTOTIP_DEV", "") not in ("", "0") or "--dev" in argv:
            self.dev = True
        if environ.get("AUTOTIP_API_KEY"):
            self.api_key = environ["AUTOTIP_API_KEY"]


class Credentials:
    """Account login handed to the game client; never modified here."""

    required = ("username", "password")

    def __init__(self, username, password, legacy=False):
        self.username = username
        self.password = password
        self.legacy = legacy

    @property
    def auth(self):
        return "mojang" if self.legacy else "microsoft"

    @classmethod
    def load(cls, path):
        try:
            with open(path) as f:
                data = json.load(f)
        except (IOError, OSError) as e:
            raise ConfigError(f"could not read credentials file {path}: {e}") from e
        except json.JSONDecodeError as e:
            raise ConfigError(f"invalid JSON in credentials file {path}: {e}") from e
        missing = [k for k in cls.required if k not in data]
        if missing:
            raise ConfigError(f"credentials file {path} is missing {', '.join(missing)}")
        return cls(data["username"], data["password"], bool(data.get("legacy", False)))

    def __repr__(self):
        return f"Credentials({self.username!r}, auth={self.auth!r})"
