import json
from twisted.trial import unittest

from autotip.config import AutotipConfig, Credentials
from autotip.errors import ConfigError


class AutotipConfigTests(unittest.TestCase):
    def write(self, text):
        path = self.mktemp()
        with open(path, "w") as f:
            f.write(text)
        return path

    def test_defaults(self):
        config = AutotipConfig()
        self.assertEqual(config.host, "mc.hypixel.net")
        self.assertEqual(config.tip_karma, 500)
        self.assertFalse(config.dev)

    def test_tables_are_flattened(self):
        config = AutotipConfig()
        config.update({"tip_karma": 300, "game": {"host": "localhost", "port": 25566}})
        self.assertEqual((config.tip_karma, config.host, config.port), (300, "localhost", 25566))

    def test_unknown_keys_ignored(self):
        config = AutotipConfig()
        config.update({"no_such_thing": 1, "chat": {"language": "german"}})
        self.assertFalse(hasattr(config, "no_such_thing"))
        self.assertEqual(config.language, "german")

    def test_from_file(self):
        path = self.write('log_dir = "/tmp/autotip-logs"\n[chat]\nhide_tip_messages = false\n')
        config = AutotipConfig()
        config.fetch(path)
        self.assertEqual(config.log_dir, "/tmp/autotip-logs")
        self.assertFalse(config.hide_tip_messages)

    def test_bad_toml(self):
        path = self.write("host = = nope\n")
        self.assertRaises(ConfigError, AutotipConfig().from_file, path)
        self.flushLoggedErrors()

    def test_missing_file(self):
        self.assertRaises(ConfigError, AutotipConfig().from_file, self.mktemp())
        self.flushLoggedErrors()

    def test_environment(self):
        config = AutotipConfig()
        config.apply_environment({"AUTOTIP_API_KEY": "k"}, ["autotip"])
        self.assertEqual(config.api_key, "k")
        self.assertFalse(config.dev)
        config.apply_environment({"AUTOTIP_DEV": "1"}, ["autotip"])
        self.assertTrue(config.dev)

    def test_dev_flag(self):
        config = AutotipConfig()
        config.apply_environment({}, ["autotip", "--dev"])
        self.assertTrue(config.dev)


class CredentialsTests(unittest.TestCase):
    def write(self, obj):
        path = self.mktemp()
        with open(path, "w") as f:
            f.write(obj if isinstance(obj, str) else json.dumps(obj))
        return path

    def test_load(self):
        creds = Credentials.load(self.write({"username": "me", "password": "pw"}))
        self.assertEqual((creds.username, creds.password, creds.auth), ("me", "pw", "microsoft"))

    def test_legacy(self):
        creds = Credentials.load(self.write({"username": "me", "password": "pw", "legacy": True}))
        self.assertEqual(creds.auth, "mojang")

    def test_missing_keys(self):
        e = self.assertRaises(ConfigError, Credentials.load, self.write({"username": "me"}))
        self.assertIn("password", str(e))

    def test_bad_json(self):
        self.assertRaises(ConfigError, Credentials.load, self.write("{not json"))

    def test_missing_file(self):
        self.assertRaises(ConfigError, Credentials.load, self.mktemp())

    def test_repr_hides_password(self):
        self.assertNotIn("pw", repr(Credentials("me", "pw")))
