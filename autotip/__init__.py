"""autotip - automatic tipping for the Hypixel network, driven by Twisted."""

__version__ = "2.1.0"

# the autotip server only hands out sessions to client versions it knows
CLIENT_VERSION = "2.1.0.6"
