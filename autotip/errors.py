class AutotipError(Exception):
    """Base class for everything autotip raises on purpose."""


class ConfigError(AutotipError):
    pass


class AuthenticationError(AutotipError):
    """The account provider refused to join us to the session."""

    def __init__(self, message, status=None):
        AutotipError.__init__(self, message)
        self.status = status


class LoginError(AutotipError):
    """The autotip server answered the login without success.

    The raw body is kept around since it is the only diagnostic we get.
    """

    def __init__(self, message, body=None):
        AutotipError.__init__(self, message)
        self.body = body


class SessionStateError(AutotipError):
    pass


class StatusLookupError(AutotipError):
    pass
