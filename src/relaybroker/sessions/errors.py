"""
Error taxonomy for pairing and relay.

None of these are fatal: each is local to one declaration or relay attempt
and leaves the session table consistent. Endpoints retry by re-declaring.
"""

from relaybroker.sessions.models import SESSION_NOT_UP


class SessionError(Exception):
    """Base class for pairing/relay errors."""

    code: int | None = None

    @property
    def signal(self) -> str | None:
        """The SESSION_NOT_UP frame reporting this error, if it has a wire code."""
        if self.code is None:
            return None
        return f"{SESSION_NOT_UP}: {self.code}"


class InvalidDeclaration(SessionError):
    """A declaration is missing client, target or key."""

    code = -100


class KeyMismatch(SessionError):
    """Both sides declared, but their shared keys differ."""

    code = -2


class NoPartner(SessionError):
    """No linked partner to pair or relay with."""

    code = -1


class MalformedMessage(SessionError):
    """Inbound frame is not a JSON object."""
