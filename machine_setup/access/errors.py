from __future__ import annotations


class AccessError(RuntimeError):
    """A single access method failed; the resolver moves on to the next one."""


class NetworkUnreachable(AccessError):
    pass


class AuthenticationRejected(AccessError):
    pass


class CredentialAbsent(AccessError):
    pass


class HumanDeclined(AccessError):
    """The operator opted out of interactive setup (or no terminal is available)."""
