from .authenticator import Authenticator, AuthenticationError

__all__ = ["Authenticator", "AuthenticationError"]
