# -*- coding: utf-8 -*-
"""NutriVision client: request dispatch, session and identity federation."""

from .api import NutriVisionClient
from .dispatcher import RequestDispatcher
from .errors import ApiError, AuthError, EnvelopeError, IntegrationError, NutriVisionError, TransportError
from .models import Envelope, Session, UserProfile
from .oauth import AppleIdentityProvider, GoogleIdentityProvider, OAuthBridge, OAuthState
from .session import SessionStore

__all__ = [
    "ApiError",
    "AppleIdentityProvider",
    "AuthError",
    "EnvelopeError",
    "Envelope",
    "GoogleIdentityProvider",
    "IntegrationError",
    "NutriVisionClient",
    "NutriVisionError",
    "OAuthBridge",
    "OAuthState",
    "RequestDispatcher",
    "Session",
    "SessionStore",
    "TransportError",
    "UserProfile",
]
