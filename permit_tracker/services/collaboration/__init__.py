"""
Real-time collaboration on permit packages
"""
from permit_tracker.services.collaboration.connection import Connection, WebSocketConnection
from permit_tracker.services.collaboration.registry import CollaborationSession, SessionRegistry
from permit_tracker.services.collaboration.hub import CollaborationHub

__all__ = [
    "Connection",
    "WebSocketConnection",
    "CollaborationSession",
    "SessionRegistry",
    "CollaborationHub",
]
