"""
Shared FastAPI dependencies
"""
from starlette.requests import HTTPConnection
from permit_tracker.services.collaboration import CollaborationHub


def get_hub(connection: HTTPConnection) -> CollaborationHub:
    """Collaboration hub created in the application lifespan"""
    return connection.app.state.hub
