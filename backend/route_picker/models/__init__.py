"""Database models for the Route Picker application."""

# Import all models to register them with SQLAlchemy metadata
from route_picker.models.base import Base, BaseModel, StringIdModel
from route_picker.models.route import NAME_MAX_LENGTH, Route, RouteGroup, Trip
from route_picker.models.user import Account, AuthSession, User, Verification

__all__ = [
    # Base
    "Base",
    "BaseModel",
    "StringIdModel",
    # Identity models
    "User",
    "AuthSession",
    "Account",
    "Verification",
    # Commute models
    "RouteGroup",
    "Route",
    "Trip",
    "NAME_MAX_LENGTH",
]
