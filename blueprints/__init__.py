"""
Blueprints package for the club ladder application
Contains route blueprints for the ladder, admin panel, court booking and public pages
"""

from .auth import auth_bp
from .ladder import ladder_bp
from .admin import admin_bp
from .courts import courts_bp, api_bp
from .public import public_bp

__all__ = ['auth_bp', 'ladder_bp', 'admin_bp', 'courts_bp', 'api_bp', 'public_bp']
