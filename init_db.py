"""
Database initialization script
Run with: python init_db.py
"""

import os

from app import app, db
from models import init_default_data, ensure_schema_integrity


def initialize_database():
    """Create tables, apply column updates and seed the admin, courts and pricing"""
    with app.app_context():
        print("Creating database tables...")
        db.create_all()
        ensure_schema_integrity()

        print("Initializing default data...")
        init_default_data()

        print("✅ Database initialized successfully!")
        print("Default admin credentials:")
        print(f"  Email: {os.environ.get('ADMIN_EMAIL', 'admin@clubladder.local')}")
        print("  Password: set by ADMIN_PASSWORD (default admin1234)")


if __name__ == "__main__":
    initialize_database()
