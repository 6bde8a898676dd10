"""
Database initialization script.

Run with ``python -m app.db.init_db`` from the backend directory.
"""
from app.db.session import init_db

if __name__ == "__main__":
    print("Initializing database...")
    init_db()
    print("Database initialized successfully!")
