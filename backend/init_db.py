#!/usr/bin/env python3
"""
Database initialization script for the notes auth backend.
Creates the users and audit_logs tables in the configured database.
"""
import asyncio

from notes_auth.config import Settings
from notes_auth.database import Database


async def create_tables():
    """Create all database tables"""
    settings = Settings()
    if not settings.database_uri:
        print("❌ DATABASE_URI not found in environment variables")
        return

    print(f"🔌 Connecting to database: {settings.database_uri}")
    database = Database(settings.database_uri, echo=True)

    try:
        print("📝 Creating tables...")
        await database.create_all()
        print("✅ All tables created successfully!")
    except Exception as e:
        print(f"❌ Error creating tables: {e}")
        raise
    finally:
        await database.dispose()

if __name__ == "__main__":
    print("🚀 Initializing notes auth database...")
    asyncio.run(create_tables())
    print("🎉 Database initialization complete!")
