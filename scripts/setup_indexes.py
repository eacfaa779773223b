import sys
import os
import asyncio
from pymongo import ASCENDING, DESCENDING

# Add parent directory to path to import database
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import connection, notifications_collection
from logging_config import get_logger, setup_logging

logger = get_logger("setup_indexes")

async def create_indexes():
    print("🚀 Starting Index Creation...")

    print("\n📦 Notifications Collection:")
    # For Unread Count: find({user_id: X, read: False})
    await notifications_collection.create_index([("user_id", ASCENDING), ("read", ASCENDING)])
    print("✅ Created index: (user_id, read)")

    # For List Notifications: find({user_id: X}).sort(created_at: -1)
    await notifications_collection.create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])
    print("✅ Created index: (user_id, created_at DESC)")

    # Mark-as-read / delete look up by our own id, not _id
    await notifications_collection.create_index([("id", ASCENDING)], unique=True)
    print("✅ Created index: (id UNIQUE)")

    print("\n✨ All indexes created successfully!")
    logger.info("Notification indexes ensured")
    connection.close()

if __name__ == "__main__":
    setup_logging(file_logging=False)
    asyncio.run(create_indexes())
