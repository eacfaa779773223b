from motor.motor_asyncio import AsyncIOMotorClient
from logging_config import get_logger
from config import config
import certifi

logger = get_logger("database")

if config.MONGO_URI:
    logger.info(f"MongoDB connection string found: {config.MONGO_URI[:20]}...")
else:
    logger.warning("MONGO_URI not found in configuration, falling back to a local MongoDB")


class MongoConnection:
    """Opens the Motor client on first use, so importing the app never touches the network."""

    def __init__(self, uri, db_name):
        self.uri = uri
        self.db_name = db_name
        self._client = None

    @property
    def database(self):
        if self._client is None:
            if config.ENV == "production":
                self._client = AsyncIOMotorClient(self.uri, tlsCAFile=certifi.where())
            else:
                self._client = AsyncIOMotorClient(self.uri, tlsAllowInvalidCertificates=True)
            logger.info(f"MongoDB client opened on DB: {self.db_name}")
        return self._client[self.db_name]

    def close(self):
        if self._client is not None:
            self._client.close()
            self._client = None
            logger.info("MongoDB client closed")


connection = MongoConnection(config.MONGO_URI, config.DB_NAME)


class CollectionProxy:
    """Module-level handle for a collection; resolves it on each attribute access."""

    def __init__(self, name):
        self.name = name

    def __getattr__(self, attr):
        return getattr(connection.database[self.name], attr)


notifications_collection = CollectionProxy("notifications")
