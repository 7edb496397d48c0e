import motor.motor_asyncio
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from zigzig.models.settings import get_settings
from zigzig.utils.logging_config import get_logger

logger = get_logger(__name__)

settings = get_settings()

logger.info(f"Initializing MongoDB connection to database: {settings.db_name}")

# motor connects lazily, so building the client never blocks import
client = motor.motor_asyncio.AsyncIOMotorClient(settings.mongo_url)
db = client[settings.db_name]

# Collections
portfolios_coll = db["portfolios"]
job_postings_coll = db["job_postings"]
cached_portfolios_coll = db["cached_portfolios"]
candidate_matches_coll = db["candidate_matches"]
recruiter_activity_coll = db["recruiter_activity"]

INDEXES = (
    (portfolios_coll, [("is_published", ASCENDING)], {}),
    (portfolios_coll, [("user_id", ASCENDING)], {}),
    (job_postings_coll, [("id", ASCENDING)], {"unique": True}),
    (job_postings_coll, [("recruiter_id", ASCENDING)], {}),
    (cached_portfolios_coll, [("user_id", ASCENDING)], {"unique": True}),
    (candidate_matches_coll, [("id", ASCENDING)], {"unique": True}),
    (candidate_matches_coll, [("job_id", ASCENDING), ("status", ASCENDING)], {}),
    (candidate_matches_coll, [("job_id", ASCENDING), ("match_score", DESCENDING)], {}),
    (candidate_matches_coll, [("candidate_user_id", ASCENDING)], {}),
    (recruiter_activity_coll, [("recruiter_id", ASCENDING), ("created_at", DESCENDING)], {}),
)


async def init_indexes():
    """Index initialization for collections."""
    logger.info("Starting database index initialization")
    failures = 0
    for coll, keys, options in INDEXES:
        try:
            await coll.create_index(keys, **options)
            logger.debug(f"Created index on {coll.name}.{[k for k, _ in keys]}")
        except PyMongoError as e:
            if "already exists" in str(e).lower():
                logger.debug(f"Index on {coll.name}.{[k for k, _ in keys]} already exists")
            else:
                failures += 1
                logger.warning(f"Could not create index on {coll.name}.{[k for k, _ in keys]}: {e}")
    if failures:
        logger.warning(f"Database index initialization finished with {failures} failures")
    else:
        logger.info("Database index initialization completed successfully")
