import logging
from qbank import mongo

logger = logging.getLogger(__name__)


def initialize_database():
    """Create the indexes the catalog and question collections rely on"""
    try:
        # Catalog indexes
        mongo.db.subjects.create_index('name')
        mongo.db.courses.create_index([('subject_id', 1), ('name', 1)])

        # Questions collection indexes
        mongo.db.questions.create_index('course_id')
        mongo.db.questions.create_index('fingerprint', unique=True, sparse=True)

        logger.info("[OK] Database indexes created")
    except Exception as e:
        logger.warning(f"[WARN] Index creation warning (may already exist): {e}")

    logger.info("[OK] Database initialization complete")
