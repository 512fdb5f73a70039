import logging
from datetime import datetime
from pymongo.errors import BulkWriteError
from qbank import mongo

logger = logging.getLogger(__name__)

DUPLICATE_KEY_ERROR = 11000


class Question:
    """Question model; one flat document per question"""

    @staticmethod
    def get_questions_by_course(course_id):
        """Get all active questions of a course"""
        return list(mongo.db.questions.find({'course_id': str(course_id), 'is_active': True}))


class MongoQuestionStore:
    """Commit interface used by the bulk importer"""

    def insert_questions(self, documents):
        """
        Insert a batch of question documents, skipping exact duplicates.

        Duplicates are caught by the unique ``fingerprint`` index. Returns the
        number of documents actually inserted. Any other write error is raised.
        """
        if not documents:
            return 0

        now = datetime.utcnow()
        for document in documents:
            document['created_at'] = now
            document['updated_at'] = now
            document['is_active'] = True

        try:
            result = mongo.db.questions.insert_many(documents, ordered=False)
            return len(result.inserted_ids)
        except BulkWriteError as e:
            write_errors = e.details.get('writeErrors', [])
            other_errors = [err for err in write_errors if err.get('code') != DUPLICATE_KEY_ERROR]
            if other_errors:
                raise
            logger.info(f"Skipped {len(write_errors)} duplicate questions")
            return e.details.get('nInserted', len(documents) - len(write_errors))
