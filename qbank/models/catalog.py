from datetime import datetime
from bson import ObjectId
from bson.errors import InvalidId
from qbank import mongo
from qbank.ingest.catalog import CatalogEntity


class Subject:
    """Subject (specialty) model"""

    @staticmethod
    def create_subject(subject_data):
        """Create a new subject"""
        subject_data['created_at'] = datetime.utcnow()
        subject_data['updated_at'] = datetime.utcnow()
        subject_data['is_active'] = True

        result = mongo.db.subjects.insert_one(subject_data)
        subject_data['_id'] = result.inserted_id
        return subject_data

    @staticmethod
    def get_all_subjects():
        """Get all active subjects ordered by name"""
        return list(mongo.db.subjects.find({'is_active': True}).sort('name', 1))


class Course:
    """Course (lecture) model, always attached to a subject"""

    @staticmethod
    def create_course(course_data):
        """Create a new course"""
        course_data['created_at'] = datetime.utcnow()
        course_data['updated_at'] = datetime.utcnow()
        course_data['is_active'] = True

        result = mongo.db.courses.insert_one(course_data)
        course_data['_id'] = result.inserted_id
        return course_data

    @staticmethod
    def find_by_id(course_id):
        """Find course by ID"""
        try:
            if isinstance(course_id, str):
                course_id = ObjectId(course_id)
        except InvalidId:
            return None
        return mongo.db.courses.find_one({'_id': course_id, 'is_active': True})

    @staticmethod
    def get_all_courses():
        """Get all active courses"""
        return list(mongo.db.courses.find({'is_active': True}).sort([('subject_id', 1), ('name', 1)]))


class MongoCatalogStore:
    """Catalog read/write interface used by the import matcher"""

    def list_subjects(self):
        return [
            CatalogEntity(id=str(s['_id']), name=s.get('name', ''))
            for s in Subject.get_all_subjects()
        ]

    def list_courses(self):
        return [
            CatalogEntity(id=str(c['_id']), name=c.get('name', ''), parent_id=str(c.get('subject_id')))
            for c in Course.get_all_courses()
        ]

    def create_subject(self, name):
        subject = Subject.create_subject({'name': name})
        return CatalogEntity(id=str(subject['_id']), name=name)

    def create_course(self, name, subject_id):
        course = Course.create_course({'name': name, 'subject_id': str(subject_id)})
        return CatalogEntity(id=str(course['_id']), name=name, parent_id=str(subject_id))
