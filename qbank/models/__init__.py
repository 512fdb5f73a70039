from .catalog import Subject, Course, MongoCatalogStore
from .question import Question, MongoQuestionStore

__all__ = ['Subject', 'Course', 'MongoCatalogStore', 'Question', 'MongoQuestionStore']
