from flask import jsonify
import logging

from qbank.study import bp
from qbank.study.grouping import reconstruct, count_questions
from qbank.models import Course, Question
from qbank.utils.decorators import login_required

logger = logging.getLogger(__name__)


def _serialize(question):
    question = dict(question)
    question['id'] = str(question.pop('_id', question.get('id', '')))
    for key in ('created_at', 'updated_at'):
        if question.get(key) is not None:
            question[key] = question[key].isoformat()
    return question


@bp.route('/courses/<course_id>/questions', methods=['GET'])
@login_required
def get_course_questions(course_id):
    """Questions of a course in display order, cases regrouped"""
    try:
        course = Course.find_by_id(course_id)
        if not course:
            return jsonify({'error': 'Course not found'}), 404

        questions = [_serialize(q) for q in Question.get_questions_by_course(course_id)]
        units = reconstruct(questions)

        return jsonify({
            'course': {'id': str(course['_id']), 'name': course.get('name', '')},
            'units': [unit.to_dict() for unit in units],
            'total_questions': count_questions(units)
        }), 200
    except Exception as e:
        logger.error(f"Error loading questions for course {course_id}: {str(e)}")
        return jsonify({'error': str(e)}), 500
