"""
Quiz Controller Module
Handles quiz answer validation, quiz grading and quiz score storage
"""
from flask import Blueprint, request, jsonify
from coursepilot.models.course import QuizScore
from coursepilot.services.course_store import get_course_store
from coursepilot.services.quiz_service import QuizService
from coursepilot.utils.supabase_utils import extract_bearer_token
import logging

logger = logging.getLogger(__name__)
quiz_bp = Blueprint('quiz', __name__)
quiz_service = QuizService()

QUIZ_SCORE_FIELDS = ('user_id', 'lesson_id', 'course_id', 'score', 'total_questions')
QUESTION_FIELDS = ('id', 'question', 'correct_answer')


@quiz_bp.route('/validate-quiz-answer', methods=['POST'])
def validate_quiz_answer():
    """
    Ask the model whether an answer is correct
    @param request: JSON with userAnswer, question, correctAnswer and optional options
    @returns: JSON response with isCorrect or error
    """
    try:
        data = request.get_json(silent=True) or {}
        result = quiz_service.validate_answer(
            user_answer=data.get('userAnswer'),
            question=data.get('question'),
            correct_answer=data.get('correctAnswer'),
            options=data.get('options'),
        )
        return jsonify(result), 200

    except Exception as e:
        logger.error(f"Error in validate-quiz-answer: {str(e)}", exc_info=True)
        return jsonify({
            'error': str(e),
            'details': repr(e)
        }), 500


@quiz_bp.route('/grade-quiz', methods=['POST'])
def grade_quiz():
    """
    Grade a submitted quiz, one model check per answered question
    @param request: JSON with questions (id, question, correct_answer, options) and
                    answers keyed by question id
    @returns: JSON response with score, total_questions and per-question results
    """
    data = request.get_json(silent=True) or {}
    questions = data.get('questions')
    answers = data.get('answers')
    if not isinstance(questions, list) or not isinstance(answers, dict):
        return jsonify({'error': 'Missing required fields: questions list and answers object are required'}), 400
    for question in questions:
        if not isinstance(question, dict) or not all(question.get(key) for key in QUESTION_FIELDS):
            return jsonify({'error': f"Each question needs {', '.join(QUESTION_FIELDS)}"}), 400

    try:
        result = quiz_service.grade_quiz(questions, answers)
        return jsonify({'success': True, **result}), 200

    except Exception as e:
        logger.error(f"Error in grade-quiz: {str(e)}", exc_info=True)
        return jsonify({
            'error': str(e),
            'details': repr(e)
        }), 500


@quiz_bp.route('/quiz-scores', methods=['POST'])
def save_quiz_score():
    """
    Store one quiz attempt
    @param request: JSON with user_id, lesson_id, course_id, score, total_questions and
                    optional time_taken_seconds, struggle_topics, confidence_level
    @returns: JSON response with the stored row
    """
    data = request.get_json(silent=True) or {}
    for field in QUIZ_SCORE_FIELDS:
        if data.get(field) is None:
            return jsonify({'error': f'Missing required field: {field}'}), 400

    try:
        score = QuizScore(
            user_id=data['user_id'],
            lesson_id=data['lesson_id'],
            course_id=data['course_id'],
            score=int(data['score']),
            total_questions=int(data['total_questions']),
            time_taken_seconds=data.get('time_taken_seconds'),
            struggle_topics=list(data.get('struggle_topics') or []),
            confidence_level=data.get('confidence_level'),
        )
    except (TypeError, ValueError) as e:
        logger.warning(f"Rejected quiz score: {str(e)}")
        return jsonify({
            'error': 'Invalid quiz score',
            'details': str(e)
        }), 400

    try:
        store = get_course_store(extract_bearer_token(request.headers.get('Authorization')))
        saved = store.save_quiz_score(score)
        return jsonify({
            'message': 'Quiz score saved successfully',
            'data': saved
        }), 201
    except Exception as e:
        logger.error(f"Error saving quiz score: {str(e)}", exc_info=True)
        return jsonify({
            'error': 'Failed to save quiz score',
            'details': str(e)
        }), 500
