import json
from unittest.mock import patch

import pytest

from conftest import FakeSupabase, echo_writes
from coursepilot.services.course_service import build_fallback_course
from coursepilot.services.course_store import CourseStore, CourseStoreError
from coursepilot.services.llm_service import InferenceError, MissingCredentialError

AUTH = {'Authorization': 'Bearer user-jwt'}


def test_health(client):
    response = client.get('/health')
    assert response.status_code == 200
    assert response.get_json() == {'status': 'healthy'}


@pytest.mark.parametrize('path', [
    '/api/generate-course',
    '/api/generate-lesson-recommendations',
    '/api/validate-quiz-answer',
    '/api/grade-quiz',
    '/api/generate-adaptive-feedback',
    '/api/generate-roadmap-content',
    '/api/ai-tutor-chat',
])
def test_preflight_is_answered_with_open_cors(client, path):
    response = client.options(path, headers={
        'Origin': 'https://app.example.com',
        'Access-Control-Request-Method': 'POST',
        'Access-Control-Request-Headers': 'authorization, content-type',
    })
    assert response.status_code == 200
    assert response.headers['Access-Control-Allow-Origin'] == '*'
    assert 'authorization' in response.headers['Access-Control-Allow-Headers'].lower()


def test_responses_carry_cors_header(client):
    with patch('coursepilot.controllers.roadmap_controller.roadmap_service') as service:
        service.generate_content.return_value = {'projects': []}
        response = client.post('/api/generate-roadmap-content', json={},
                               headers={'Origin': 'https://app.example.com'})
    assert response.headers['Access-Control-Allow-Origin'] == '*'


# Generation endpoints

def test_generate_course(client):
    content = build_fallback_course('Chess')
    with patch('coursepilot.controllers.course_controller.course_service') as service:
        service.generate_course.return_value = content
        response = client.post('/api/generate-course', json={
            'title': 'Chess', 'audience_level': 'Beginner', 'duration': '1-2 hours',
        })

    assert response.status_code == 200
    assert response.get_json() == {'success': True, 'courseContent': content}
    service.generate_course.assert_called_once_with(
        title='Chess', audience_level='Beginner', duration='1-2 hours', instructions=None
    )


def test_generate_course_missing_fields_is_a_hard_failure(client):
    response = client.post('/api/generate-course', json={'title': 'Chess'})
    assert response.status_code == 500
    body = response.get_json()
    assert 'Missing required fields' in body['error']
    assert 'details' in body


def test_generate_course_missing_credential_is_a_hard_failure(client):
    with patch('coursepilot.controllers.course_controller.course_service') as service:
        service.generate_course.side_effect = MissingCredentialError(
            'GEMINI_API_KEY environment variable is not configured'
        )
        response = client.post('/api/generate-course', json={
            'title': 'Chess', 'audience_level': 'Beginner', 'duration': '1-2 hours',
        })
    assert response.status_code == 500
    assert 'GEMINI_API_KEY' in response.get_json()['error']


def test_generate_recommendations(client):
    with patch('coursepilot.controllers.recommendation_controller.recommendation_service') as service:
        service.recommend_lessons.return_value = [{'id': 'r1'}]
        response = client.post('/api/generate-lesson-recommendations', json={
            'courseTitle': 'Chess', 'moduleTopics': ['Openings'], 'averageQuizScore': 9, 'requestedCount': 3,
        })

    assert response.status_code == 200
    assert response.get_json() == {'recommendations': [{'id': 'r1'}]}
    _, kwargs = service.recommend_lessons.call_args
    assert kwargs['course_title'] == 'Chess'
    assert kwargs['average_quiz_score'] == 9
    assert kwargs['requested_count'] == 3


def test_recommendations_fall_back_without_credentials(client):
    with patch('coursepilot.controllers.recommendation_controller.recommendation_service.llm') as llm:
        llm.has_credentials = False
        response = client.post('/api/generate-lesson-recommendations', json={'courseTitle': 'React'})

    assert response.status_code == 200
    recommendations = response.get_json()['recommendations']
    assert recommendations and all(rec['source'] == 'curated' for rec in recommendations)


def test_recommendations_without_title_fail(client):
    response = client.post('/api/generate-lesson-recommendations', json={})
    assert response.status_code == 500


def test_validate_quiz_answer(client):
    with patch('coursepilot.controllers.quiz_controller.quiz_service.llm') as llm:
        llm.complete.return_value = 'true'
        response = client.post('/api/validate-quiz-answer', json={
            'userAnswer': 'ML', 'question': 'What is ML?', 'correctAnswer': 'Machine Learning',
        })

    assert response.status_code == 200
    assert response.get_json() == {
        'success': True, 'isCorrect': True, 'userAnswer': 'ML', 'correctAnswer': 'Machine Learning',
    }


def test_validate_quiz_answer_provider_error(client):
    with patch('coursepilot.controllers.quiz_controller.quiz_service.llm') as llm:
        llm.complete.side_effect = InferenceError('Gemini API error: 503')
        response = client.post('/api/validate-quiz-answer', json={
            'userAnswer': 'a', 'question': 'q', 'correctAnswer': 'a',
        })
    assert response.status_code == 500
    assert response.get_json()['error'] == 'Gemini API error: 503'


GRADED_QUESTIONS = [
    {'id': 'q1', 'question': 'What is ML?', 'correct_answer': 'Machine Learning', 'options': []},
    {'id': 'q2', 'question': 'Capital of France?', 'correct_answer': 'Paris', 'options': ['Paris', 'Rome']},
    {'id': 'q3', 'question': 'Unanswered?', 'correct_answer': 'Yes'},
]


def test_grade_quiz(client):
    with patch('coursepilot.controllers.quiz_controller.quiz_service.llm') as llm:
        llm.complete.side_effect = ['true', 'false']
        response = client.post('/api/grade-quiz', json={
            'questions': GRADED_QUESTIONS, 'answers': {'q1': 'ML', 'q2': 'Rome'},
        })

    assert response.status_code == 200
    body = response.get_json()
    assert body['success'] is True
    assert body['score'] == 1
    assert body['total_questions'] == 3
    assert [result['isCorrect'] for result in body['results']] == [True, False, False]
    assert body['results'][2] == {'question_id': 'q3', 'userAnswer': '', 'isCorrect': False}
    assert llm.complete.call_count == 2


def test_grade_quiz_uses_exact_match_when_model_fails(client):
    with patch('coursepilot.controllers.quiz_controller.quiz_service.llm') as llm:
        llm.complete.side_effect = InferenceError('Gemini API error: 503')
        response = client.post('/api/grade-quiz', json={
            'questions': GRADED_QUESTIONS, 'answers': {'q1': 'ML', 'q2': ' paris '},
        })

    assert response.status_code == 200
    body = response.get_json()
    assert body['score'] == 1
    assert [result['isCorrect'] for result in body['results']] == [False, True, False]


@pytest.mark.parametrize('payload', [
    {},
    {'questions': GRADED_QUESTIONS},
    {'questions': 'q1', 'answers': {}},
    {'questions': GRADED_QUESTIONS, 'answers': ['ML']},
    {'questions': ['q1'], 'answers': {}},
    {'questions': [{'id': 'q1', 'question': 'What is ML?'}], 'answers': {}},
])
def test_grade_quiz_rejects_malformed_input(client, payload):
    response = client.post('/api/grade-quiz', json=payload)
    assert response.status_code == 400


def test_adaptive_feedback_falls_back_on_bad_output(client):
    with patch('coursepilot.controllers.feedback_controller.feedback_service.llm') as llm:
        llm.complete.return_value = 'no json here'
        response = client.post('/api/generate-adaptive-feedback', json={
            'quiz_score': 8, 'confidence_level': 7, 'struggle_topics': ['forks'], 'understanding_topics': [],
        })

    assert response.status_code == 200
    body = response.get_json()
    assert body['success'] is True
    assert body['feedback']['should_advance'] is True
    assert body['feedback']['weaknesses'] == ['forks']


def test_adaptive_feedback_accepts_numeric_strings(client):
    with patch('coursepilot.controllers.feedback_controller.feedback_service.llm') as llm:
        llm.complete.return_value = 'no json here'
        response = client.post('/api/generate-adaptive-feedback', json={
            'quiz_score': '8', 'confidence_level': '7', 'struggle_topics': [], 'understanding_topics': [],
        })

    assert response.status_code == 200
    assert response.get_json()['feedback']['should_advance'] is True
    user_prompt = llm.complete.call_args[0][1]
    assert '(80%)' in user_prompt
    assert 'Confidence Level: 7/10' in user_prompt


def test_adaptive_feedback_rejects_non_numeric_score(client):
    with patch('coursepilot.controllers.feedback_controller.feedback_service.llm') as llm:
        response = client.post('/api/generate-adaptive-feedback', json={
            'quiz_score': 'eight', 'confidence_level': 7,
        })
    assert response.status_code == 500
    llm.complete.assert_not_called()


def test_progress_checkpoint(client):
    response = client.post('/api/progress/checkpoint', json={
        'quiz_score': 9, 'confidence_level': 9, 'struggle_topics': [], 'course_title': 'Python',
    })
    assert response.status_code == 200
    feedback = response.get_json()['feedback']
    assert feedback['should_advance'] is True
    assert feedback['next_focus_areas'] == ['Advanced algorithms', 'System design', 'Code optimization']


def test_progress_checkpoint_requires_score(client):
    response = client.post('/api/progress/checkpoint', json={'confidence_level': 5})
    assert response.status_code == 400


def test_roadmap_unknown_type_is_a_hard_failure(client):
    response = client.post('/api/generate-roadmap-content', json={
        'courseTitle': 'Chess', 'category': 'games', 'contentType': 'mentors',
    })
    assert response.status_code == 500
    assert 'Unknown contentType' in response.get_json()['error']


def test_roadmap_falls_back_on_bad_output(client):
    with patch('coursepilot.controllers.roadmap_controller.roadmap_service.llm') as llm:
        llm.complete.return_value = 'nothing useful'
        response = client.post('/api/generate-roadmap-content', json={
            'courseTitle': 'Chess', 'category': 'games', 'contentType': 'projects',
        })
    assert response.status_code == 200
    assert response.get_json()['content']['projects'][0]['title'] == 'Chess Foundation Project'


def test_tutor_chat_stores_turn_with_caller_token(client):
    with patch('coursepilot.controllers.tutor_controller.llm_service') as llm, \
            patch('coursepilot.controllers.tutor_controller.get_course_store') as get_store:
        llm.complete.return_value = 'Control the center.'
        response = client.post('/api/ai-tutor-chat', headers=AUTH, json={
            'message': 'How do I open?', 'courseId': 'c1', 'userId': 'u1', 'context': {'courseTitle': 'Chess'},
        })

    assert response.status_code == 200
    assert response.get_json() == {'success': True, 'response': 'Control the center.'}
    get_store.assert_called_once_with('user-jwt')
    get_store.return_value.save_tutor_chat.assert_called_once()


def test_tutor_chat_answers_when_store_is_unavailable(client):
    with patch('coursepilot.controllers.tutor_controller.llm_service') as llm, \
            patch('coursepilot.controllers.tutor_controller.get_course_store') as get_store:
        llm.complete.return_value = 'Answer'
        get_store.side_effect = ValueError('Supabase URL or key is missing in configuration')
        response = client.post('/api/ai-tutor-chat', json={'message': 'Hi', 'courseId': 'c1', 'userId': 'u1'})
    assert response.status_code == 200
    assert response.get_json()['response'] == 'Answer'


def test_tutor_chat_provider_error(client):
    with patch('coursepilot.controllers.tutor_controller.llm_service') as llm:
        llm.complete.side_effect = InferenceError('Gemini API error')
        response = client.post('/api/ai-tutor-chat', json={'message': 'Hi'})
    assert response.status_code == 500
    assert response.get_json()['error'] == 'Gemini API error'


def test_tutor_chat_history(client):
    with patch('coursepilot.controllers.tutor_controller.get_course_store') as get_store:
        get_store.return_value.fetch_tutor_chats.return_value = [{'id': 1}]
        response = client.get('/api/tutor-chats?user_id=u1&course_id=c1', headers=AUTH)
    assert response.status_code == 200
    assert response.get_json() == {'data': [{'id': 1}]}
    get_store.return_value.fetch_tutor_chats.assert_called_once_with('u1', 'c1')


# Persistence endpoints

def test_create_course_generates_and_stores(client):
    content = build_fallback_course('Chess')
    with patch('coursepilot.controllers.course_controller.course_service') as service, \
            patch('coursepilot.controllers.course_controller.recommendation_service') as recommendations, \
            patch('coursepilot.controllers.course_controller.get_course_store') as get_store:
        service.generate_course.return_value = content
        get_store.return_value.create_course.return_value = {'id': 'c1', 'title': 'Chess'}
        recommendations.recommend_for_new_course.return_value = [{'id': 'similar-1'}]

        response = client.post('/api/courses', headers=AUTH, json={
            'user_id': 'u1', 'title': 'Chess', 'audience_level': 'Beginner', 'duration': '1-2 hours',
        })

    assert response.status_code == 201
    body = response.get_json()
    assert body['course'] == {'id': 'c1', 'title': 'Chess'}
    assert body['recommendations'] == [{'id': 'similar-1'}]
    get_store.assert_called_once_with('user-jwt')
    summary = recommendations.recommend_for_new_course.call_args[0][0]
    assert summary['courseTitle'] == 'Chess'
    assert summary['totalModules'] == 2


def test_create_course_stores_partial_model_reply(client):
    reply = json.dumps({'modules': [
        {'module_title': 'A', 'lessons': None},
        {'module_title': 'B', 'lessons': [
            'not a lesson',
            {'lesson_title': 'Basics', 'objectives': None, 'quiz': None, 'free_resources': None},
        ]},
    ]})
    supabase = FakeSupabase({table: echo_writes for table in
                             ('courses', 'modules', 'lessons', 'quiz_questions', 'resources')})
    with patch('coursepilot.controllers.course_controller.course_service.llm') as course_llm, \
            patch('coursepilot.controllers.course_controller.recommendation_service.llm') as rec_llm, \
            patch('coursepilot.controllers.course_controller.get_course_store') as get_store:
        course_llm.complete.return_value = reply
        rec_llm.has_credentials = False
        get_store.return_value = CourseStore(supabase)

        response = client.post('/api/courses', headers=AUTH, json={
            'user_id': 'u1', 'title': 'Chess', 'audience_level': 'Beginner', 'duration': '1-2 hours',
        })

    assert response.status_code == 201
    body = response.get_json()
    assert body['course']['title'] == 'Chess'
    assert len(body['recommendations']) == 2
    assert len(supabase.calls_for('lessons', 'upsert')) == 1
    assert supabase.calls_for('quiz_questions', 'upsert') == []


def test_create_course_store_failure(client):
    with patch('coursepilot.controllers.course_controller.course_service') as service, \
            patch('coursepilot.controllers.course_controller.get_course_store') as get_store:
        service.generate_course.return_value = build_fallback_course('Chess')
        get_store.return_value.create_course.side_effect = CourseStoreError('Failed to write lessons')
        response = client.post('/api/courses', json={
            'user_id': 'u1', 'title': 'Chess', 'audience_level': 'Beginner', 'duration': '1-2 hours',
        })
    assert response.status_code == 500
    assert response.get_json()['details'] == 'Failed to write lessons'


def test_create_course_requires_user(client):
    response = client.post('/api/courses', json={'title': 'Chess'})
    assert response.status_code == 400


def test_list_courses(client):
    with patch('coursepilot.controllers.course_controller.get_course_store') as get_store:
        get_store.return_value.fetch_courses.return_value = [{'id': 'c1', 'progress': 50}]
        response = client.get('/api/courses?user_id=u1', headers=AUTH)
    assert response.status_code == 200
    assert response.get_json() == {'data': [{'id': 'c1', 'progress': 50}]}


def test_list_courses_requires_user(client):
    assert client.get('/api/courses').status_code == 400


def test_delete_course(client):
    with patch('coursepilot.controllers.course_controller.get_course_store') as get_store:
        response = client.delete('/api/courses/c1')
    assert response.status_code == 200
    get_store.return_value.delete_course.assert_called_once_with('c1')


def test_move_course_out_of_folder(client):
    with patch('coursepilot.controllers.course_controller.get_course_store') as get_store:
        response = client.patch('/api/courses/c1/folder', json={'folder_id': None})
    assert response.status_code == 200
    get_store.return_value.move_course_to_folder.assert_called_once_with('c1', None)


def test_lesson_completion(client):
    with patch('coursepilot.controllers.course_controller.get_course_store') as get_store:
        response = client.patch('/api/lessons/l1/completion', json={'completed': True})
        missing = client.patch('/api/lessons/l1/completion', json={})
    assert response.status_code == 200
    assert missing.status_code == 400
    get_store.return_value.update_lesson_completion.assert_called_once_with('l1', True)


def test_folder_routes(client):
    with patch('coursepilot.controllers.folder_controller.get_course_store') as get_store:
        store = get_store.return_value
        store.list_folders.return_value = [{'id': 'f1'}]
        store.create_folder.return_value = {'id': 'f2', 'name': 'Languages', 'color': '#3B82F6'}

        listed = client.get('/api/folders?user_id=u1')
        created = client.post('/api/folders', json={'user_id': 'u1', 'name': 'Languages'})
        updated = client.patch('/api/folders/f1', json={'name': 'Lang', 'user_id': 'ignored'})
        deleted = client.delete('/api/folders/f1')

    assert listed.get_json() == {'data': [{'id': 'f1'}]}
    assert created.status_code == 201
    store.create_folder.assert_called_once_with('u1', 'Languages', None)
    assert updated.status_code == 200
    store.update_folder.assert_called_once_with('f1', {'name': 'Lang'})
    assert deleted.status_code == 200
    store.delete_folder.assert_called_once_with('f1')


def test_folder_update_without_fields(client):
    assert client.patch('/api/folders/f1', json={'user_id': 'u2'}).status_code == 400


def test_save_quiz_score(client):
    with patch('coursepilot.controllers.quiz_controller.get_course_store') as get_store:
        get_store.return_value.save_quiz_score.return_value = {'id': 's1', 'score': 8}
        response = client.post('/api/quiz-scores', headers=AUTH, json={
            'user_id': 'u1', 'lesson_id': 'l1', 'course_id': 'c1', 'score': 8, 'total_questions': 10,
            'confidence_level': 7, 'struggle_topics': ['forks'],
        })
    assert response.status_code == 201
    saved = get_store.return_value.save_quiz_score.call_args[0][0]
    assert saved.score == 8
    assert saved.struggle_topics == ['forks']


def test_save_quiz_score_rejects_out_of_range(client):
    with patch('coursepilot.controllers.quiz_controller.get_course_store') as get_store:
        response = client.post('/api/quiz-scores', json={
            'user_id': 'u1', 'lesson_id': 'l1', 'course_id': 'c1', 'score': 12, 'total_questions': 10,
        })
    assert response.status_code == 400
    get_store.assert_not_called()
