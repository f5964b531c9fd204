"""
Lesson recommendation service.

Asks the model for follow-up lessons and falls back to curated templates
whenever the model is unavailable, rate limited or returns unusable output.
"""
import math
import time
import logging
from typing import Any, Dict, List, Optional
from coursepilot.services.llm_service import LLMService, InferenceError, RateLimitError
from coursepilot.utils.course_category import classify_course
from coursepilot.utils.json_extractor import extract_json, StructuredResponseError
from run import custom_logger

logger = logging.getLogger(__name__)

DEFAULT_REQUESTED_COUNT = 6
MIN_AI_RELEVANCE = 0.7
MAX_RELEVANCE = 1.0
MIN_CURATED_RELEVANCE = 0.1

LESSON_TEMPLATES: Dict[str, List[Dict[str, Any]]] = {
    'spanish': [
        {'title': 'Advanced Spanish Conversation Techniques',
         'description': 'Master natural conversation flow and idiomatic expressions',
         'difficulty': 'Advanced', 'estimatedTime': '45 min', 'category': 'Speaking', 'baseRelevance': 0.9},
        {'title': 'Spanish Grammar Deep Dive: Subjunctive Mood',
         'description': 'Understand and practice the complex subjunctive mood',
         'difficulty': 'Advanced', 'estimatedTime': '60 min', 'category': 'Grammar', 'baseRelevance': 0.8},
        {'title': 'Spanish Cultural Context and Usage',
         'description': 'Learn cultural nuances behind language patterns',
         'difficulty': 'Intermediate', 'estimatedTime': '40 min', 'category': 'Culture', 'baseRelevance': 0.75},
    ],
    'webdev': [
        {'title': 'Advanced React Patterns and Performance',
         'description': 'Custom hooks, context patterns, and optimization techniques',
         'difficulty': 'Advanced', 'estimatedTime': '75 min', 'category': 'Frontend', 'baseRelevance': 0.9},
        {'title': 'Modern JavaScript ES2024 Features',
         'description': 'Latest JavaScript features and advanced usage patterns',
         'difficulty': 'Advanced', 'estimatedTime': '50 min', 'category': 'JavaScript', 'baseRelevance': 0.8},
        {'title': 'Web Performance and Optimization',
         'description': 'Core Web Vitals, advanced caching, and performance monitoring',
         'difficulty': 'Advanced', 'estimatedTime': '65 min', 'category': 'Performance', 'baseRelevance': 0.85},
    ],
    'programming': [
        {'title': 'Advanced Algorithm Design and Analysis',
         'description': 'Complex algorithms, time complexity optimization, and advanced data structures',
         'difficulty': 'Advanced', 'estimatedTime': '90 min', 'category': 'Algorithms', 'baseRelevance': 0.9},
        {'title': 'System Design and Architecture',
         'description': 'Scalable systems, microservices, and distributed computing',
         'difficulty': 'Advanced', 'estimatedTime': '80 min', 'category': 'System Design', 'baseRelevance': 0.85},
        {'title': 'Advanced Programming Patterns',
         'description': 'Design patterns, functional programming, and code architecture',
         'difficulty': 'Advanced', 'estimatedTime': '70 min', 'category': 'Patterns', 'baseRelevance': 0.8},
    ],
    'general': [
        {'title': 'Advanced Critical Thinking',
         'description': 'Complex problem-solving and analytical reasoning techniques',
         'difficulty': 'Advanced', 'estimatedTime': '50 min', 'category': 'Thinking', 'baseRelevance': 0.8},
        {'title': 'Professional Communication Mastery',
         'description': 'Advanced presentation and leadership communication skills',
         'difficulty': 'Advanced', 'estimatedTime': '45 min', 'category': 'Communication', 'baseRelevance': 0.7},
        {'title': 'Strategic Learning and Development',
         'description': 'Meta-learning techniques and advanced skill acquisition',
         'difficulty': 'Advanced', 'estimatedTime': '40 min', 'category': 'Learning', 'baseRelevance': 0.75},
    ],
}


def performance_level(average_quiz_score: float) -> str:
    """Map an average quiz score (out of 10) to beginner, intermediate or advanced."""
    if average_quiz_score < 6:
        return 'beginner'
    if average_quiz_score > 8:
        return 'advanced'
    return 'intermediate'


def get_lesson_templates(category: str) -> List[Dict[str, Any]]:
    return LESSON_TEMPLATES.get(category, LESSON_TEMPLATES['general'])


def _timestamp_ms() -> int:
    return int(time.time() * 1000)


def _clamp(value: float, lower: float, upper: float) -> float:
    return min(max(value, lower), upper)


def normalize_ai_recommendations(items: List[Any], course_title: str) -> List[Dict[str, Any]]:
    """
    Fill missing fields of model recommendations and clamp relevance into [0.7, 1.0].
    """
    stamp = _timestamp_ms()
    normalized = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            item = {}
        try:
            relevance = float(item.get('relevanceScore') or 0.8)
        except (TypeError, ValueError):
            relevance = 0.8
        if not math.isfinite(relevance):
            relevance = 0.8
        normalized.append({
            'id': item.get('id') or f'ai-rec-{stamp}-{index}',
            'title': item.get('title') or f'Advanced {course_title} Concepts',
            'description': item.get('description') or f'Advanced concepts building on your {course_title} learning',
            'difficulty': item.get('difficulty') or 'Intermediate',
            'estimatedTime': item.get('estimatedTime') or '45 min',
            'category': item.get('category') or 'Advanced Study',
            'relevanceScore': _clamp(relevance, MIN_AI_RELEVANCE, MAX_RELEVANCE),
            'source': 'ai-generated',
        })
    return normalized


def build_fallback_recommendations(course_title: str, average_quiz_score: float = 0,
                                   requested_count: int = DEFAULT_REQUESTED_COUNT) -> List[Dict[str, Any]]:
    """
    Curated recommendations for the course category, weighted by learner performance.
    """
    category = classify_course(course_title)
    level = performance_level(average_quiz_score)
    stamp = _timestamp_ms()
    logger.info(f"Generating fallback recommendations for {course_title!r} (category={category}, level={level})")

    recommendations = []
    for index, template in enumerate(get_lesson_templates(category)[:requested_count]):
        relevance = template['baseRelevance']
        if level == 'beginner':
            if template['difficulty'] == 'Beginner':
                relevance += 0.2
            if template['difficulty'] == 'Advanced':
                relevance -= 0.3
        elif level == 'advanced':
            if template['difficulty'] == 'Advanced':
                relevance += 0.2
            if template['difficulty'] == 'Beginner':
                relevance -= 0.2

        recommendations.append({
            'id': f'fallback-{category}-{stamp}-{index}',
            'title': f"{template['title']} (Advanced {course_title})",
            'description': template['description'],
            'difficulty': template['difficulty'],
            'estimatedTime': template['estimatedTime'],
            'category': template['category'],
            'relevanceScore': round(_clamp(relevance, MIN_CURATED_RELEVANCE, MAX_RELEVANCE), 2),
            'source': 'curated',
        })
    return sort_by_relevance(recommendations)


def build_similar_lessons(course_title: str) -> List[Dict[str, Any]]:
    """Two curated follow-up lessons for a course that was just created."""
    category = classify_course(course_title)
    stamp = _timestamp_ms()
    return [
        {
            'id': f'similar-{category}-{stamp}-{index}',
            'title': f"Advanced {template['title']}",
            'description': f"{template['description']} - Building on your {course_title} foundation",
            'difficulty': template['difficulty'],
            'estimatedTime': template['estimatedTime'],
            'category': template['category'],
            'relevanceScore': round(min(template['baseRelevance'] + 0.1, MAX_RELEVANCE), 2),
            'source': 'curated',
        }
        for index, template in enumerate(get_lesson_templates(category)[:2])
    ]


def sort_by_relevance(recommendations: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return sorted(recommendations, key=lambda rec: rec['relevanceScore'], reverse=True)


class RecommendationService:
    """
    Service class for lesson recommendations
    """
    def __init__(self, llm: Optional[LLMService] = None):
        self.llm = llm or LLMService()

    def _build_prompts(self, course_title: str, module_topics: List[str], lesson_topics: List[str],
                       progress: float, average_quiz_score: float, requested_count: int):
        level = performance_level(average_quiz_score)
        system_prompt = f"""You are an expert educational content curator. Create {requested_count} lesson recommendations that represent ADVANCED concepts building on current learning.

CRITICAL: Respond with ONLY valid JSON - no markdown, explanations, or extra text.

JSON STRUCTURE:
{{
  "recommendations": [
    {{
      "id": "unique-id",
      "title": "Advanced Lesson Title",
      "description": "How this builds on current learning",
      "difficulty": "Beginner|Intermediate|Advanced",
      "estimatedTime": "XX min",
      "category": "Category Name",
      "relevanceScore": 0.9,
      "source": "ai-generated"
    }}
  ]
}}"""
        user_prompt = f"""Course: "{course_title}"
Progress: {progress}%
Performance: {level} ({average_quiz_score}/10)
Topics: {', '.join(module_topics)}
Recent Lessons: {', '.join(lesson_topics[-3:])}

Generate {requested_count} ADVANCED lesson recommendations that build directly on these concepts."""
        return system_prompt, user_prompt

    def _generate_ai_recommendations(self, course_title: str, module_topics: List[str],
                                     lesson_topics: List[str], progress: float,
                                     average_quiz_score: float, requested_count: int) -> List[Dict[str, Any]]:
        system_prompt, user_prompt = self._build_prompts(
            course_title, module_topics, lesson_topics, progress, average_quiz_score, requested_count
        )
        raw_content = self.llm.complete(system_prompt, user_prompt, temperature=0.3, max_tokens=1500)

        data = extract_json(raw_content)
        if not isinstance(data, dict) or not isinstance(data.get('recommendations'), list):
            raise StructuredResponseError("Invalid recommendations structure")
        if not data['recommendations']:
            raise StructuredResponseError("Model returned no recommendations")
        return normalize_ai_recommendations(data['recommendations'], course_title)

    @custom_logger.log_function_call
    def recommend_lessons(self, course_title: str, module_topics: Optional[List[str]] = None,
                          lesson_topics: Optional[List[str]] = None, progress: float = 0,
                          average_quiz_score: float = 0,
                          requested_count: int = DEFAULT_REQUESTED_COUNT) -> List[Dict[str, Any]]:
        """
        Recommend follow-up lessons for a course.

        Args:
            course_title (str): Course title, required
            module_topics (Optional[List[str]]): Module titles of the course
            lesson_topics (Optional[List[str]]): Lesson titles, most recent last
            progress (float): Course progress percentage
            average_quiz_score (float): Average quiz score out of 10
            requested_count (int): Number of recommendations wanted

        Returns:
            List[Dict[str, Any]]: Recommendations sorted by relevance

        Raises:
            ValueError: If no course title is given
        """
        if not course_title:
            raise ValueError("Course title is required for generating recommendations")

        if not self.llm.has_credentials:
            logger.info("GEMINI_API_KEY not found, using fallback recommendations")
            return build_fallback_recommendations(course_title, average_quiz_score, requested_count)

        try:
            recommendations = self._generate_ai_recommendations(
                course_title, module_topics or [], lesson_topics or [],
                progress, average_quiz_score, requested_count
            )
        except RateLimitError:
            logger.warning("Rate limit exceeded - using fallback recommendations")
            return build_fallback_recommendations(course_title, average_quiz_score, requested_count)
        except (InferenceError, StructuredResponseError) as e:
            logger.warning(f"AI generation failed, using fallback recommendations: {str(e)}")
            return build_fallback_recommendations(course_title, average_quiz_score, requested_count)

        return sort_by_relevance(recommendations)[:requested_count]

    @custom_logger.log_function_call
    def recommend_for_new_course(self, course_summary: Dict[str, Any]) -> List[Dict[str, Any]]:
        """
        Two recommendations to show right after a course is created.

        New courses have no quiz history, so a good score of 7 is assumed.
        """
        course_title = course_summary.get('courseTitle', '')
        if self.llm.has_credentials:
            try:
                recommendations = self._generate_ai_recommendations(
                    course_title,
                    course_summary.get('moduleTopics', []),
                    course_summary.get('lessonTopics', []),
                    course_summary.get('progress', 0),
                    7,
                    DEFAULT_REQUESTED_COUNT,
                )
                return recommendations[:2]
            except (InferenceError, StructuredResponseError) as e:
                logger.warning(f"Failed to generate AI lessons for new course, using similar lessons: {str(e)}")
        return build_similar_lessons(course_title)
