"""
Feedback Service Module
Adaptive feedback after a quiz, from the model or from local rules
"""
from typing import Any, Dict, List, Optional, Sequence
import logging
from urllib.parse import quote
from coursepilot.services.llm_service import LLMService
from coursepilot.utils.course_category import classify_course, GENERAL
from coursepilot.utils.json_extractor import extract_json, StructuredResponseError
from run import custom_logger

logger = logging.getLogger(__name__)

FEEDBACK_SYSTEM_PROMPT = """You are an AI learning coach that provides personalized feedback and adaptive learning recommendations. You MUST respond ONLY with valid JSON - no markdown, no explanations, no extra text.

Return ONLY this JSON structure:

{
  "weaknesses": ["weakness1", "weakness2"],
  "recommended_resources": [
    {
      "title": "Resource Title",
      "url": "https://example.com",
      "type": "Video Tutorial"
    }
  ],
  "should_advance": true,
  "review_topics": ["topic1", "topic2"],
  "motivational_message": "Encouraging message here",
  "next_focus_areas": ["area1", "area2"]
}

CRITICAL RULES:
1. Respond with ONLY the JSON object - no other text
2. Base recommendations on the user's performance data
3. Be encouraging but honest about areas needing improvement
4. Provide 1-3 specific recommended resources with real URLs when possible
5. should_advance should be true if score >= 70% and confidence >= 6
6. Include 2-4 next focus areas based on struggle topics
7. Make motivational message personal and specific to their performance"""

MOTIVATIONAL_MESSAGES = {
    'spanish': {
        'excellent': '¡Excelente trabajo con {title}! Tu dominio del español está mejorando considerablemente. ¡Sigue practicando!',
        'good': 'Buen progreso en {title}! Estás construyendo una base sólida en español. La práctica constante te llevará al éxito.',
        'encouraging': 'Aprender {title} requiere tiempo y paciencia. Cada experto fue principiante. Enfócate en entender en lugar de la velocidad.',
    },
    'webdev': {
        'excellent': "Outstanding work on {title}! You're demonstrating excellent mastery of web development concepts.",
        'good': "Good progress on {title}! You're building solid web development foundations. Keep practicing!",
        'encouraging': 'Learning {title} takes time and patience. Every expert web developer was once a beginner.',
    },
    'programming': {
        'excellent': 'Excellent work on {title}! Your programming skills are developing strongly.',
        'good': "Good progress on {title}! You're building solid programming foundations.",
        'encouraging': 'Learning {title} takes time. Focus on understanding concepts rather than speed.',
    },
    GENERAL: {
        'excellent': "Outstanding work on {title}! You're demonstrating excellent mastery.",
        'good': "Good progress on {title}! You're building solid foundations.",
        'encouraging': 'Learning {title} takes time and patience. Every expert was once a beginner.',
    },
}

NEXT_FOCUS_AREAS = {
    'spanish': ['Conversación avanzada', 'Gramática compleja', 'Cultura hispana'],
    'webdev': ['Advanced React patterns', 'Backend integration', 'Performance optimization'],
    'programming': ['Advanced algorithms', 'System design', 'Code optimization'],
    'datascience': ['Advanced ML models', 'Data visualization', 'Statistical analysis'],
    'design': ['Advanced design systems', 'User research', 'Interaction design'],
    GENERAL: ['Advanced concepts', 'Real-world applications', 'Best practices'],
}

STUDY_RESOURCES = {
    'spanish': [
        {'title': 'SpanishDict', 'url': 'https://www.spanishdict.com/', 'type': 'Dictionary & Grammar'},
        {'title': 'Conjuguemos', 'url': 'https://conjuguemos.com/', 'type': 'Verb Practice'},
        {'title': 'News in Slow Spanish', 'url': 'https://www.newsinslowspanish.com/', 'type': 'Listening Practice'},
        {'title': 'Lingolia Spanish', 'url': 'https://espanol.lingolia.com/', 'type': 'Grammar Exercises'},
    ],
    'webdev': [
        {'title': 'MDN Web Docs', 'url': 'https://developer.mozilla.org/', 'type': 'Documentation'},
        {'title': 'FreeCodeCamp', 'url': 'https://www.freecodecamp.org/', 'type': 'Interactive Course'},
        {'title': 'CSS Tricks', 'url': 'https://css-tricks.com/', 'type': 'Articles'},
    ],
    'programming': [
        {'title': 'LeetCode', 'url': 'https://leetcode.com/', 'type': 'Practice Problems'},
        {'title': 'GeeksforGeeks', 'url': 'https://www.geeksforgeeks.org/', 'type': 'Tutorials'},
        {'title': 'Codecademy', 'url': 'https://www.codecademy.com/', 'type': 'Interactive Course'},
    ],
    GENERAL: [
        {'title': 'Khan Academy', 'url': 'https://www.khanacademy.org/', 'type': 'Free Courses'},
        {'title': 'Coursera', 'url': 'https://www.coursera.org/', 'type': 'University Courses'},
        {'title': 'YouTube Educational', 'url': 'https://www.youtube.com/edu', 'type': 'Video Tutorials'},
    ],
}

# (min percentage, min confidence, analysis, should advance, recommendations)
PERFORMANCE_BANDS = [
    (80, 8, 'Excellent mastery! You have a strong understanding of the concepts and high confidence.', True,
     ['Move to advanced topics in this area',
      'Consider teaching others to reinforce learning',
      'Apply concepts in real projects']),
    (70, 6, 'Good progress with solid understanding. Some areas need reinforcement.', True,
     ['Review weaker topics before advancing',
      'Practice with additional exercises',
      'Build confidence through repetition']),
]


def score_percentage(quiz_score: float) -> int:
    """Quiz score out of 10 as a rounded percentage."""
    return int(quiz_score / 10 * 100 + 0.5)


def build_fallback_feedback(quiz_score: float, confidence_level: int,
                            struggle_topics: Sequence[str]) -> Dict[str, Any]:
    """Rule-based feedback used when the model output cannot be parsed."""
    percentage = score_percentage(quiz_score)
    struggle_topics = list(struggle_topics)

    if percentage >= 80:
        message = "Great job! You're making excellent progress."
    elif percentage >= 60:
        message = 'Good work! Keep practicing to strengthen your understanding.'
    else:
        message = "Don't worry, learning takes time. Focus on the basics and you'll improve!"

    search_topic = struggle_topics[0] if struggle_topics else 'study tips'
    return {
        'weaknesses': struggle_topics[:3],
        'recommended_resources': [{
            'title': 'Review Core Concepts',
            'url': 'https://www.youtube.com/results?search_query=' + quote(search_topic, safe=''),
            'type': 'Video Tutorial',
        }],
        'should_advance': percentage >= 70 and confidence_level >= 6,
        'review_topics': struggle_topics[:2],
        'motivational_message': message,
        'next_focus_areas': struggle_topics[:3] if struggle_topics else ['Review fundamentals', 'Practice exercises'],
    }


def get_motivational_message(category: str, level: str, course_title: str) -> str:
    messages = MOTIVATIONAL_MESSAGES.get(category, MOTIVATIONAL_MESSAGES[GENERAL])
    return messages[level].format(title=course_title)


def get_study_resources(category: str, struggle_topics: Sequence[str], course_title: str) -> List[Dict[str, str]]:
    """Category resources followed by one search link per struggle topic, at most four."""
    resources = list(STUDY_RESOURCES.get(category, STUDY_RESOURCES[GENERAL]))
    for topic in struggle_topics:
        resources.append({
            'title': f'{topic} - Specific Help',
            'url': 'https://www.google.com/search?q=' + quote(f'{topic} {course_title} tutorial', safe=''),
            'type': 'Targeted Tutorial',
        })
    return resources[:4]


def build_detailed_feedback(quiz_score: float, confidence_level: int, struggle_topics: Sequence[str],
                            course_title: str = '', module_titles: Sequence[str] = ()) -> Dict[str, Any]:
    """
    Local analysis of a module checkpoint.

    Args:
        quiz_score: Score out of 10
        confidence_level: Self-reported confidence, 1-10
        struggle_topics: Topics the learner found difficult
        course_title: Used for classification and messages
        module_titles: Module titles, also used for classification

    Returns:
        Dict[str, Any]: Adaptive feedback plus performance_analysis and study_recommendations
    """
    percentage = score_percentage(quiz_score)
    struggle_topics = list(struggle_topics)
    category = classify_course(course_title, module_titles)
    logger.info(f"Detected course category {category} for {course_title!r}")

    for min_percentage, min_confidence, analysis, should_advance, recommendations in PERFORMANCE_BANDS:
        if percentage >= min_percentage and confidence_level >= min_confidence:
            break
    else:
        should_advance = False
        if percentage >= 60 or confidence_level >= 5:
            analysis = 'Moderate understanding. Foundation is building but needs strengthening.'
            recommendations = ['Focus on fundamental concepts',
                               'Seek additional resources for difficult topics',
                               'Practice more before moving forward']
        else:
            analysis = 'Concepts need significant review. Take time to build solid foundations.'
            recommendations = ['Review all basic concepts thoroughly',
                               'Consider alternative learning approaches',
                               "Don't rush - solid understanding takes time"]

    if percentage >= 80:
        level = 'excellent'
    elif percentage >= 60:
        level = 'good'
    else:
        level = 'encouraging'

    return {
        'weaknesses': struggle_topics[:3],
        'recommended_resources': get_study_resources(category, struggle_topics, course_title),
        'should_advance': should_advance,
        'review_topics': struggle_topics,
        'motivational_message': get_motivational_message(category, level, course_title),
        'next_focus_areas': (list(NEXT_FOCUS_AREAS.get(category, NEXT_FOCUS_AREAS[GENERAL]))
                             if should_advance else struggle_topics[:3]),
        'performance_analysis': analysis,
        'study_recommendations': list(recommendations),
    }


class FeedbackService:
    """
    Service class for adaptive feedback
    """
    def __init__(self, llm: Optional[LLMService] = None):
        self.llm = llm or LLMService()

    @custom_logger.log_function_call
    def generate_feedback(self, quiz_score: float, confidence_level: int,
                          struggle_topics: Optional[List[str]] = None,
                          understanding_topics: Optional[List[str]] = None,
                          reflection_notes: Optional[str] = None) -> Dict[str, Any]:
        """
        Generate adaptive feedback for one quiz attempt.

        Raises:
            ValueError: If score or confidence is missing
            InferenceError: If the model call fails
        """
        if quiz_score is None or confidence_level is None:
            raise ValueError("Missing required fields: quiz_score and confidence_level are required")

        struggle_topics = struggle_topics or []
        understanding_topics = understanding_topics or []
        percentage = score_percentage(quiz_score)

        user_prompt = f"""Generate adaptive feedback for a student with this performance data:

Quiz Score: {quiz_score}/10 ({percentage}%)
Confidence Level: {confidence_level}/10
Topics Struggled With: {', '.join(struggle_topics) or 'None specified'}
Topics Understood Well: {', '.join(understanding_topics) or 'None specified'}
Reflection Notes: {reflection_notes or 'No reflection provided'}

Based on this data:
- Identify key weaknesses from struggle topics and low quiz performance
- Recommend 1-2 relevant learning resources with real URLs
- Determine if they should advance (score >= 70% AND confidence >= 6)
- Suggest specific topics to review if needed
- Generate an encouraging but realistic motivational message
- Identify 2-3 focus areas for next week

Return ONLY the JSON object with no extra text."""

        raw_content = self.llm.complete(FEEDBACK_SYSTEM_PROMPT, user_prompt, temperature=0.3, max_tokens=1000)

        try:
            feedback = extract_json(raw_content)
            if not isinstance(feedback, dict) or not feedback.get('motivational_message'):
                raise StructuredResponseError("Invalid feedback structure: missing motivational_message")
        except StructuredResponseError as e:
            logger.warning(f"Feedback JSON unusable ({str(e)}), using rule-based feedback")
            return build_fallback_feedback(quiz_score, confidence_level, struggle_topics)

        return feedback
