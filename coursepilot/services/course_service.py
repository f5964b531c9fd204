"""
Course Service Module
Generates a course curriculum (modules, lessons, quizzes, resources) with the LLM
"""
from typing import Any, Dict, List, Optional
import logging
from coursepilot.services.llm_service import LLMService
from coursepilot.utils.json_extractor import extract_json, StructuredResponseError
from run import custom_logger

logger = logging.getLogger(__name__)

# duration -> (modules, lessons per module, words per lesson, complexity)
DURATION_PLANS = {
    '1-2 hours': ('3-4', '2-3', '300-400', 'basic with practical examples'),
    '3-5 hours': ('4-6', '3-4', '400-500', 'comprehensive with hands-on exercises'),
    '6-10 hours': ('6-8', '4-5', '500-600', 'detailed with projects and real-world applications'),
    '10+ hours': ('8-10', '5-6', '600-800', 'comprehensive with advanced concepts and industry practices'),
}
DEFAULT_PLAN = DURATION_PLANS['3-5 hours']

REQUIRED_FIELDS = ('title', 'audience_level', 'duration')


def get_course_plan(duration: str) -> Dict[str, str]:
    module_count, lessons_per_module, word_count, complexity = DURATION_PLANS.get(duration, DEFAULT_PLAN)
    return {
        'module_count': module_count,
        'lessons_per_module': lessons_per_module,
        'content_word_count': word_count,
        'complexity_level': complexity,
    }


def build_fallback_course(course_title: str) -> Dict[str, Any]:
    """
    Two-module placeholder course used when the model output cannot be parsed.
    Every lesson has four objectives, content, two quiz questions and two resources.
    """
    return {
        'modules': [
            {
                'module_title': f'Fundamentals of {course_title}',
                'lessons': [
                    {
                        'lesson_title': f'Introduction to {course_title}',
                        'objectives': [
                            f'Understand the core concepts of {course_title}',
                            'Learn fundamental principles and terminology',
                            'Identify key components and their relationships',
                            'Apply basic knowledge in practical scenarios',
                        ],
                        'content': (
                            f'Welcome to your comprehensive {course_title} course! This lesson introduces you '
                            f'to the fundamental concepts and principles that form the foundation of {course_title}. '
                            "We'll explore the essential terminology, key components, and basic principles that "
                            "you'll build upon throughout this course. Understanding these fundamentals is crucial "
                            'for your success in more advanced topics. Through practical examples and step-by-step '
                            "explanations, you'll gain confidence and establish a solid foundation for your "
                            'learning journey.'
                        ),
                        'quiz': [
                            {
                                'question': f'What is the primary focus of learning {course_title}?',
                                'options': ['Basic understanding only', 'Practical application',
                                            'Theoretical knowledge', 'All comprehensive aspects'],
                                'answer': 'All comprehensive aspects',
                            },
                            {
                                'question': f'Why is it important to understand fundamentals in {course_title}?',
                                'options': ["It's not important", 'Builds foundation for advanced concepts',
                                            'Just for beginners', 'Only for testing'],
                                'answer': 'Builds foundation for advanced concepts',
                            },
                        ],
                        'free_resources': [
                            {'title': f'{course_title} Complete Guide',
                             'url': 'https://example.com/comprehensive-guide'},
                            {'title': f'{course_title} Fundamentals Tutorial',
                             'url': 'https://example.com/fundamentals'},
                        ],
                    }
                ],
            },
            {
                'module_title': f'Intermediate {course_title} Concepts',
                'lessons': [
                    {
                        'lesson_title': f'Building Your {course_title} Skills',
                        'objectives': [
                            'Develop intermediate-level competency',
                            'Apply concepts in practical situations',
                            'Solve common problems and challenges',
                            'Prepare for advanced topic areas',
                        ],
                        'content': (
                            'Now that you have a solid foundation, this lesson focuses on building your '
                            f"intermediate skills in {course_title}. We'll explore more complex concepts, practical "
                            "applications, and real-world scenarios. You'll learn to solve common problems, "
                            'implement best practices, and develop the confidence to tackle more challenging '
                            f'aspects of {course_title}. This lesson bridges the gap between basic understanding '
                            'and advanced mastery.'
                        ),
                        'quiz': [
                            {
                                'question': f'What characterizes intermediate-level {course_title} skills?',
                                'options': ['Basic knowledge only', 'Practical problem-solving ability',
                                            'Advanced theory', 'Expert-level mastery'],
                                'answer': 'Practical problem-solving ability',
                            },
                            {
                                'question': 'How do intermediate skills prepare you for advanced topics?',
                                'options': ["They don't", 'Build confidence and practical experience',
                                            'Only theoretical knowledge', 'Replace advanced learning'],
                                'answer': 'Build confidence and practical experience',
                            },
                        ],
                        'free_resources': [
                            {'title': f'{course_title} Practical Examples',
                             'url': 'https://example.com/practical-examples'},
                            {'title': f'{course_title} Problem Solving Guide',
                             'url': 'https://example.com/problem-solving'},
                        ],
                    }
                ],
            },
        ]
    }


class CourseService:
    """
    Service class for curriculum generation
    """
    def __init__(self, llm: Optional[LLMService] = None):
        self.llm = llm or LLMService()

    def _build_system_prompt(self, plan: Dict[str, str]) -> str:
        return f"""You are an expert educational content creator specializing in comprehensive, multi-section course development. You MUST respond ONLY with valid JSON - no markdown, no explanations, no extra text.

Create a {plan['complexity_level']} course with multiple progressive sections that build upon each other. The course should be structured as a complete learning journey with clear progression from fundamentals to advanced applications.

CRITICAL JSON STRUCTURE (respond with ONLY this):
{{
  "modules": [
    {{
      "module_title": "Module Title Here",
      "lessons": [
        {{
          "lesson_title": "Lesson Title Here",
          "objectives": ["objective 1", "objective 2", "objective 3", "objective 4"],
          "content": "Comprehensive lesson content with detailed explanations, examples, practical applications, step-by-step instructions, and real-world scenarios",
          "quiz": [
            {{
              "question": "Question text?",
              "options": ["option1", "option2", "option3", "option4"],
              "answer": "option1"
            }},
            {{
              "question": "Question text 2?",
              "options": ["optionA", "optionB", "optionC", "optionD"],
              "answer": "optionB"
            }}
          ],
          "free_resources": [
            {{"title": "Resource title", "url": "https://example.com"}},
            {{"title": "Resource title 2", "url": "https://example2.com"}}
          ]
        }}
      ]
    }}
  ]
}}

MANDATORY REQUIREMENTS:
1. Create {plan['module_count']} progressive modules that build upon each other
2. Each module should have {plan['lessons_per_module']} lessons with varying complexity
3. Each lesson needs exactly 4 learning objectives, {plan['content_word_count']} words of content, 2 quiz questions, 2 resources
4. Content must include: theory, practical examples, step-by-step instructions, real-world applications
5. For language courses: include grammar rules, vocabulary lists, cultural context, usage examples
6. For technical courses: include code examples, best practices, troubleshooting, project ideas
7. Quiz answers must be EXACT matches to one of the four options
8. Use only ASCII characters - no special Unicode symbols
9. Create a logical learning progression from basic to advanced concepts
10. Include practical exercises and real-world applications in content"""

    def _build_user_prompt(self, title: str, audience_level: str, duration: str,
                           instructions: Optional[str], plan: Dict[str, str]) -> str:
        special = f"- Special Instructions: {instructions}\n" if instructions else ""
        return f"""Create a comprehensive {duration} course about "{title}" for {audience_level} level students.

COURSE SPECIFICATIONS:
- Topic: {title}
- Level: {audience_level}
- Duration: {duration}
- Complexity: {plan['complexity_level']}
{special}
DETAILED REQUIREMENTS:
- Create {plan['module_count']} modules with logical progression
- Each module should have {plan['lessons_per_module']} lessons
- Cover fundamentals, intermediate concepts, and practical applications
- Include comprehensive examples, exercises, and real-world scenarios
- For language learning: cover speaking, listening, reading, writing, grammar, vocabulary, culture
- For technical topics: cover theory, practical implementation, best practices, troubleshooting
- Ensure each quiz question tests understanding and has one clearly correct answer
- Provide diverse, high-quality free resources for further learning

PROGRESSION STRUCTURE:
- Early modules: foundational concepts and basic skills
- Middle modules: intermediate applications and skill building
- Later modules: advanced concepts and real-world integration

Return ONLY the JSON object with no additional text or formatting."""

    def parse_course_content(self, raw_content: str, course_title: str) -> Dict[str, Any]:
        """
        Turn the model output into a course tree, or the fallback course.

        Args:
            raw_content (str): Model completion
            course_title (str): Used to fill the fallback course

        Returns:
            Dict[str, Any]: ``{"modules": [...]}``
        """
        try:
            course_content = extract_json(raw_content, strip_non_ascii=True, repair=True)
            if not isinstance(course_content, dict) or not isinstance(course_content.get('modules'), list):
                raise StructuredResponseError("Invalid course structure: missing modules array")
        except StructuredResponseError as e:
            logger.warning(f"Course JSON unusable ({str(e)}), creating fallback course structure")
            logger.debug(f"Raw content that failed to parse: {raw_content[:1000]}")
            return build_fallback_course(course_title)

        if len(course_content['modules']) < 3:
            logger.info(f"Course structure has only {len(course_content['modules'])} modules")
        logger.info("Course JSON parsed successfully")
        return course_content

    @custom_logger.log_function_call
    def generate_course(self, title: str, audience_level: str, duration: str,
                        instructions: Optional[str] = None) -> Dict[str, Any]:
        """
        Generate a structured curriculum for a course request

        Args:
            title (str): Course topic
            audience_level (str): e.g. Beginner, Intermediate, Advanced
            duration (str): One of the ``DURATION_PLANS`` keys, others use the default plan
            instructions (Optional[str]): Free-text extra instructions

        Returns:
            Dict[str, Any]: ``{"modules": [...]}``

        Raises:
            ValueError: If a required field is missing
            InferenceError: If the model call fails
        """
        missing = [name for name, value in zip(REQUIRED_FIELDS, (title, audience_level, duration)) if not value]
        if missing:
            logger.error(f"Missing required fields: {missing}")
            raise ValueError("Missing required fields: title, audience_level, and duration are required")

        plan = get_course_plan(duration)
        logger.info(f"Generating course {title!r} ({audience_level}, {duration})")

        raw_content = self.llm.complete(
            self._build_system_prompt(plan),
            self._build_user_prompt(title, audience_level, duration, instructions, plan),
            temperature=0.1,
            max_tokens=8000,
        )
        return self.parse_course_content(raw_content, title)


def summarize_course(course: Dict[str, Any]) -> Dict[str, Any]:
    """
    Learning context used for recommendations and tutoring.

    Args:
        course (Dict[str, Any]): Course with nested modules and lessons

    Returns:
        Dict[str, Any]: courseTitle, moduleTopics, lessonTopics, progress, totalModules
    """
    modules: List[Dict[str, Any]] = course.get('modules') or []
    modules = [module for module in modules if isinstance(module, dict)]
    module_topics = [module.get('module_title') for module in modules if module.get('module_title')]
    lesson_topics = [
        lesson.get('lesson_title')
        for module in modules
        for lesson in module.get('lessons') or []
        if isinstance(lesson, dict) and lesson.get('lesson_title')
    ]
    return {
        'courseTitle': course.get('title', ''),
        'moduleTopics': module_topics,
        'lessonTopics': lesson_topics,
        'progress': course.get('progress') or 0,
        'totalModules': len(modules),
    }
