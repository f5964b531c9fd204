"""
Roadmap Service Module
Generates portfolio projects and career opportunities for a finished course
"""
from typing import Any, Callable, Dict, Optional, Tuple
import logging
from coursepilot.services.llm_service import LLMService
from coursepilot.utils.json_extractor import extract_json, StructuredResponseError
from run import custom_logger

logger = logging.getLogger(__name__)

PROJECTS_SYSTEM_PROMPT = """You are an expert project designer who creates engaging, hands-on learning projects. You MUST respond ONLY with valid JSON - no markdown, no explanations, no extra text.

CRITICAL JSON STRUCTURE (respond with ONLY this):
{
  "projects": [
    {
      "title": "Project Title Here",
      "difficulty": "Beginner|Intermediate|Advanced",
      "duration": "1-2 weeks",
      "description": "Detailed project description explaining what the learner will build",
      "tasks": [
        "Specific actionable task 1",
        "Specific actionable task 2",
        "Specific actionable task 3",
        "Specific actionable task 4",
        "Specific actionable task 5",
        "Specific actionable task 6"
      ]
    }
  ]
}"""

OPPORTUNITIES_SYSTEM_PROMPT = """You are a career advisor who creates real-world opportunities for learners. You MUST respond ONLY with valid JSON - no markdown, no explanations, no extra text.

CRITICAL JSON STRUCTURE (respond with ONLY this):
{
  "opportunities": [
    {
      "title": "Opportunity Title Here",
      "type": "Job|Freelance|Internship|Contract|Fellowship",
      "company": "Company Name",
      "location": "Location",
      "salary": "$X-Y/hour or $X,XXX/month",
      "description": "Detailed description of the opportunity",
      "requirements": [
        "Requirement 1",
        "Requirement 2",
        "Requirement 3",
        "Requirement 4"
      ],
      "website": "https://example.com"
    }
  ]
}"""


def _projects_user_prompt(course_title: str, category: str) -> str:
    return f"""Generate 3 hands-on projects for the course "{course_title}" in the {category} domain.

Create:
1. One BEGINNER project (1-2 weeks duration)
2. One INTERMEDIATE project (2-3 weeks duration)
3. One ADVANCED project (4-6 weeks duration)

For each project, provide:
- Creative and engaging title
- Clear description explaining what the learner will build
- 6 specific, actionable tasks
- Realistic duration estimate
- Difficulty level (Beginner/Intermediate/Advanced)

Make projects practical, progressive in complexity, portfolio-worthy and directly related to "{course_title}" content.

Return ONLY the JSON object with no additional text or formatting."""


def _opportunities_user_prompt(course_title: str, category: str) -> str:
    return f"""Generate 3 real-world opportunities for someone who has completed the course "{course_title}" in the {category} domain.

Create opportunities that include:
1. One entry-level position (Job/Internship)
2. One freelance/contract opportunity
3. One growth opportunity (Fellowship/Advanced role)

For each opportunity, provide:
- Realistic job title
- Company or platform name
- Location (mix of remote and on-site)
- Competitive salary range
- Clear description of responsibilities
- 4 realistic requirements
- Valid website URL (use real platforms like LinkedIn, Upwork, etc.)

Make opportunities realistic for course graduates, varied in type and location, and directly applicable to "{course_title}" skills.

Return ONLY the JSON object with no additional text or formatting."""


def build_fallback_projects(course_title: str) -> Dict[str, Any]:
    return {
        'projects': [{
            'title': f'{course_title} Foundation Project',
            'difficulty': 'Beginner',
            'duration': '1-2 weeks',
            'description': f'Build a fundamental project that demonstrates core concepts from {course_title}',
            'tasks': [
                f'Set up project structure for {course_title}',
                'Implement basic functionality',
                'Add user interface components',
                'Test core features',
                'Document your learning process',
                'Create project presentation',
            ],
        }]
    }


def build_fallback_opportunities(course_title: str) -> Dict[str, Any]:
    return {
        'opportunities': [{
            'title': f'{course_title} Specialist',
            'type': 'Freelance',
            'company': 'Various Clients',
            'location': 'Remote',
            'salary': '$25-50/hour',
            'description': f'Apply your {course_title} skills to help clients solve problems',
            'requirements': [
                f'Proficiency in {course_title}',
                'Strong communication skills',
                'Problem-solving abilities',
                'Portfolio of relevant work',
            ],
            'website': 'https://www.upwork.com',
        }]
    }


# content type -> (system prompt, user prompt builder, fallback builder)
CONTENT_TYPES: Dict[str, Tuple[str, Callable[[str, str], str], Callable[[str], Dict[str, Any]]]] = {
    'projects': (PROJECTS_SYSTEM_PROMPT, _projects_user_prompt, build_fallback_projects),
    'opportunities': (OPPORTUNITIES_SYSTEM_PROMPT, _opportunities_user_prompt, build_fallback_opportunities),
}


class RoadmapService:
    """
    Service class for roadmap content
    """
    def __init__(self, llm: Optional[LLMService] = None):
        self.llm = llm or LLMService()

    @custom_logger.log_function_call
    def generate_content(self, course_title: str, category: str, content_type: str) -> Dict[str, Any]:
        """
        Generate projects or opportunities for a course.

        Args:
            course_title (str): Course title
            category (str): Domain of the course, used in the prompt
            content_type (str): ``projects`` or ``opportunities``

        Returns:
            Dict[str, Any]: ``{"projects": [...]}`` or ``{"opportunities": [...]}``

        Raises:
            ValueError: If a field is missing or the content type is unknown
            InferenceError: If the model call fails
        """
        if not course_title or not category or not content_type:
            raise ValueError("Missing required fields: courseTitle, category, and contentType are required")
        if content_type not in CONTENT_TYPES:
            raise ValueError(f"Unknown contentType {content_type!r}: expected projects or opportunities")

        system_prompt, build_user_prompt, build_fallback = CONTENT_TYPES[content_type]
        logger.info(f"Generating {content_type} for course {course_title!r} in category {category!r}")

        raw_content = self.llm.complete(
            system_prompt, build_user_prompt(course_title, category), temperature=0.1, max_tokens=4000
        )

        try:
            content = extract_json(raw_content)
            if not isinstance(content, dict) or not isinstance(content.get(content_type), list):
                raise StructuredResponseError(f"Invalid roadmap structure: missing {content_type} array")
        except StructuredResponseError as e:
            logger.warning(f"Roadmap JSON unusable ({str(e)}), using fallback {content_type}")
            return build_fallback(course_title)

        return content
