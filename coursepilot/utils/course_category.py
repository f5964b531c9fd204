"""
Keyword-based course classification shared by recommendations and feedback.
"""
from typing import Iterable, List, Tuple

GENERAL = 'general'

# Checked in order; the first category with a matching keyword wins
CATEGORY_KEYWORDS: List[Tuple[str, Tuple[str, ...]]] = [
    ('spanish', ('spanish', 'español', 'gramática', 'vocabulario', 'conjugación', 'idioma')),
    ('webdev', ('react', 'javascript', 'html', 'css', 'frontend', 'web development', 'web', 'next')),
    ('programming', ('python', 'java', 'algorithm', 'programming', 'coding', 'software')),
    ('datascience', ('data', 'machine learning', 'ai', 'analytics', 'statistics')),
    ('design', ('design', 'ui', 'ux', 'graphic')),
]

CATEGORIES = tuple(name for name, _ in CATEGORY_KEYWORDS) + (GENERAL,)


def classify_course(title: str, module_titles: Iterable[str] = ()) -> str:
    """
    Classify a course by substring matching on its title and module titles.

    Args:
        title (str): Course title
        module_titles (Iterable[str]): Optional module titles to widen the match

    Returns:
        str: One of ``CATEGORIES``
    """
    parts = [title or '']
    parts.extend(module_title or '' for module_title in module_titles)
    content = ' '.join(parts).lower()

    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in content for keyword in keywords):
            return category
    return GENERAL
