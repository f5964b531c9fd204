"""
Course Model Module
Defines the records stored for a generated course and its learner activity
"""
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field, asdict
import uuid
from coursepilot.config import DEFAULT_FOLDER_COLOR


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class Course:
    """
    Course Model
    Represents a row of the ``courses`` table
    """
    user_id: str
    title: str
    audience_level: str
    duration: str
    instructions: Optional[str] = None
    folder_id: Optional[str] = None
    progress: int = 0
    id: str = field(default_factory=new_id)

    def to_record(self) -> Dict[str, Any]:
        record = asdict(self)
        # Only send folder_id when the course is filed
        if not record['folder_id']:
            record.pop('folder_id')
        return record


@dataclass
class Module:
    course_id: str
    module_title: str
    module_order: int
    id: str = field(default_factory=new_id)

    def to_record(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Lesson:
    module_id: str
    lesson_title: str
    lesson_order: int
    content: str
    objectives: List[str] = field(default_factory=list)
    completed: bool = False
    id: str = field(default_factory=new_id)

    def to_record(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class QuizQuestion:
    lesson_id: str
    question: str
    options: List[str]
    correct_answer: str
    question_order: int
    id: str = field(default_factory=new_id)

    def to_record(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Resource:
    lesson_id: str
    title: str
    url: str
    resource_order: int
    id: str = field(default_factory=new_id)

    def to_record(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class QuizScore:
    """
    Quiz attempt for one lesson. Score is out of 10, confidence is self-reported 1-10.
    """
    user_id: str
    lesson_id: str
    course_id: str
    score: int
    total_questions: int
    time_taken_seconds: Optional[int] = None
    struggle_topics: List[str] = field(default_factory=list)
    confidence_level: Optional[int] = None

    def __post_init__(self):
        if not 0 <= self.score <= 10:
            raise ValueError(f"score must be between 0 and 10, got {self.score}")
        if self.confidence_level is not None and not 1 <= self.confidence_level <= 10:
            raise ValueError(f"confidence_level must be between 1 and 10, got {self.confidence_level}")

    def to_record(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class TutorChat:
    user_id: str
    course_id: str
    message: str
    response: str

    def to_record(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Folder:
    user_id: str
    name: str
    color: str = DEFAULT_FOLDER_COLOR

    def to_record(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CourseTree:
    """Flattened rows for one generated course, ready for table-by-table writes"""
    course: Course
    modules: List[Module] = field(default_factory=list)
    lessons: List[Lesson] = field(default_factory=list)
    quiz_questions: List[QuizQuestion] = field(default_factory=list)
    resources: List[Resource] = field(default_factory=list)

    @classmethod
    def from_content(cls, course: Course, course_content: Dict[str, Any]) -> 'CourseTree':
        """
        Build rows from a generated ``{"modules": [...]}`` tree.
        Orders are 1-based and follow the generated order.

        Null or missing subtrees become empty, and entries that are not
        objects are skipped.
        """
        tree = cls(course=course)
        for module_index, module_data in enumerate(_entries(course_content.get('modules')), start=1):
            module = Module(
                course_id=course.id,
                module_title=module_data.get('module_title') or f'Module {module_index}',
                module_order=module_index,
            )
            tree.modules.append(module)

            for lesson_index, lesson_data in enumerate(_entries(module_data.get('lessons')), start=1):
                lesson = Lesson(
                    module_id=module.id,
                    lesson_title=lesson_data.get('lesson_title') or f'Lesson {lesson_index}',
                    lesson_order=lesson_index,
                    objectives=_items(lesson_data.get('objectives')),
                    content=lesson_data.get('content') or '',
                )
                tree.lessons.append(lesson)

                for quiz_index, quiz_data in enumerate(_entries(lesson_data.get('quiz')), start=1):
                    tree.quiz_questions.append(QuizQuestion(
                        lesson_id=lesson.id,
                        question=quiz_data.get('question') or '',
                        options=_items(quiz_data.get('options')),
                        correct_answer=quiz_data.get('answer') or '',
                        question_order=quiz_index,
                    ))

                for resource_index, resource_data in enumerate(_entries(lesson_data.get('free_resources')), start=1):
                    tree.resources.append(Resource(
                        lesson_id=lesson.id,
                        title=resource_data.get('title') or '',
                        url=resource_data.get('url') or '',
                        resource_order=resource_index,
                    ))
        return tree


def _items(value: Any) -> List[Any]:
    return list(value) if isinstance(value, list) else []


def _entries(value: Any) -> List[Dict[str, Any]]:
    return [entry for entry in _items(value) if isinstance(entry, dict)]
