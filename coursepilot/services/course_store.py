"""
Course Store Module
Reads and writes courses and learner activity in Supabase
"""
import logging
from collections import defaultdict
from typing import Any, Dict, List, Optional
from supabase import Client
from coursepilot.config import Config
from coursepilot.models.course import Course, CourseTree, Folder, QuizScore, TutorChat
from coursepilot.utils.supabase_utils import bulk_upsert, fetch_in, get_supabase_client
from run import custom_logger

logger = logging.getLogger(__name__)

# Parents first, so every foreign key exists before its children are written
_TREE_TABLES = ('modules', 'lessons', 'quiz_questions', 'resources')


class CourseStoreError(Exception):
    """A datastore write did not complete."""


def calculate_course_progress(modules: List[Dict[str, Any]]) -> int:
    """
    Percentage of completed lessons across all modules, rounded.

    Args:
        modules: Modules with their ``lessons`` lists

    Returns:
        int: 0-100, 0 when the course has no lessons
    """
    if not modules:
        return 0

    total_lessons = sum(len(module.get('lessons', [])) for module in modules)
    if total_lessons == 0:
        return 0

    completed_lessons = sum(
        1 for module in modules
        for lesson in module.get('lessons', [])
        if lesson.get('completed')
    )
    return int(completed_lessons / total_lessons * 100 + 0.5)


class CourseStore:
    """
    Service class for course persistence

    Attributes:
        supabase_client (Client): Client carrying the caller's token
    """
    def __init__(self, supabase_client: Client):
        self.supabase_client = supabase_client

    def _table(self, name: str):
        return self.supabase_client.table(name)

    # Courses

    @custom_logger.log_function_call
    def create_course(self, user_id: str, course_data: Dict[str, Any],
                      course_content: Dict[str, Any]) -> Dict[str, Any]:
        """
        Persist a generated course and its whole subtree.

        Every row gets a client-generated id and is upserted, parents before
        children. If any batch fails the course row is deleted, which cascades
        to whatever part of the subtree was already written.

        Args:
            user_id (str): Owner of the course
            course_data (Dict[str, Any]): title, audience_level, duration, instructions, folder_id
            course_content (Dict[str, Any]): Generated ``{"modules": [...]}`` tree

        Returns:
            Dict[str, Any]: The stored course row

        Raises:
            CourseStoreError: If any write failed; nothing is left behind
        """
        course = Course(
            user_id=user_id,
            title=course_data['title'],
            audience_level=course_data['audience_level'],
            duration=course_data['duration'],
            instructions=course_data.get('instructions'),
            folder_id=course_data.get('folder_id'),
        )
        tree = CourseTree.from_content(course, course_content)

        course_result = bulk_upsert(self.supabase_client, 'courses', [course.to_record()])
        if course_result['errors']:
            raise CourseStoreError(f"Failed to create course: {'; '.join(course_result['errors'])}")

        for table in _TREE_TABLES:
            records = [row.to_record() for row in getattr(tree, table)]
            result = bulk_upsert(self.supabase_client, table, records)
            if result['errors']:
                logger.error(f"Writing {table} failed for course {course.id}, removing partial course")
                self._remove_partial_course(course.id)
                raise CourseStoreError(f"Failed to write {table}: {'; '.join(result['errors'])}")

        logger.info(
            f"Course {course.id} stored with {len(tree.modules)} modules, "
            f"{len(tree.lessons)} lessons, {len(tree.quiz_questions)} quiz questions, "
            f"{len(tree.resources)} resources"
        )
        return course_result['data'][0] if course_result['data'] else course.to_record()

    def _remove_partial_course(self, course_id: str) -> None:
        try:
            self._table('courses').delete().eq('id', course_id).execute()
        except Exception as e:
            logger.error(f"Failed to remove partial course {course_id}: {str(e)}", exc_info=True)

    @custom_logger.log_function_call
    def fetch_courses(self, user_id: str) -> List[Dict[str, Any]]:
        """
        Load all of a user's courses with their modules, lessons, quizzes and resources.

        Progress is recomputed from lesson completion and written back when it changed.

        Returns:
            List[Dict[str, Any]]: Newest course first
        """
        courses = self._table('courses')\
            .select('*')\
            .eq('user_id', user_id)\
            .order('created_at', desc=True)\
            .execute().data or []
        if not courses:
            return []

        modules = fetch_in(self.supabase_client, 'modules', 'course_id',
                           [course['id'] for course in courses], order_by='module_order')
        lessons = fetch_in(self.supabase_client, 'lessons', 'module_id',
                           [module['id'] for module in modules], order_by='lesson_order')
        lesson_ids = [lesson['id'] for lesson in lessons]
        quiz_questions = fetch_in(self.supabase_client, 'quiz_questions', 'lesson_id',
                                  lesson_ids, order_by='question_order')
        resources = fetch_in(self.supabase_client, 'resources', 'lesson_id',
                             lesson_ids, order_by='resource_order')

        quiz_by_lesson = defaultdict(list)
        for question in quiz_questions:
            quiz_by_lesson[question['lesson_id']].append(question)
        resources_by_lesson = defaultdict(list)
        for resource in resources:
            resources_by_lesson[resource['lesson_id']].append(resource)
        lessons_by_module = defaultdict(list)
        for lesson in lessons:
            lessons_by_module[lesson['module_id']].append({
                **lesson,
                'quiz': quiz_by_lesson[lesson['id']],
                'free_resources': resources_by_lesson[lesson['id']],
            })
        modules_by_course = defaultdict(list)
        for module in modules:
            modules_by_course[module['course_id']].append({
                **module,
                'lessons': lessons_by_module[module['id']],
            })

        result = []
        for course in courses:
            course_modules = modules_by_course[course['id']]
            progress = calculate_course_progress(course_modules)

            if progress != course.get('progress'):
                try:
                    self._table('courses').update({'progress': progress}).eq('id', course['id']).execute()
                except Exception as e:
                    # Stored progress is only a cache of the computed value
                    logger.warning(f"Could not write back progress for course {course['id']}: {str(e)}")

            result.append({**course, 'progress': progress, 'modules': course_modules})
        return result

    @custom_logger.log_function_call
    def delete_course(self, course_id: str) -> None:
        """Delete a course; quiz scores go first because they do not cascade."""
        self._table('quiz_scores').delete().eq('course_id', course_id).execute()
        logger.info(f"Quiz scores deleted for course {course_id}")

        self._table('courses').delete().eq('id', course_id).execute()
        logger.info(f"Course {course_id} deleted")

    @custom_logger.log_function_call
    def move_course_to_folder(self, course_id: str, folder_id: Optional[str]) -> None:
        self._table('courses').update({'folder_id': folder_id}).eq('id', course_id).execute()

    @custom_logger.log_function_call
    def update_lesson_completion(self, lesson_id: str, completed: bool) -> None:
        self._table('lessons').update({'completed': completed}).eq('id', lesson_id).execute()

    # Folders

    def list_folders(self, user_id: str) -> List[Dict[str, Any]]:
        response = self._table('folders')\
            .select('*')\
            .eq('user_id', user_id)\
            .order('created_at', desc=True)\
            .execute()
        return response.data or []

    @custom_logger.log_function_call
    def create_folder(self, user_id: str, name: str, color: Optional[str] = None) -> Dict[str, Any]:
        folder = Folder(user_id=user_id, name=name, color=color or Config.DEFAULT_FOLDER_COLOR)
        response = self._table('folders').insert(folder.to_record()).execute()
        if not response.data:
            raise CourseStoreError(f"Failed to create folder {name!r}")
        return response.data[0]

    def update_folder(self, folder_id: str, updates: Dict[str, Any]) -> None:
        allowed = {key: value for key, value in updates.items() if key in ('name', 'color')}
        if not allowed:
            raise ValueError("Nothing to update: only name and color can change")
        self._table('folders').update(allowed).eq('id', folder_id).execute()

    def delete_folder(self, folder_id: str) -> None:
        # Courses in the folder keep existing; the schema sets their folder_id to null
        self._table('folders').delete().eq('id', folder_id).execute()

    # Learner activity

    @custom_logger.log_function_call
    def save_quiz_score(self, score: QuizScore) -> Dict[str, Any]:
        response = self._table('quiz_scores').insert(score.to_record()).execute()
        if not response.data:
            raise CourseStoreError("Failed to save quiz score")
        return response.data[0]

    def save_tutor_chat(self, chat: TutorChat) -> Optional[Dict[str, Any]]:
        response = self._table('tutor_chats').insert(chat.to_record()).execute()
        return response.data[0] if response.data else None

    def fetch_tutor_chats(self, user_id: str, course_id: str,
                          limit: Optional[int] = None) -> List[Dict[str, Any]]:
        response = self._table('tutor_chats')\
            .select('*')\
            .eq('user_id', user_id)\
            .eq('course_id', course_id)\
            .order('created_at', desc=True)\
            .limit(limit or Config.TUTOR_HISTORY_LIMIT)\
            .execute()
        # Newest turns were fetched first; return them oldest first
        return list(reversed(response.data or []))


def get_course_store(access_token: Optional[str] = None) -> CourseStore:
    """Store bound to a client that acts as the caller."""
    return CourseStore(get_supabase_client(access_token))
