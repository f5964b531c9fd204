"""
AI tutor chat.
"""
import json
import logging
from typing import Any, Dict, List, Optional
from coursepilot.models.course import TutorChat
from coursepilot.services.llm_service import LLMService
from run import custom_logger

logger = logging.getLogger(__name__)


def build_tutor_prompt(context: Any = None, quiz_scores: Optional[List[Dict[str, Any]]] = None) -> str:
    context_text = json.dumps(context, indent=2, ensure_ascii=False) if context else 'No specific context provided'
    scores_text = json.dumps(quiz_scores, indent=2, ensure_ascii=False) if quiz_scores else 'No quiz data available'
    return f"""You are an intelligent AI tutor and learning coach. You help students with their studies by:

1. Answering questions about course content
2. Providing study tips and learning strategies
3. Offering encouragement and motivation
4. Explaining complex concepts in simple terms
5. Suggesting practice exercises and resources
6. Helping with homework and assignments

Context about the student:
{context_text}

Recent quiz performance:
{scores_text}

Be helpful, encouraging, and educational. Adapt your teaching style to the student's level and needs. Use examples and analogies when helpful. Always aim to help the student understand concepts rather than just giving answers."""


class TutorService:
    """
    Service class for tutor chat turns

    Attributes:
        llm (LLMService): Model client
        course_store: Optional store used to keep the conversation
    """
    def __init__(self, llm: Optional[LLMService] = None, course_store=None):
        self.llm = llm or LLMService()
        self.course_store = course_store

    @custom_logger.log_function_call
    def chat(self, message: str, course_id: Optional[str] = None, user_id: Optional[str] = None,
             context: Any = None, quiz_scores: Optional[List[Dict[str, Any]]] = None) -> str:
        """
        Answer one learner message.

        The turn is stored when a store, course and user are known. Storage
        failures are logged and the answer is still returned.

        Raises:
            ValueError: If the message is empty
            InferenceError: If the model call fails
        """
        if not message:
            raise ValueError("Missing required field: message is required")

        response = self.llm.complete(
            build_tutor_prompt(context, quiz_scores), message, temperature=0.7, max_tokens=1000
        )

        if self.course_store is not None and course_id and user_id:
            try:
                self.course_store.save_tutor_chat(
                    TutorChat(user_id=user_id, course_id=course_id, message=message, response=response)
                )
            except Exception as e:
                logger.warning(f"Could not store tutor chat for course {course_id}: {str(e)}")

        return response
