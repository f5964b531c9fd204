"""
Quiz answer validation.
The model judges semantic equivalence; plain string equality is the fallback.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence
from coursepilot.services.llm_service import LLMService, InferenceError
from run import custom_logger

logger = logging.getLogger(__name__)

VALIDATOR_SYSTEM_PROMPT = """You are a quiz answer validator. Your job is to determine if a user's answer is correct for a given question.

Rules:
1. Compare the user's answer with the correct answer
2. Consider semantic equivalence, not just exact text matching
3. Account for different phrasings that mean the same thing
4. Be case-insensitive
5. Consider partial matches if they demonstrate understanding
6. Return ONLY "true" or "false" - no explanations

Examples:
- User: "JavaScript", Correct: "javascript" -> true
- User: "Machine Learning", Correct: "ML" -> true
- User: "HTTP", Correct: "HyperText Transfer Protocol" -> true
- User: "completely wrong answer", Correct: "right answer" -> false"""


def answers_match(user_answer: Optional[str], correct_answer: Optional[str]) -> bool:
    """Case-insensitive comparison of trimmed answers."""
    return (user_answer or '').strip().lower() == (correct_answer or '').strip().lower()


class QuizService:
    """
    Service class for quiz answer validation
    """
    def __init__(self, llm: Optional[LLMService] = None):
        self.llm = llm or LLMService()

    @custom_logger.log_function_call
    def validate_answer(self, user_answer: str, question: str, correct_answer: str,
                        options: Optional[Sequence[str]] = None) -> Dict[str, Any]:
        """
        Ask the model whether an answer is correct.

        Args:
            user_answer (str): The learner's answer
            question (str): Question text
            correct_answer (str): Expected answer
            options (Optional[Sequence[str]]): Multiple choice options, if any

        Returns:
            Dict[str, Any]: success, isCorrect, userAnswer, correctAnswer

        Raises:
            ValueError: If a required field is missing
            InferenceError: If the model call fails
        """
        if not user_answer or not question or not correct_answer:
            raise ValueError("Missing required fields: userAnswer, question, and correctAnswer are required")

        user_prompt = f"""Question: "{question}"
Available options: {', '.join(options) if options else 'N/A'}
User's answer: "{user_answer}"
Correct answer: "{correct_answer}"

Is the user's answer correct? Respond with only "true" or "false"."""

        verdict = self.llm.complete(VALIDATOR_SYSTEM_PROMPT, user_prompt, temperature=0, max_tokens=10)
        is_correct = verdict.strip().lower() == 'true'
        logger.info(f"Validation result for {user_answer!r} vs {correct_answer!r}: {is_correct}")

        return {
            'success': True,
            'isCorrect': is_correct,
            'userAnswer': user_answer,
            'correctAnswer': correct_answer,
        }

    def grade_quiz(self, questions: List[Dict[str, Any]], answers: Dict[str, str]) -> Dict[str, Any]:
        """
        Score a whole quiz.

        Each question is validated by the model; when that call fails the
        answer is compared with ``answers_match`` instead.

        Args:
            questions: Stored quiz questions with id, question, options, correct_answer
            answers: Learner answers keyed by question id

        Returns:
            Dict[str, Any]: score, total_questions and per-question results
        """
        results = []
        for question in questions:
            user_answer = answers.get(question['id'], '')
            if not user_answer:
                is_correct = False
            else:
                try:
                    is_correct = self.validate_answer(
                        user_answer, question['question'], question['correct_answer'], question.get('options')
                    )['isCorrect']
                except InferenceError as e:
                    logger.warning(f"AI validation failed for question {question['id']}, using exact match: {str(e)}")
                    is_correct = answers_match(user_answer, question['correct_answer'])
            results.append({'question_id': question['id'], 'userAnswer': user_answer, 'isCorrect': is_correct})

        return {
            'score': sum(1 for result in results if result['isCorrect']),
            'total_questions': len(questions),
            'results': results,
        }
