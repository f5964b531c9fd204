"""
Configuration settings for the application
"""
import os
from dotenv import load_dotenv
from .env_config import BACKEND_URL, ENVIRONMENT, DEBUG, PORT

# Load environment variables
load_dotenv()

# Module-level configuration variables
GEMINI_API_KEY = os.getenv('GEMINI_API_KEY')
GEMINI_MODEL = os.getenv('GEMINI_MODEL', 'gemini-2.0-flash')
SUPABASE_URL = os.getenv('VITE_SUPABASE_URL')
SUPABASE_KEY = os.getenv('VITE_SUPABASE_ANON_KEY')

# Inference settings
LLM_TIMEOUT_SECONDS = float(os.getenv('LLM_TIMEOUT_SECONDS', '30'))

# Persistence settings
DEFAULT_FOLDER_COLOR = '#3B82F6'
TUTOR_HISTORY_LIMIT = int(os.getenv('TUTOR_HISTORY_LIMIT', '20'))

class Config:
    """
    Configuration class for the application.
    Contains all necessary settings and environment variables.
    """

    # API Keys
    GEMINI_API_KEY = GEMINI_API_KEY
    GEMINI_MODEL = GEMINI_MODEL
    SUPABASE_URL = SUPABASE_URL
    SUPABASE_KEY = SUPABASE_KEY

    # Environment settings
    ENVIRONMENT = ENVIRONMENT
    DEBUG = DEBUG
    PORT = PORT
    API_BASE_URL = BACKEND_URL

    LLM_TIMEOUT_SECONDS = LLM_TIMEOUT_SECONDS
    DEFAULT_FOLDER_COLOR = DEFAULT_FOLDER_COLOR
    TUTOR_HISTORY_LIMIT = TUTOR_HISTORY_LIMIT

    @classmethod
    def validate(cls) -> None:
        """
        Validate that the datastore settings are present.
        Raises ValueError if any required value is missing.

        The Gemini key is checked per request instead, since some endpoints
        answer with fallback content when it is absent.
        """
        if not cls.SUPABASE_URL:
            raise ValueError("VITE_SUPABASE_URL environment variable is not set")
        if not cls.SUPABASE_KEY:
            raise ValueError("VITE_SUPABASE_ANON_KEY environment variable is not set")
