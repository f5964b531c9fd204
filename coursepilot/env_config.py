"""Environment-based configuration settings"""
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Environment settings
ENVIRONMENT = os.getenv('ENVIRONMENT', 'development')

# Backend URL configuration
BACKEND_URLS = {
    'development': 'http://localhost:5000',
    'production': os.getenv('BACKEND_URL', 'https://coursepilot-api.onrender.com')
}

# Get the appropriate backend URL based on environment
BACKEND_URL = BACKEND_URLS.get(ENVIRONMENT, BACKEND_URLS['development'])

DEBUG = ENVIRONMENT == 'development'
PORT = int(os.getenv('PORT', '5000'))
