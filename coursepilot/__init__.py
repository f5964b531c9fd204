"""
Main application initialization module.
Sets up Flask app with CORS and all API blueprints.
"""
from flask import Flask
from flask_cors import CORS
from dotenv import load_dotenv
import logging


# Load environment variables
load_dotenv()

CORS_ALLOWED_HEADERS = ['authorization', 'x-client-info', 'apikey', 'content-type']


def create_app(config_name=None):
    """
    Create and configure the Flask application
    @param config_name: str - Name of the configuration to use
    @returns: Flask - Configured Flask application instance
    """
    app = Flask(__name__)
    if config_name == 'testing':
        app.config['TESTING'] = True

    # Preflight requests are answered by flask-cors
    CORS(app, resources={
        r"/api/*": {
            "origins": "*",
            "allow_headers": CORS_ALLOWED_HEADERS,
            "methods": ["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        }
    })

    # Register blueprints with error handling
    try:
        from .controllers.course_controller import course_bp
        app.register_blueprint(course_bp, url_prefix='/api')
        logging.info("Successfully registered course blueprint")

        from .controllers.recommendation_controller import recommendation_bp
        app.register_blueprint(recommendation_bp, url_prefix='/api')
        logging.info("Successfully registered recommendation blueprint")

        from .controllers.quiz_controller import quiz_bp
        app.register_blueprint(quiz_bp, url_prefix='/api')
        logging.info("Successfully registered quiz blueprint")

        from .controllers.feedback_controller import feedback_bp
        app.register_blueprint(feedback_bp, url_prefix='/api')
        logging.info("Successfully registered feedback blueprint")

        from .controllers.roadmap_controller import roadmap_bp
        app.register_blueprint(roadmap_bp, url_prefix='/api')
        logging.info("Successfully registered roadmap blueprint")

        from .controllers.tutor_controller import tutor_bp
        app.register_blueprint(tutor_bp, url_prefix='/api')
        logging.info("Successfully registered tutor blueprint")

        from .controllers.folder_controller import folder_bp
        app.register_blueprint(folder_bp, url_prefix='/api')
        logging.info("Successfully registered folder blueprint")

        # Add a simple health check route
        @app.route('/health', methods=['GET'])
        def health_check():
            return {'status': 'healthy'}, 200

    except Exception as e:
        logging.error(f"Error registering blueprints: {str(e)}")
        raise

    return app
