"""
Application entry point with environment-specific server configuration
"""
import os
import sys
import logging
import colorlog
import functools
import inspect
import time
from coursepilot import create_app
from coursepilot.config import Config

class CustomLogger:
    """
    Custom logger class to handle detailed function logging with terminal output only
    """
    def __init__(self, name: str = 'coursepilot'):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.DEBUG)

        # Avoid stacking handlers when the module is imported twice (run as __main__)
        if not self.logger.handlers:
            console_handler = colorlog.StreamHandler()
            console_handler.setLevel(logging.DEBUG)

            console_formatter = colorlog.ColoredFormatter(
                "%(log_color)s[%(asctime)s] %(levelname)-8s%(reset)s "
                "%(blue)s%(name)s %(bold_white)s%(funcName)s:%(lineno)d%(reset)s - "
                "%(message_log_color)s%(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
                log_colors={
                    'DEBUG': 'cyan',
                    'INFO': 'green',
                    'WARNING': 'yellow',
                    'ERROR': 'red',
                    'CRITICAL': 'red,bg_white',
                },
                secondary_log_colors={
                    'message': {
                        'DEBUG': 'cyan',
                        'INFO': 'white',
                        'WARNING': 'yellow',
                        'ERROR': 'red',
                        'CRITICAL': 'red,bg_white',
                    }
                }
            )

            console_handler.setFormatter(console_formatter)
            self.logger.addHandler(console_handler)

    def log_function_call(self, func):
        """Decorator to log function calls with timing and parameters"""
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            func_name = func.__qualname__
            file_name = inspect.getfile(func)
            line_no = inspect.getsourcelines(func)[1]

            caller_frame = inspect.currentframe().f_back
            caller_info = ""
            if caller_frame:
                caller_info = f"called from {caller_frame.f_code.co_name} at line {caller_frame.f_lineno}"

            self.logger.info(
                f"→ Entering {func_name} "
                f"[{os.path.basename(file_name)}:{line_no}] {caller_info}"
            )

            # Prompts and model output can be long; keep the parameter line readable
            if args or kwargs:
                params = []
                if args:
                    params.append(f"args: {args!r:.300}")
                if kwargs:
                    params.append(f"kwargs: {kwargs!r:.300}")
                self.logger.debug(f"Parameters: {', '.join(params)}")

            start_time = time.time()
            try:
                result = func(*args, **kwargs)
                execution_time = (time.time() - start_time) * 1000

                self.logger.info(
                    f"← Completed {func_name} in {execution_time:.2f}ms"
                )
                return result

            except Exception as e:
                execution_time = (time.time() - start_time) * 1000
                self.logger.error(
                    f"✕ Error in {func_name} after {execution_time:.2f}ms: "
                    f"{str(e)}", exc_info=True
                )
                raise

        return wrapper

# Initialize the custom logger
custom_logger = CustomLogger()

def setup_logging():
    """Configure root logging level for the service modules"""
    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG if Config.DEBUG else logging.INFO)

@custom_logger.log_function_call
def run_development_server():
    """Run the development server with debug mode and hot reloading"""
    try:
        Config.validate()
        app = create_app()

        # Watch all Python files in the package directory
        extra_files = []
        for dirname, dirs, files in os.walk('coursepilot'):
            for filename in files:
                filename = os.path.join(dirname, filename)
                if os.path.isfile(filename):
                    extra_files.append(filename)

        custom_logger.logger.info(f"Starting development server for {Config.API_BASE_URL} with hot reloading enabled...")
        app.run(
            host='0.0.0.0',
            port=Config.PORT,
            debug=True,
            use_reloader=False,
            extra_files=extra_files
        )
    except Exception as e:
        custom_logger.logger.error(f"Failed to start development server: {str(e)}")
        sys.exit(1)

@custom_logger.log_function_call
def run_production_server():
    """Run the production server based on the operating system"""
    try:
        Config.validate()
        app = create_app()
        bind = f"0.0.0.0:{Config.PORT}"

        if sys.platform == 'win32':
            # Windows: Use waitress
            try:
                from waitress import serve
                custom_logger.logger.info("Starting production server with waitress...")
                serve(app, host='0.0.0.0', port=Config.PORT)
            except ImportError:
                custom_logger.logger.error("Please install waitress for Windows production deployment")
                custom_logger.logger.error("Run: pip install waitress")
                sys.exit(1)
        else:
            # Unix/Linux: Use gunicorn
            try:
                import gunicorn.app.base

                class StandaloneApplication(gunicorn.app.base.BaseApplication):
                    def __init__(self, app, options=None):
                        self.options = options or {}
                        self.application = app
                        super().__init__()

                    def load_config(self):
                        for key, value in self.options.items():
                            self.cfg.set(key.lower(), value)

                    def load(self):
                        return self.application

                # Course generation can hold a worker for the whole model call
                options = {
                    'bind': bind,
                    'workers': int(os.getenv('WEB_CONCURRENCY', '4')),
                    'timeout': 120,
                }

                custom_logger.logger.info("Starting production server with gunicorn...")
                StandaloneApplication(app, options).run()

            except ImportError:
                custom_logger.logger.error("Failed to import gunicorn")
                custom_logger.logger.error("Please install gunicorn for Unix/Linux production deployment")
                custom_logger.logger.error("Run: pip install gunicorn")
                sys.exit(1)

    except Exception as e:
        custom_logger.logger.error(f"Failed to start production server: {str(e)}")
        sys.exit(1)

if __name__ == '__main__':
    setup_logging()
    if Config.ENVIRONMENT == 'production':
        run_production_server()
    else:
        run_development_server()
