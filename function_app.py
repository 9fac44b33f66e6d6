import azure.functions as func

from src.shared.config import get_settings_or_defaults
from src.shared.logging_utils import configure_logging

app = func.FunctionApp()

configure_logging(get_settings_or_defaults())

from src.function_blueprints.http_posts import bp as posts_bp  # noqa: E402

app.register_functions(posts_bp)
