"""Read deployment settings from the active Flask app, if any."""
from flask import current_app, has_app_context


def get_setting(key: str, default=None):
    """Config value from current_app, or default outside an app context."""
    if has_app_context():
        return current_app.config.get(key, default)
    return default
