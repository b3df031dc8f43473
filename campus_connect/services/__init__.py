"""
Service layer: business rules on top of the Data Access Layer.
"""
import logging

from flask import current_app, has_app_context

from campus_connect.config import Config
from campus_connect.data_access.user_dal import UserDAL
from campus_connect.utils.errors import NotFoundError
from campus_connect.utils.validators import Validator


def get_setting(name, default=None):
    """Read a setting from the active app, falling back to the Config class."""
    if has_app_context():
        return current_app.config.get(name, getattr(Config, name, default))
    return getattr(Config, name, default)


def get_logger(name):
    return current_app.logger if has_app_context() else logging.getLogger(name)


def load_user(user_id, entity='User', conn=None):
    """Fetch a user by id or raise; ``entity`` names the role in error messages."""
    user_id = Validator.validate_id(user_id, entity)
    user = UserDAL.get_user_by_id(user_id, conn=conn)
    if not user:
        raise NotFoundError(entity, user_id, message=f'{entity} not found')
    return user
