"""Removal of old user caches, logs and broken login items."""

from sweepctl.cleaner.login_items import LoginItem, find_broken_login_items, remove_login_items
from sweepctl.cleaner.targets import APP_SUPPORT_LOG_DIRS, USER_TARGETS, CleanTarget
from sweepctl.cleaner.user import CleanTask, UserCleaner

__all__ = [
    "APP_SUPPORT_LOG_DIRS",
    "USER_TARGETS",
    "CleanTarget",
    "CleanTask",
    "LoginItem",
    "UserCleaner",
    "find_broken_login_items",
    "remove_login_items",
]
