"""
Service wiring for the API.

Each factory is cached so one Supabase client and one dispatcher serve the
whole process. Tests swap them out with `app.dependency_overrides`.
"""

from functools import lru_cache

from fastapi import Depends

from matcher.assignment_matcher import AssignmentMatcher
from matcher.queue_assigner import QueueAssigner
from models.config_models import Config
from notifications.dispatcher import NotificationDispatcher
from storage.supabase_client import SupabaseClient
from utils.config_loader import load_config
from utils.logger import setup_logger


@lru_cache()
def get_config() -> Config:
    config = load_config()
    setup_logger(config.log_level)
    return config


@lru_cache()
def get_store() -> SupabaseClient:
    config = get_config()
    return SupabaseClient(
        config.credentials.supabase_url,
        config.credentials.supabase_key
    )


@lru_cache()
def get_notifier() -> NotificationDispatcher:
    config = get_config()
    return NotificationDispatcher(
        config.credentials.supabase_url,
        config.credentials.supabase_key,
        function_name=config.notifications.function_name,
        timeout=config.notifications.timeout,
    )


def get_matcher(
    config: Config = Depends(get_config),
    store: SupabaseClient = Depends(get_store),
    notifier: NotificationDispatcher = Depends(get_notifier),
) -> AssignmentMatcher:
    return AssignmentMatcher(store, notifier=notifier, policy=config.policy)


def get_queue_assigner(
    config: Config = Depends(get_config),
    store: SupabaseClient = Depends(get_store),
    notifier: NotificationDispatcher = Depends(get_notifier),
) -> QueueAssigner:
    return QueueAssigner(store, notifier=notifier, policy=config.policy)
