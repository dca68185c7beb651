"""Configuration module."""

from .settings import TalkbackConfig, load_config, create_example_env_file, setup_logging

__all__ = ["TalkbackConfig", "load_config", "create_example_env_file", "setup_logging"]
