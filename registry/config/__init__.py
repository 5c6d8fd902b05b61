"""Configuration module for the research project registry."""
from .settings import AppConfig, load_settings

__all__ = ["AppConfig", "load_settings"]
