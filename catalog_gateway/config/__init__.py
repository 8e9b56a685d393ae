"""
Configuration Package

Environment-specific Flask configuration classes.
"""

from .settings import BaseConfig, DevelopmentConfig, ProductionConfig, TestingConfig, get_config

__all__ = ['BaseConfig', 'DevelopmentConfig', 'TestingConfig', 'ProductionConfig', 'get_config']
