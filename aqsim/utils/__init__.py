from .logging import setup_logging, setup_from_config

__all__ = ['setup_logging', 'setup_from_config']
