from .logger import setup_logging, truncate

__all__ = ["setup_logging", "truncate"]
