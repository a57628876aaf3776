from .io import read_yaml, save_json
from .log import setup_logging

__all__ = ["read_yaml", "save_json", "setup_logging"]
