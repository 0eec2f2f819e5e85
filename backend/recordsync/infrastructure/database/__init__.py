from .base import Base
from .session import create_engine, create_session_factory
from .models import functions_table, processes_table, tests_table

__all__ = [
    "Base",
    "create_engine",
    "create_session_factory",
    "tests_table",
    "processes_table",
    "functions_table",
]
