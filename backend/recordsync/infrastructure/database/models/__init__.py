from .records import functions_table, processes_table, tests_table

__all__ = [
    "tests_table",
    "processes_table",
    "functions_table",
]
