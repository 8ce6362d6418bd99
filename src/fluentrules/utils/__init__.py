"""
Contains some useful utility functions to define and evaluate rules.
"""
from .blocking import run_blocking
from .query_object import optional_field, path_accessor, required_field
