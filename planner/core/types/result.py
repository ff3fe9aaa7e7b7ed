"""Rust-style result values used by the planner runtime.

Lane-local failures (unknown lane, unwaitable due date) are returned as
``Err(...)`` instead of raised; configuration mistakes stay exceptions.
"""

from result import Err, Ok, Result, is_err, is_ok

__all__ = ['Result', 'Ok', 'Err', 'is_ok', 'is_err']
