"""SmLL: a small imperative language with a lark front-end and an environment/store interpreter."""

from .interp import Interpreter, run_program
from .parser import parse_program

__all__ = ["Interpreter", "parse_program", "run_program"]
