"""Error taxonomy shared by the front-end and the interpreter.

Errors are classified by the semantic layer they belong to, not by the time
they are detected: "static" interpreter errors (undefined names, constant
re-assignment, wrong types) are still raised while walking the tree, so they
only surface along the control-flow path that is actually executed.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Optional, Union

if TYPE_CHECKING:
    from .ast import Block


class ErrorKind(str, Enum):
    LEXICAL_ERROR = "LEXICAL_ERROR"
    SYNTAX_ERROR = "SYNTAX_ERROR"
    STATIC_SEMANTIC_ERROR = "STATIC_SEMANTIC_ERROR"
    DYNAMIC_SEMANTIC_ERROR = "DYNAMIC_SEMANTIC_ERROR"


class StaticErrorType(str, Enum):
    UNDEFINED_IDENTIFICATOR = "UNDEFINED_IDENTIFICATOR"
    CONSTANT_REASSIGNMENT = "CONSTANT_REASSIGNMENT"
    WRONG_TYPE = "WRONG_TYPE"
    UNKNOWN_DECLARATION = "UNKNOWN_DECLARATION"


class DynamicErrorType(str, Enum):
    DIVISION_BY_ZERO = "DIVISION_BY_ZERO"
    UNKNOWN_OPERATOR = "UNKNOWN_OPERATOR"
    UNKNOWN_COMMAND = "UNKNOWN_COMMAND"
    UNKNOWN_EXPRESSION = "UNKNOWN_EXPRESSION"


InterpreterErrorType = Union[StaticErrorType, DynamicErrorType]


class SmllError(Exception):
    """Base class for every language-level failure (lexing through evaluation)."""

    def __init__(
        self,
        message: str,
        kind: ErrorKind,
        *,
        line: Optional[int] = None,
        column: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.line = line
        self.column = column

    def __str__(self) -> str:
        if self.line is None:
            return f"'{self.kind.value}': '{self.message}'"
        return f"'{self.kind.value}' at line {self.line}, column {self.column}: '{self.message}'"


class LexicalError(SmllError):
    def __init__(self, message: str, *, line: Optional[int] = None, column: Optional[int] = None) -> None:
        super().__init__(message, ErrorKind.LEXICAL_ERROR, line=line, column=column)


class ParseError(SmllError):
    """Token sequence rejected by the grammar."""

    def __init__(self, message: str, *, line: Optional[int] = None, column: Optional[int] = None) -> None:
        super().__init__(message, ErrorKind.SYNTAX_ERROR, line=line, column=column)


class InterpreterError(SmllError):
    """Raised while executing a tree; aborts the whole run."""

    def __init__(
        self,
        message: str,
        error_type: InterpreterErrorType,
        kind: ErrorKind,
        block: Optional["Block"] = None,
    ) -> None:
        super().__init__(
            message,
            kind,
            line=block.first_line if block is not None else None,
            column=block.first_column if block is not None else None,
        )
        self.error_type = error_type
        self.block = block

    def report(self) -> str:
        text = f"ERROR -> {self.error_type.value}: {self.message}"
        if self.line is not None:
            text += f" (line {self.line}, column {self.column})"
        return text


class StaticError(InterpreterError):
    def __init__(self, message: str, error_type: StaticErrorType, block: Optional["Block"] = None) -> None:
        super().__init__(message, error_type, ErrorKind.STATIC_SEMANTIC_ERROR, block)


class DynamicError(InterpreterError):
    def __init__(self, message: str, error_type: DynamicErrorType, block: Optional["Block"] = None) -> None:
        super().__init__(message, error_type, ErrorKind.DYNAMIC_SEMANTIC_ERROR, block)
