"""Symbol data structures for the FN language server."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

# Types allowed for function parameters and return values
PARAM_TYPES = ('STRING', 'INT', 'FLOAT', 'CHAR', 'BOOL')

# Types recognised in variable declarations. BOOL is not one of them.
VARIABLE_TYPES = ('STRING', 'INT', 'FLOAT', 'CHAR')


class CompletionKind(Enum):
    KEYWORD = 'keyword'
    VARIABLE = 'variable'
    FUNCTION = 'function'


@dataclass(frozen=True)
class Range:
    start_line: int  # 0-indexed
    start_col: int  # Code points into the line
    end_line: int
    end_col: int


@dataclass
class FunctionSymbol:
    name: str
    # Header tokens as written, then 'TYPE name' entries from the body
    params: list[str]
    range: Range  # Function name on the header line
    end_line: Optional[int] = None  # Line of the closing END FN

    @property
    def signature(self) -> str:
        return f'{self.name}({", ".join(self.params)})'


@dataclass
class VariableSymbol:
    name: str
    type: str  # One of VARIABLE_TYPES
    range: Range


@dataclass
class RelatedNote:
    message: str
    range: Range


@dataclass
class Problem:
    """A warning produced by the validator."""

    message: str
    range: Range
    related: list[RelatedNote] = field(default_factory=list)
    source: str = 'fnlang'


@dataclass
class Completion:
    label: str
    kind: CompletionKind
    detail: Optional[str] = None
