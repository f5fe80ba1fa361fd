"""Extract function and variable declarations from FN source text.

Extraction is purely lexical: every call re-scans the text it is given
and keeps no state between calls.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Iterator, Optional

from .lines import span_range, split_lines
from .symbols import (
    PARAM_TYPES,
    VARIABLE_TYPES,
    FunctionSymbol,
    VariableSymbol,
)

log = logging.getLogger(__name__)

_IDENT = r'[a-zA-Z_][a-zA-Z0-9_]*'
_PARAM_TYPE = '|'.join(PARAM_TYPES)
_VARIABLE_TYPE = '|'.join(VARIABLE_TYPES)

# FN [TYPE] name(params)
_FUNCTION_HEADER = re.compile(
    rf'\bFN\s+(?:{_PARAM_TYPE})?\s*({_IDENT})\s*\((.*)\)',
    re.IGNORECASE,
)
# name : TYPE
_TYPED_PARAM = re.compile(rf'\b({_IDENT})\s*:\s*({_PARAM_TYPE})')
# TYPE name
_VARIABLE_DECL = re.compile(rf'({_VARIABLE_TYPE})\s+({_IDENT})\b')
# Text ending with 'FN ' (a function's return type follows)
_FN_PREFIX = re.compile(r'\bFN\s+\Z')

FUNCTION_END = 'END FN'


class _ScanState(Enum):
    OUTSIDE = 'outside'
    INSIDE_FUNCTION = 'inside_function'


def match_function_header(line: str) -> Optional[re.Match]:
    """Match a function header; group 1 is the name, group 2 the params."""
    return _FUNCTION_HEADER.search(line)


def split_header_params(raw: str) -> list[str]:
    return [param.strip() for param in raw.split(',')]


def typed_params(line: str) -> list[str]:
    """Return every 'name: TYPE' token of a line as 'TYPE name'."""
    return [
        f'{m.group(2)} {m.group(1)}'
        for m in _TYPED_PARAM.finditer(line)
    ]


def is_function_end(line: str) -> bool:
    return line.strip() == FUNCTION_END


def extract_functions(text: str) -> list[FunctionSymbol]:
    """Collect every function closed by an END FN line.

    A function still open at the end of the text is dropped.
    """
    functions = []
    state = _ScanState.OUTSIDE
    current: Optional[FunctionSymbol] = None

    for lineno, line in enumerate(split_lines(text)):
        if state is _ScanState.INSIDE_FUNCTION:
            if is_function_end(line):
                current.end_line = lineno
                functions.append(current)
                current = None
                state = _ScanState.OUTSIDE
            else:
                current.params.extend(typed_params(line))
            continue

        header = match_function_header(line)
        if header is None:
            continue

        current = FunctionSymbol(
            name=header.group(1),
            params=split_header_params(header.group(2)),
            range=span_range(lineno, *header.span(1)),
        )
        # FN name(...) END FN on a single line
        if is_function_end(line[header.end():]):
            current.params.extend(typed_params(line))
            current.end_line = lineno
            functions.append(current)
            current = None
        else:
            state = _ScanState.INSIDE_FUNCTION

    if current is not None:
        log.debug(
            'Dropping unterminated function %s (line %d)',
            current.name, current.range.start_line,
        )
    return functions


def _variable_matches(line: str) -> Iterator[re.Match]:
    pos = 0
    while True:
        m = _VARIABLE_DECL.search(line, pos)
        if m is None:
            return
        if _FN_PREFIX.search(line, 0, m.start()):
            # Return type of a function header, retry just past it
            pos = m.start() + 1
            continue
        yield m
        pos = m.end()


def extract_variables(text: str) -> list[VariableSymbol]:
    """Collect every 'TYPE name' declaration, line by line."""
    variables = []
    for lineno, line in enumerate(split_lines(text)):
        for m in _variable_matches(line):
            variables.append(VariableSymbol(
                name=m.group(2),
                type=m.group(1),
                range=span_range(lineno, *m.span(2)),
            ))
    return variables
