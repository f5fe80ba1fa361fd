"""Completion items for FN documents."""

from __future__ import annotations

from typing import Optional

from .extractor import extract_functions, extract_variables
from .symbols import (
    Completion,
    CompletionKind,
    FunctionSymbol,
    VariableSymbol,
)

KEYWORDS = (
    'BEGIN', 'END', 'IF', 'ELSE', 'WHILE', 'FN',
    'STRING', 'CHAR', 'INT', 'FLOAT', 'BOOL',
    '"TRUE"', '"FALSE"', 'RETURN',
)

# Builtin function name -> documentation shown on resolve
BUILTIN_FUNCTIONS = {
    'scanString': 'Read a line of input and return it as a STRING.',
}


def compose_completions(
    variables: list[VariableSymbol],
    functions: list[FunctionSymbol],
) -> list[Completion]:
    """Keywords and builtins first, then variables, then functions."""
    items = [Completion(kw, CompletionKind.KEYWORD) for kw in KEYWORDS]
    items.extend(
        Completion(name, CompletionKind.FUNCTION)
        for name in BUILTIN_FUNCTIONS
    )
    items.extend(
        Completion(var.name, CompletionKind.VARIABLE, detail=var.type)
        for var in variables
    )
    items.extend(
        Completion(fn.name, CompletionKind.FUNCTION, detail=fn.signature)
        for fn in functions
    )
    return items


def compute_completions(text: str) -> list[Completion]:
    return compose_completions(
        extract_variables(text), extract_functions(text),
    )


def builtin_documentation(label: str) -> Optional[str]:
    return BUILTIN_FUNCTIONS.get(label)
