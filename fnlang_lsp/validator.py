"""Lexical validation of FN documents."""

from __future__ import annotations

import logging
import re

from .lines import LineIndex
from .symbols import Problem, RelatedNote

log = logging.getLogger(__name__)

# Two or more capitals forming a whole word
_UPPERCASE_WORD = re.compile(r'\b[A-Z]{2,}\b', re.ASCII)

RELATED_NOTES = ('Spelling matters', 'Particularly for names')


def validate(
    text: str,
    max_problems: int,
    related_information: bool = False,
) -> list[Problem]:
    """Warn about every all-uppercase word, up to max_problems of them.

    Args:
        text: Full document text.
        max_problems: Cap on the number of problems returned.
        related_information: Whether the client can show related notes.
    """
    problems: list[Problem] = []
    if max_problems <= 0:
        return problems

    index = LineIndex(text)
    for m in _UPPERCASE_WORD.finditer(text):
        if len(problems) >= max_problems:
            log.debug('Problem cap of %d reached', max_problems)
            break
        rng = index.range_at(m.start(), m.end())
        problem = Problem(message=f'{m.group()} is all uppercase.', range=rng)
        if related_information:
            problem.related = [
                RelatedNote(message=note, range=rng)
                for note in RELATED_NOTES
            ]
        problems.append(problem)
    return problems
