"""Deterministic step-to-file resolution.

This is the parsing contract between the planner's free text and the
executor. Patterns are tried in order and the first match wins:

1. ``Edit <path> ...``
2. ``Create <path> ...``
3. ``Update <path>: ...``
4. ``In <path>, ...``
5. ``<path> ...`` at the very start of the step
6. ``Delete <path> ...``

The operation is inferred separately from keywords, so "Edit a.js to create
a helper" resolves to a create of a.js.
"""

import re

from edit_guard.models import ResolvedStep, StepOperation

SOURCE_EXTENSIONS = ("tsx", "jsx", "ts", "js", "py", "rs", "go", "java", "cpp", "c", "h")

_EXT = "|".join(SOURCE_EXTENSIONS)
# Path chars exclude whitespace and quoting; the extension must end the token
_PATH = rf"[`'\"]?([^\s`'\"]+\.(?:{_EXT}))(?![\w/-])"

STEP_PATTERNS = (
    re.compile(rf"\bEdit\s+{_PATH}", re.IGNORECASE),
    re.compile(rf"\bCreate\s+{_PATH}", re.IGNORECASE),
    re.compile(rf"\bUpdate\s+{_PATH}", re.IGNORECASE),
    re.compile(rf"\bIn\s+{_PATH}", re.IGNORECASE),
    re.compile(rf"^{_PATH}"),
    re.compile(rf"\bDelete\s+{_PATH}", re.IGNORECASE),
)

_CREATE_KEYWORDS = ("create", "add new file")
_DELETE_KEYWORDS = ("delete", "remove file")


def extract_file_from_step(step: str) -> str | None:
    """Return the file path named by step, or None if no pattern matches."""
    for pattern in STEP_PATTERNS:
        match = pattern.search(step)
        if match:
            return match.group(1)
    return None


def extract_operation_from_step(step: str) -> StepOperation:
    lower = step.lower()
    if any(keyword in lower for keyword in _CREATE_KEYWORDS):
        return StepOperation.CREATE
    if any(keyword in lower for keyword in _DELETE_KEYWORDS):
        return StepOperation.DELETE
    return StepOperation.EDIT


def resolve_step(step: str) -> ResolvedStep:
    return ResolvedStep(
        description=step,
        file_path=extract_file_from_step(step),
        operation=extract_operation_from_step(step),
    )
