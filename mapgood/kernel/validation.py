"""
mapgood Kernel — Form Validation

Validates the new-entry draft before it is submitted.
Returns structured violations, never raises. Empty list = valid.

Rules:
  title  — at least TITLE_MIN_LENGTH characters

TITLE_MAX_LENGTH is carried on every TitleLength violation so the
presentation layer can show the full allowed range; only the lower bound
is enforced.
"""

from __future__ import annotations

from mapgood.kernel.types import FormState, FormViolation, TitleLength

TITLE_MIN_LENGTH = 3
TITLE_MAX_LENGTH = 25


def validate(
    form: FormState,
    *,
    title_min: int = TITLE_MIN_LENGTH,
    title_max: int = TITLE_MAX_LENGTH,
) -> list[FormViolation]:
    """
    Validate a form draft.

    Pure function of its input: the same form always yields an equal list.
    Lengths are counted in characters, not bytes.
    """
    violations: list[FormViolation] = []

    title_len = len(form.title)
    if title_len < title_min:
        violations.append(TitleLength(min=title_min, max=title_max, actual=title_len))

    return violations
