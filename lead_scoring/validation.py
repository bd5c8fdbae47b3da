"""Input validation for lead creation."""

import re
from typing import List

from .models import ENUM_FIELDS, LeadInput

EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")

# Enum-valued input fields checked against their allowed values
_INPUT_ENUM_FIELDS = ("company_size", "project_type", "budget_range", "timeline", "source")


def _length(value) -> int:
    return len((value or "").strip())


def validate_lead_input(data: LeadInput) -> List[str]:
    """
    Validate a lead submission.

    Every rule is checked so the caller gets the full list of problems.

    Returns:
        List of human-readable error messages (empty when valid)
    """
    errors: List[str] = []

    if _length(data.name) < 2:
        errors.append("Name must be at least 2 characters")

    if not data.email or not EMAIL_PATTERN.search(data.email):
        errors.append("Valid email is required")

    if _length(data.company) < 2:
        errors.append("Company name is required")

    if _length(data.project_description) < 10:
        errors.append("Project description must be at least 10 characters")

    if _length(data.primary_challenge) < 5:
        errors.append("Primary challenge must be at least 5 characters")

    for name in _INPUT_ENUM_FIELDS:
        value = getattr(data, name)
        if name == "source" and not value:
            continue
        allowed = {member.value for member in ENUM_FIELDS[name]}
        if value not in allowed:
            errors.append(f"Invalid {name.replace('_', ' ')}: {value}")

    return errors
