"""
Consent Constants - Category and Source Definitions
The four consent categories are a closed set shared by the script gate
and the consent audit pipeline.
"""

from typing import Iterable, List, Optional

from django.db import models


class ConsentCategory(models.TextChoices):
    """Cookie consent categories"""
    NECESSARY = "necessary", "Necessary"
    ANALYTICS = "analytics", "Analytics"
    MARKETING = "marketing", "Marketing"
    FUNCTIONALITY = "functionality", "Functionality"

    @classmethod
    def parse(cls, value) -> Optional["ConsentCategory"]:
        """Return the matching category, or None for anything unknown."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip())
        except ValueError:
            return None

    @classmethod
    def filter_known(cls, values: Iterable) -> List["ConsentCategory"]:
        """
        Keep only known categories, preserving first-seen order.
        Unknown names are noise, not errors.
        """
        seen = []
        for value in values or []:
            category = cls.parse(value)
            if category is not None and category not in seen:
                seen.append(category)
        return seen


# Categories a visitor can actually toggle; necessary is always granted.
OPTIONAL_CATEGORIES = (
    ConsentCategory.ANALYTICS,
    ConsentCategory.MARKETING,
    ConsentCategory.FUNCTIONALITY,
)

# Used when a gated script has no category assigned
DEFAULT_GATED_CATEGORY = ConsentCategory.ANALYTICS


class ConsentSource(models.TextChoices):
    """What triggered a consent submission"""
    ACCEPT = "accept", "Accept"
    CHANGE = "change", "Change"


CONSENT_ID_PATTERN = r"^[a-f0-9]{64}$"
