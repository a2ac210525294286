"""Category and experience-level selectors understood by the Djinni feed."""

from typing import Iterable, List, Tuple

DEFAULT_FEED_URL = "https://djinni.co/jobs/rss/"

# Stored in place of a concrete category when the recipient wants every listing.
ALL_CATEGORIES_VALUE = "__all__"
ALL_CATEGORIES_LABEL = "All categories"

# Provider catalogue order; also the display order in the bot.
CATEGORIES: List[str] = [
    "JavaScript",
    "Fullstack",
    "Java",
    "C# / .NET",
    "Python",
    "PHP",
    "Node.js",
    "iOS",
    "Android",
    "React Native",
    "C++",
    "Flutter",
    "Golang",
    "Ruby",
    "Scala",
    "Salesforce",
    "Rust",
    "Elixir",
    "Kotlin",
    "QA Manual",
    "QA Automation",
    "Design",
    "DevOps",
    "Data Science",
    "Data Engineer",
    "Data Analyst",
    "Project Manager",
    "Product Manager",
    "Business Analyst",
    "Technical Writing",
]

EXP_LEVELS: List[Tuple[str, str]] = [
    ("no_exp", "No experience"),
    ("1y", "1 year"),
    ("2y", "2 years"),
    ("3y", "3 years"),
    ("5y", "5+ years"),
]

EXP_LEVEL_IDS = [level_id for level_id, _ in EXP_LEVELS]


def exp_label(level: str) -> str:
    """Human readable label for an experience level id."""
    for level_id, label in EXP_LEVELS:
        if level_id == level:
            return label
    return level


def is_known_exp_level(level: str) -> bool:
    return level in EXP_LEVEL_IDS


def sort_categories(categories: Iterable[str]) -> List[str]:
    """
    Trim, deduplicate and order category selectors.

    The "all categories" sentinel swallows everything else. Known categories
    follow catalogue order; unknown ones are kept and appended in sorted order.

    Args:
        categories: Raw category selectors.

    Returns:
        A list of distinct selectors in canonical order.
    """
    selected = {value.strip() for value in categories if value and value.strip()}
    if ALL_CATEGORIES_VALUE in selected:
        return [ALL_CATEGORIES_VALUE]

    known = [category for category in CATEGORIES if category in selected]
    unknown = sorted(selected.difference(CATEGORIES))
    return known + unknown


def sort_exp_levels(levels: Iterable[str]) -> List[str]:
    """Deduplicate experience levels, keeping provider order (unknown ones last)."""
    selected = {value.strip() for value in levels if value and value.strip()}
    known = [level for level in EXP_LEVEL_IDS if level in selected]
    unknown = sorted(selected.difference(EXP_LEVEL_IDS))
    return known + unknown
