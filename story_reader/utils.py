import re
import unicodedata

# Letters with a stroke survive NFD decomposition untouched.
_EXTRA_LETTERS = str.maketrans({"đ": "d", "Đ": "d"})
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(text: str) -> str:
    """Turn arbitrary (Vietnamese-aware) text into a URL-safe slug.

    Returns an empty string when nothing alphanumeric is left; callers must
    reject that instead of persisting it.
    """
    decomposed = unicodedata.normalize("NFD", text or "")
    stripped = "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")
    lowered = stripped.lower().translate(_EXTRA_LETTERS)
    return _NON_ALNUM.sub("-", lowered).strip("-")


def count_words(text: str) -> int:
    return len((text or "").split())
