import re
from typing import Iterable, List, Optional, Union

_WHITESPACE = re.compile(r"\s+")


def normalize_token(value: Optional[str]) -> str:
    """Trim, lower-case and collapse inner whitespace."""
    return _WHITESPACE.sub(" ", str(value or "").strip().lower())


def normalize_tokens(values: Union[str, Iterable[str], None]) -> List[str]:
    """
    Normalize a food/allergen list.

    Accepts either a list or a comma separated string. Empty entries are
    dropped, as are repeats (first occurrence wins).
    """
    if values is None:
        return []
    if isinstance(values, str):
        values = values.split(",")

    seen = set()
    tokens = []
    for value in values:
        token = normalize_token(value)
        if token and token not in seen:
            seen.add(token)
            tokens.append(token)
    return tokens


def normalize_invite_code(code: Optional[str]) -> str:
    """Invite codes are matched trimmed and upper-cased."""
    return str(code or "").strip().upper()
