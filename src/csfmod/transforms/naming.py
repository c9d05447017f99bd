"""
Story naming - turn human story names into export identifiers and back.

``sanitize_name`` camel-cases a display name into a valid JavaScript
identifier, ``story_name_from_export`` start-cases an identifier back
into the display name the story viewer would show for it.
"""

import re
from typing import Iterable, List, Optional, Set

import structlog

logger = structlog.get_logger()


RESERVED_WORDS = frozenset(
    {
        "arguments", "await", "break", "case", "catch", "class", "const",
        "continue", "debugger", "default", "delete", "do", "else", "enum",
        "eval", "export", "extends", "false", "finally", "for", "function",
        "if", "implements", "import", "in", "instanceof", "interface", "let",
        "new", "null", "package", "private", "protected", "public", "return",
        "static", "super", "switch", "this", "throw", "true", "try", "typeof",
        "undefined", "var", "void", "while", "with", "yield",
    }
)

FALLBACK_NAME = "story"

_CHUNK_RE = re.compile(r"[^\W_]+")
_DIGITS_OR_LETTERS_RE = re.compile(r"\d+(?:st|nd|rd|th)(?![^\W\d_])|\d+|[^\W\d_]+")


def split_words(text: str) -> List[str]:
    """
    Split text into words on separators, case changes and digit runs.

    "HTMLButton with icon2" -> ["HTML", "Button", "with", "icon", "2"]
    """
    words = []
    for chunk in _CHUNK_RE.findall(text):
        for part in _DIGITS_OR_LETTERS_RE.findall(chunk):
            if part[0].isdigit():
                words.append(part)
            else:
                words.extend(_split_case(part))
    return words


def _split_case(letters: str) -> List[str]:
    words = []
    current = ""
    for i, char in enumerate(letters):
        if current and char.isupper():
            following = letters[i + 1] if i + 1 < len(letters) else ""
            if not letters[i - 1].isupper() or following.islower():
                words.append(current)
                current = ""
        current += char
    if current:
        words.append(current)
    return words


def camel_case(words: Iterable[str]) -> str:
    result = []
    for index, word in enumerate(words):
        lowered = word.lower()
        result.append(lowered if index == 0 else lowered[:1].upper() + lowered[1:])
    return "".join(result)


def sanitize_name(name: str) -> str:
    """
    Convert an arbitrary story name into a valid identifier candidate.

    Args:
        name: Display name of the story, e.g. "with some emoji 🎉"

    Returns:
        A camelCased identifier, prefixed with "_" when it would start
        with a digit or collide with a reserved word
    """
    key = camel_case(split_words(name)) or FALLBACK_NAME
    if key[0].isdigit():
        key = f"_{key}"
    if key in RESERVED_WORDS:
        key = f"_{key}"
    return key


def story_name_from_export(key: str) -> str:
    """Start-case an export identifier: "primaryButton" -> "Primary Button"."""
    return " ".join(word[:1].upper() + word[1:] for word in split_words(key))


class IdentifierRegistry:
    """
    Set of identifiers bound in a module plus those synthesized so far.

    ``claim`` guarantees a synthesized name never collides with either.
    """

    def __init__(self, existing: Optional[Iterable[str]] = None):
        self._names: Set[str] = set(existing or ())

    def __contains__(self, name: str) -> bool:
        return name in self._names

    def __len__(self) -> int:
        return len(self._names)

    def claim(self, candidate: str) -> str:
        """Prefix candidate with underscores until unique, then register it."""
        key = candidate
        while key in self._names:
            key = f"_{key}"
        if key != candidate:
            logger.debug("identifier_disambiguated", candidate=candidate, identifier=key)
        self._names.add(key)
        return key

    def claim_story(self, name: str) -> str:
        return self.claim(sanitize_name(name))
