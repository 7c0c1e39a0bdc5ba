import re

PROFANITY_NOTICE = "[message removed by profanity filter]"

_PROFANE_WORDS = {
    "asshole",
    "bastard",
    "bitch",
    "cunt",
    "dick",
    "fuck",
    "motherfucker",
    "shit",
    "slut",
    "whore",
}

_LEET_TRANSLATION = str.maketrans({"@": "a", "$": "s", "0": "o", "1": "i", "3": "e", "4": "a", "5": "s", "7": "t"})

_WORD_PATTERN = re.compile(r"[a-zA-Z0-9@$]+")
_ROOM_ID_UNSAFE = re.compile(r"[^A-Za-z0-9_-]")
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
_MARKUP_CHARS = re.compile(r"[<>\"'`&]")
_WHITESPACE_RUN = re.compile(r"\s+")


class InvalidInput(ValueError):
    pass


def _require_text(raw: object, field_name: str) -> str:
    if not isinstance(raw, str):
        raise InvalidInput(f"{field_name} is required")
    return raw


def _bounded(value: str, field_name: str, max_length: int) -> str:
    if not value:
        raise InvalidInput(f"{field_name} is required")
    if len(value) > max_length:
        raise InvalidInput(f"{field_name} must be at most {max_length} characters")
    return value


def sanitize_room_id(raw: object, max_length: int) -> str:
    value = _ROOM_ID_UNSAFE.sub("", _require_text(raw, "room id").strip())
    return _bounded(value, "room id", max_length)


def sanitize_name(raw: object, max_length: int) -> str:
    value = _require_text(raw, "name")
    value = _MARKUP_CHARS.sub("", _CONTROL_CHARS.sub(" ", value))
    value = _WHITESPACE_RUN.sub(" ", value).strip()
    return _bounded(value, "name", max_length)


def _normalize_token(token: str) -> str:
    translated = token.lower().translate(_LEET_TRANSLATION)
    return re.sub(r"[^a-z]", "", translated)


def contains_profanity(message: str) -> bool:
    return any(_normalize_token(token) in _PROFANE_WORDS for token in _WORD_PATTERN.findall(message))


def sanitize_chat_message(raw: object, max_length: int) -> tuple[str, bool]:
    value = _CONTROL_CHARS.sub(" ", _require_text(raw, "message")).strip()
    value = _bounded(value, "message", max_length)
    if contains_profanity(value):
        return PROFANITY_NOTICE, True
    return value, False
