"""
Salvage for malformed or truncated summary responses.

`recover_fields` pulls each required field out of the raw text on its own,
so a response cut off mid-way still yields whatever was complete.
`extract_from_prose` handles answers that ignored the JSON format entirely.
"""
from typing import Any, Dict, List
import json
import re


STRING_FIELDS = ["summary", "whatChangedToday", "sentimentReasoning", "marketImplications"]
CHOICE_FIELDS = ["sentiment", "marketImpact", "confidence"]

# Value runs to the closing quote, or to the end of a truncated response
STRING_VALUE_TEMPLATE = r'"{name}"\s*:\s*"((?:[^"\\]|\\.)*)'
CHOICE_VALUE_TEMPLATE = r'"{name}"\s*:\s*"([^"]*)"'
# Complete string literals only; a bracket inside a quoted point does not end the list
KEY_POINTS_PATTERN = re.compile(r'"keyPoints"\s*:\s*\[((?:\s*"(?:[^"\\]|\\.)*"\s*,?)*)')
STRING_LITERAL_PATTERN = re.compile(r'"((?:[^"\\]|\\.)*)"')

POSITIVE_PATTERN = re.compile(r"\b(positive|bullish|optimistic|growth|increase|up|gain|strong|good|excellent|surge|rally|beat|beats|exceeds)\b", re.IGNORECASE)
NEGATIVE_PATTERN = re.compile(r"\b(negative|bearish|pessimistic|decline|decrease|down|loss|weak|bad|poor|fall|drop|miss|below)\b", re.IGNORECASE)

BULLET_PATTERN = re.compile(r"^\s*(?:[•\-*]|\d+\.)\s+(.+)$", re.MULTILINE)

WHAT_CHANGED_PATTERNS = [
    re.compile(r"what changed[^.!?]*[.!?]", re.IGNORECASE),
    re.compile(r"new developments?[^.!?]*[.!?]", re.IGNORECASE),
    re.compile(r"today['’\s][^.!?]*[.!?]", re.IGNORECASE),
    re.compile(r"recently[^.!?]*[.!?]", re.IGNORECASE),
]

MARKET_IMPLICATION_PATTERNS = [
    re.compile(r"market implications?[^.!?]*[.!?]", re.IGNORECASE),
    re.compile(r"stock[^.!?]*impact[^.!?]*[.!?]", re.IGNORECASE),
    re.compile(r"investors?[^.!?]*[.!?]", re.IGNORECASE),
    re.compile(r"price[^.!?]*target[^.!?]*[.!?]", re.IGNORECASE),
]


def decode_json_string(raw: str) -> str:
    """Decode the body of a JSON string literal, tolerating a truncated tail."""
    if raw.endswith("\\") and not raw.endswith("\\\\"):
        raw = raw[:-1]
    try:
        return json.loads(f'"{raw}"', strict=False)
    except ValueError:
        return raw.replace('\\"', '"').replace("\\n", "\n").replace("\\\\", "\\")


def recover_fields(text: str) -> Dict[str, Any]:
    """Regex-extract every field that can be found; absent fields are simply left out."""
    recovered: Dict[str, Any] = {}

    for name in STRING_FIELDS:
        match = re.search(STRING_VALUE_TEMPLATE.format(name=name), text)
        if match:
            value = decode_json_string(match.group(1)).strip()
            if value:
                recovered[name] = value

    for name in CHOICE_FIELDS:
        match = re.search(CHOICE_VALUE_TEMPLATE.format(name=name), text)
        if match and match.group(1).strip():
            recovered[name] = match.group(1).strip()

    match = KEY_POINTS_PATTERN.search(text)
    if match:
        points = [decode_json_string(item).strip() for item in STRING_LITERAL_PATTERN.findall(match.group(1))]
        recovered["keyPoints"] = [point for point in points if point]

    return recovered


def extract_key_points(text: str, limit: int = 5) -> List[str]:
    return [match.strip() for match in BULLET_PATTERN.findall(text)][:limit]


def extract_sentiment(text: str) -> str:
    positive = len(POSITIVE_PATTERN.findall(text))
    negative = len(NEGATIVE_PATTERN.findall(text))

    if positive > negative:
        return "positive"
    if negative > positive:
        return "negative"
    return "neutral"


def _first_sentence_match(text: str, patterns: List[re.Pattern]) -> str:
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return match.group(0).strip()
    return ""


def extract_from_prose(text: str) -> Dict[str, Any]:
    """Heuristic field extraction for a response that is plain prose, not JSON."""
    text = text.strip()
    fields: Dict[str, Any] = {
        "summary": text[:500] + ("..." if len(text) > 500 else ""),
        "keyPoints": extract_key_points(text),
        "sentiment": extract_sentiment(text),
    }

    what_changed = _first_sentence_match(text, WHAT_CHANGED_PATTERNS)
    if what_changed:
        fields["whatChangedToday"] = what_changed

    implications = _first_sentence_match(text, MARKET_IMPLICATION_PATTERNS)
    if implications:
        fields["marketImplications"] = implications

    return fields
