"""
Field codecs: pack app-only fields into the single free-text `description`
(or Comment `content`) that ERPNext stores for us, and read them back.

Three flavours are in use:
- tag blocks for content grid items (`[TYPE: reel]` / `[PLATFORMS: a,b]` + caption + NOTES line)
- a JSON object for deliverable metadata
- `Label: value` lines for the client extras note

Decoders never raise. Text that was typed by hand in the ERP UI degrades to a
partial record.
"""

import json
import re
from typing import Any, Dict, List, Optional

from logging_config import get_logger

logger = get_logger("erp.codec")

DEFAULT_CONTENT_TYPE = "post"
DEFAULT_PLATFORMS = ["instagram"]

_TYPE_RE = re.compile(r"\[TYPE: (.*?)\]")
_PLATFORMS_RE = re.compile(r"\[PLATFORMS: (.*?)\]")
_ANY_TAG_RE = re.compile(r"\[.*?\]")
_NOTES_RE = re.compile(r"(?:^|\n)NOTES:[ \t]*(.*)\Z", re.DOTALL)
# The exact text encode_tags writes; caption and notes are taken verbatim from it
_LAYOUT_RE = re.compile(r"\A\[TYPE: [^\]\n]*\]\n\[PLATFORMS: [^\]\n]*\]\n\n(.*)\n\nNOTES: (.*)\Z", re.DOTALL)


# --- Tag blocks (content grid) ---

def encode_tags(record: Dict[str, Any]) -> str:
    platforms = ",".join(record.get("platforms") or [])
    return (
        f"[TYPE: {record.get('type') or DEFAULT_CONTENT_TYPE}]\n"
        f"[PLATFORMS: {platforms}]\n"
        f"\n"
        f"{record.get('caption') or ''}\n"
        f"\n"
        f"NOTES: {record.get('notes') or ''}"
    )


def decode_tags(text: Optional[str]) -> Dict[str, Any]:
    """
    Returns {type, platforms, caption, notes}. Missing tags fall back to
    `post` and `['instagram']`.

    Text in the exact layout written by `encode_tags` keeps caption and notes
    verbatim, surrounding whitespace included. Anything else (typed by hand in
    the ERP) has them stripped. An empty caption or notes always comes back as
    None, since None and "" encode to the same text.
    """
    text = text if isinstance(text, str) else ""

    type_match = _TYPE_RE.search(text)
    content_type = type_match.group(1).strip() if type_match else ""

    platforms_match = _PLATFORMS_RE.search(text)
    if platforms_match:
        platforms = [p.strip() for p in platforms_match.group(1).split(",") if p.strip()]
    else:
        platforms = list(DEFAULT_PLATFORMS)

    layout = _LAYOUT_RE.match(text)
    if layout:
        caption = layout.group(1) or None
        notes = layout.group(2) or None
    else:
        body = _ANY_TAG_RE.sub("", text)
        notes = None
        notes_match = _NOTES_RE.search(body)
        if notes_match:
            notes = notes_match.group(1).strip() or None
            body = body[:notes_match.start()]
        caption = body.strip() or None

    return {
        "type": content_type or DEFAULT_CONTENT_TYPE,
        "platforms": platforms,
        "caption": caption,
        "notes": notes,
    }


# --- JSON metadata (deliverables) ---

def encode_metadata(metadata: Dict[str, Any]) -> str:
    return json.dumps(metadata, ensure_ascii=False)


def decode_metadata(text: Optional[str]) -> Dict[str, Any]:
    """
    Empty -> {}. A JSON object -> that object. Anything else (plain text,
    broken JSON, a JSON list) -> {"url": text}.
    """
    if not isinstance(text, str) or not text.strip():
        return {}
    try:
        value = json.loads(text)
    except ValueError:
        logger.debug("Description is not JSON, keeping it as url", extra={"data": {"text": text[:80]}})
        return {"url": text}
    if isinstance(value, dict):
        return value
    return {"url": text}


def is_metadata(text: Optional[str]) -> bool:
    """True when the description decodes to a real JSON object."""
    if not isinstance(text, str) or not text.strip().startswith("{"):
        return False
    try:
        return isinstance(json.loads(text), dict)
    except ValueError:
        return False


# --- Client extras note ---

NOTE_LABELS = [
    ("instagram", "Instagram"),
    ("industry", "Rubro"),
    ("contactPhone", "Teléfono"),
    ("token", "Portal Token"),
]

_NOTE_PATTERNS = {
    "instagram": re.compile(r"Instagram:\s*@?([^\n]+)", re.IGNORECASE),
    "industry": re.compile(r"(?:Rubro|Industry):\s*([^\n]+)", re.IGNORECASE),
    "contactPhone": re.compile(r"(?:Teléfono|Telefono|Phone):\s*([^\n]+)", re.IGNORECASE),
    "token": re.compile(r"Portal Token:\s*([^\n]+)", re.IGNORECASE),
}

_EMPTY_NOTE_VALUE = "N/A"


def encode_client_note(extras: Dict[str, Any]) -> str:
    lines = []
    for key, label in NOTE_LABELS:
        value = extras.get(key)
        lines.append(f"{label}: {value if value else _EMPTY_NOTE_VALUE}")
    return "\n".join(lines)


def decode_client_note(text: Optional[str]) -> Dict[str, Optional[str]]:
    """Every key is present; absent or N/A values are None."""
    text = text if isinstance(text, str) else ""
    extras = {}
    for key, pattern in _NOTE_PATTERNS.items():
        match = pattern.search(text)
        value = match.group(1).strip() if match else None
        extras[key] = None if not value or value == _EMPTY_NOTE_VALUE else value
    return extras


def split_list(value: Any) -> List[str]:
    """`_assign` style fields arrive as a JSON list string, a list, or nothing."""
    if isinstance(value, list):
        return [str(v) for v in value]
    if not isinstance(value, str) or not value.strip():
        return []
    try:
        parsed = json.loads(value)
    except ValueError:
        return [value]
    if isinstance(parsed, list):
        return [str(v) for v in parsed]
    return [str(parsed)]


def is_tag_block(text: Optional[str]) -> bool:
    return isinstance(text, str) and _TYPE_RE.search(text) is not None
