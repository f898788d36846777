"""Message template loading and rendering."""

import re
from datetime import date
from pathlib import Path

import yaml

from reminders.timezone import format_date, weekday_name

# Placeholders a rule template may use
PLACEHOLDERS = (
    "first-name",
    "full-name",
    "date",
    "weekday",
    "shift-label",
    "vehicle-tag",
)

# Hebrew tokens used by templates written before the English names existed
PLACEHOLDER_ALIASES = {
    "שם": "first-name",
    "שם מלא": "full-name",
    "תאריך": "date",
    "יום": "weekday",
    "משמרת": "shift-label",
    "רכב": "vehicle-tag",
}

PLACEHOLDER_PATTERN = re.compile(r"\{([^{}]*)\}")

_default_templates: dict | None = None


def load_default_templates() -> dict:
    """
    Load default rule templates (keyed by reminder kind) from YAML.

    Caches templates after first load.
    """
    global _default_templates
    if _default_templates is not None:
        return _default_templates

    yaml_path = Path(__file__).parent / "messages.yaml"
    with open(yaml_path, encoding="utf-8") as f:
        _default_templates = yaml.safe_load(f)

    return _default_templates


def build_render_context(recipient: dict, target_date: date) -> dict:
    """
    Build placeholder values for one eligible shift/volunteer row.

    Full name falls back to the roster display name when either the
    first or last name is missing.
    """
    first_name = recipient.get("first_name") or ""
    last_name = recipient.get("last_name") or ""
    if first_name and last_name:
        full_name = f"{first_name} {last_name}"
    else:
        full_name = recipient.get("mapping_name") or ""

    return {
        "first-name": first_name,
        "full-name": full_name,
        "date": format_date(target_date),
        "weekday": weekday_name(target_date),
        "shift-label": recipient.get("shift_name") or "",
        "vehicle-tag": recipient.get("car_id") or "",
    }


def render_message(template: str, context: dict) -> str:
    """
    Render a message template with context variables.

    Substitution is a single pass over the original template, so a value
    that itself looks like a placeholder is never expanded again.
    Unrecognized {tokens} are left as they are.

    Args:
        template: String with {placeholder} tokens
        context: Dict from build_render_context()

    Returns:
        Rendered string
    """

    def substitute(match: re.Match) -> str:
        token = match.group(1)
        name = PLACEHOLDER_ALIASES.get(token, token)
        if name not in PLACEHOLDERS:
            return match.group(0)
        return str(context.get(name) or "")

    return PLACEHOLDER_PATTERN.sub(substitute, template)
