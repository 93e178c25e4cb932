"""
Prompt templates for the AI extraction step.
"""

from event_radar.shared.schemas.dto import SourceDescriptor
from event_radar.shared.utils.configs import base_configs

CATEGORIES = (
    "AI",
    "Tech",
    "Startup",
    "Workshop",
    "Networking",
    "Innovation",
    "Business",
    "Education",
    "Other",
)

SYSTEM_PROMPT = (
    "You are an expert at extracting event information from web pages. "
    "Follow the given instructions precisely and answer with JSON only."
)

_CONTENT_LABELS = {
    "html": "HTML CONTENT",
    "markdown": "PAGE CONTENT (Markdown)",
    "json": "API RESPONSE (JSON)",
}

PROMPT_TEMPLATE = """
{source_block}

GENERAL RULES:
1. Extract ALL events mentioned, but ONLY events that are FREE to attend
   (kostenlos, gratis, free entry, or no price mentioned). Skip paid events.
2. Convert dates to YYYY-MM-DD format
3. Use 24-hour time format (HH:MM)
4. Default time to {default_time} if not specified
5. Default city to "{default_city}" if in Tirol but not specified
6. Assign one category: {categories}
7. Keep descriptions under 200 characters

{content_label}:
{content}

Return a JSON object with an "events" array:
{{
  "events": [
    {{
      "title": "Event name",
      "date": "YYYY-MM-DD",
      "time": "HH:MM",
      "location": "Venue name",
      "city": "City name",
      "category": "{categories}",
      "description": "Brief description (max 200 chars)",
      "registrationUrl": "URL if available",
      "detailUrl": "Event page URL if available"
    }}
  ]
}}

If there are no qualifying events, return {{"events": []}}.
IMPORTANT: Follow the source-specific instructions above carefully!
"""


def build_source_instructions(descriptor: SourceDescriptor) -> str:
    """Render the source-specific part of the prompt."""
    lines = [
        f"You are extracting events from {descriptor.name}.",
        f"URL: {descriptor.url}",
        "",
        "SOURCE-SPECIFIC INSTRUCTIONS:",
        descriptor.instructions.strip(),
    ]
    if descriptor.html_pattern:
        lines.append(f"Event elements match: {descriptor.html_pattern}")
    if descriptor.date_format:
        lines.append(f"Date format on this page: {descriptor.date_format}")
    if descriptor.notes:
        lines.append(f"Notes: {descriptor.notes}")
    if descriptor.default_time:
        lines.append(f"Events without a time start at {descriptor.default_time}.")
    return "\n".join(lines)


def build_prompt(
    content: str,
    instructions: str,
    content_type: str = "html",
    default_time: str = None,
) -> str:
    """
    Combine the fixed rule set, the source instructions and the page content.

    Args:
        content: Cleaned, truncated page content
        instructions: Output of build_source_instructions
        content_type: "html", "markdown" or "json"
        default_time: Fallback start time (HH:MM)

    Returns:
        The user prompt
    """
    return PROMPT_TEMPLATE.format(
        source_block=instructions,
        default_time=default_time or base_configs["default_time"],
        default_city=base_configs["default_city"],
        categories="|".join(CATEGORIES),
        content_label=_CONTENT_LABELS.get(content_type, "CONTENT"),
        content=content,
    ).strip()
