"""Visual suggestions for a transcript selection using Gemini AI."""

import re
from dataclasses import dataclass
from typing import List

from .config import get_gemini_client, get_suggestion_model
from .logging import get_logger

logger = get_logger(__name__)

CATEGORIES = ("MEME", "ANIMATION", "ILLUSTRATION")

OPTION_RE = re.compile(
    r"\*\*Option\s+\d+:\s*(?:\[Type\s*-\s*)?(MEME|ANIMATION|ILLUSTRATION)(?:\])?\*\*",
    re.IGNORECASE,
)
VISUAL_DESC_RE = re.compile(r"[-•]\s*Visual Description:\s*(.+?)(?=\*\*Option|$)", re.IGNORECASE | re.DOTALL)


@dataclass(frozen=True)
class VisualSuggestion:
    category: str
    title: str
    description: str

    def to_dict(self) -> dict:
        return {"category": self.category, "title": self.title, "description": self.description}


def build_suggestion_prompt(full_transcript: str, selection_transcript: str, start: float, end: float) -> str:
    """Prompt asking for one meme, one animation and one illustration option."""
    return f"""You are a creative visual content advisor helping to suggest engaging visuals for video content.

For the given transcript time range, suggest exactly 3 different visual options that span the ENTIRE duration of the time range. Each option is a complete alternative approach, not a sequential segment.

FULL VIDEO TRANSCRIPT (for context):
{full_transcript}

SELECTED SEGMENT ({start:.1f}s - {end:.1f}s):
{selection_transcript}

Format your response EXACTLY as:

**Option 1: [Type - Meme/Animation/Illustration]**
- Visual Description: [What appears on screen. Animations and illustrations may describe 2-4 sequential visuals progressing through the range; memes are a single visual held throughout]

**Option 2: [Type - Meme/Animation/Illustration]**
- Visual Description: [...]

**Option 3: [Type - Meme/Animation/Illustration]**
- Visual Description: [...]

Guidelines:
1. Each option must be a DIFFERENT type: one meme, one animation and one illustration
2. Each option covers the FULL time range
3. Do not mix visual types within one option
4. Be specific and visual, and match the tone of the transcript

Visual types:
- Meme: popular internet memes, reaction images, viral templates
- Animation: motion graphics, kinetic typography, animated characters or concepts
- Illustration: static illustrations, infographics, diagrams, custom artwork"""


def _title_for(category: str) -> str:
    return f"{category[0]}{category[1:].lower()} Option"


def _parse_option_format(text: str) -> List[VisualSuggestion]:
    suggestions = []
    # [intro, category1, content1, category2, content2, ...]
    sections = OPTION_RE.split(text)
    for i in range(1, len(sections) - 1, 2):
        category = sections[i].upper()
        match = VISUAL_DESC_RE.search(sections[i + 1])
        if match:
            suggestions.append(
                VisualSuggestion(category=category, title=_title_for(category), description=match.group(1).strip())
            )
    return suggestions


def _parse_field_format(text: str) -> List[VisualSuggestion]:
    """Fallback for ``Category:`` / ``Title:`` / ``Description:`` line blocks."""
    suggestions = []
    current: dict = {}

    def flush():
        if current.get("category") and current.get("title") and current.get("description"):
            suggestions.append(VisualSuggestion(**current))

    for line in text.split("\n"):
        line = line.strip()
        category = re.match(r"^Category:\s*(MEME|ANIMATION|ILLUSTRATION)", line, re.IGNORECASE)
        if category:
            flush()
            current = {"category": category.group(1).upper()}
            continue
        title = re.match(r"^Title:\s*(.+)", line, re.IGNORECASE)
        if title:
            current["title"] = title.group(1).strip()
            continue
        desc = re.match(r"^Description:\s*(.+)", line, re.IGNORECASE)
        if desc:
            current["description"] = desc.group(1).strip()
            continue
        if current.get("description") and line and not re.match(
            r"^(Category|Title|Description|SUGGESTION):", line, re.IGNORECASE
        ):
            current["description"] += " " + line

    flush()
    return suggestions


def parse_suggestions(text: str) -> List[VisualSuggestion]:
    """
    Parse Gemini's answer into suggestions.

    Missing categories are tolerated: the result holds whatever options could
    be recognised, possibly none.
    """
    suggestions = _parse_option_format(text)
    if not suggestions:
        suggestions = _parse_field_format(text)
    return suggestions


def generate_suggestions(
    full_transcript: str,
    selection_transcript: str,
    start: float,
    end: float,
    client=None,
) -> List[VisualSuggestion]:
    """
    Ask Gemini for visual suggestions covering a transcript selection.

    Args:
        full_transcript: Whole caption text, for context
        selection_transcript: Caption text inside the selected range
        start: Selection start in seconds
        end: Selection end in seconds
        client: Optional pre-configured Gemini client

    Raises:
        RuntimeError: If Gemini returns no text
    """
    if client is None:
        client = get_gemini_client()

    prompt = build_suggestion_prompt(full_transcript, selection_transcript, start, end)
    model = get_suggestion_model()
    logger.info("Requesting visual suggestions for %.1fs-%.1fs from %s", start, end, model)

    response = client.models.generate_content(model=model, contents=prompt)
    text = response.text or ""
    if not text:
        raise RuntimeError("No response text received from Gemini API")

    suggestions = parse_suggestions(text)
    missing = [c for c in CATEGORIES if c not in {s.category for s in suggestions}]
    if missing:
        logger.warning("Suggestions missing categories: %s", ", ".join(missing))
    return suggestions
