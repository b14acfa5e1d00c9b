"""Directive assembly for the watermark-removal request.

This module is intentionally narrow: it only builds the instruction text sent
alongside the image. Payload encoding, transport, and response parsing happen
in `watermark_nuker.editing`.

Design constraints:
    - Deterministic construction for identical inputs.
    - Fixed ordering of directive components.
    - No hidden side effects (no I/O, no global state mutation).

Prompt safety model:
    - The user hint is interpolated as a raw string after trimming.
    - The hint is appended in its own section; it never replaces base guidance.
"""

from typing import Optional


# =========================================================
# BASE DIRECTIVE
# =========================================================
# Component order:
#   1) Role and sole task
#   2) Identification guidance
#   3) Removal guidance
#   4) Preservation guidance
#   5) Inpainting guidance

BASE_DIRECTIVE = (
    "You are a professional photo editor. Your sole task is to remove the watermark from this image. "
    "1. Identify the watermark: Look for semi-transparent logos, copyright text, URL addresses, or branding stamps. "
    "These are often in the corners (especially the bottom-right) or repeated patterns. "
    "2. Remove the watermark: Erase only these branding elements. "
    "3. PRESERVE CONTENT: Do NOT remove standard text, captions, speech bubbles, street signs, "
    "or any text that is part of the subject matter. Only remove the foreign branding layer. "
    "4. Inpaint: Fill the erased area to seamlessly match the background texture."
)

USER_REQUIREMENT_LABEL = "Specific user requirement: "

CLOSING_INSTRUCTION = "Return only the processed image."


def normalize_hint(instructions: Optional[str]) -> str:
    """Return the trimmed hint, or an empty string for missing/blank input."""
    if not instructions:
        return ""
    return instructions.strip()


def build_directive(instructions: Optional[str] = None) -> str:
    """Build the full directive for one removal request.

    Args:
        instructions: Optional free-text hint from the user.

    Returns:
        Base directive, then a "Specific user requirement" section when the
        trimmed hint is non-empty, then the closing instruction.
    """
    directive = BASE_DIRECTIVE

    hint = normalize_hint(instructions)
    if hint:
        directive += f"\n\n{USER_REQUIREMENT_LABEL}{hint}"

    directive += f"\n\n{CLOSING_INSTRUCTION}"
    return directive
