"""Text sanitization for model output.

All model text passes through sanitize_text before parsing. Markdown
code fences are unwrapped because many models add them even in JSON
mode.
"""

import re

# Control chars to strip (keep \t=0x09, \n=0x0a, \r=0x0d)
_CONTROL_RE = re.compile(
    r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]"
)

# Zero-width and BOM characters
_ZERO_WIDTH_RE = re.compile(
    r"[\u200b\u200c\u200d\u2060\ufeff\u00ad]"
)

# ```json ... ``` or ``` ... ```
_FENCE_RE = re.compile(r"```[a-zA-Z]*\s*(.*?)```", re.DOTALL)


def sanitize_text(text: str) -> str:
    """Strip control characters, zero-width chars and code fences."""
    text = _CONTROL_RE.sub("", text)
    text = _ZERO_WIDTH_RE.sub("", text)
    text = _FENCE_RE.sub(lambda m: m.group(1), text)
    return text.strip()
