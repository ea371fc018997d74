"""Report-safe step output.

XML character data cannot hold most control characters or unpaired
surrogates, and CI systems reject very large reports. sanitize_output_for_xml
handles both; it never raises.
"""

from __future__ import annotations

import re

BYTES_IN_1_MEGABYTE = 1024 * 1024
# Ceiling for one step's output in the report, with a 200 KiB margin of safety
MAX_STEP_OUTPUT_SIZE = BYTES_IN_1_MEGABYTE - (200 * 1024)

TRUNCATION_MARKER = "truncated output to 1MB:\n"
SNIP_GLUE = "\n[...snip...]\n"

# Everything outside the XML 1.0 Char production
_INVALID_XML_CHARS = re.compile(
    "[^\x09\x0a\x0d\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]"
)
REPLACEMENT_CHARACTER = "\ufffd"


def _utf8_size(text: str) -> int:
    return len(text.encode("utf-8"))


def truncate_text_to_approximate_size(
    text: str, max_bytes: int, front_weight: float = 0.5
) -> str:
    """Shorten text to at most max_bytes UTF-8 bytes.

    Keeps front_weight of the budget from the start of the text and the
    rest from the end, joined by a snip marker. A front_weight of 0.0 keeps
    only the tail, 1.0 only the head. Multi-byte characters cut at the
    boundaries are dropped, so the result never exceeds max_bytes.

    Raises:
        ValueError: If front_weight is outside [0.0, 1.0].
    """
    if not 0.0 <= front_weight <= 1.0:
        raise ValueError("front_weight must be between 0.0 and 1.0")

    data = text.encode("utf-8")
    if len(data) <= max_bytes:
        return text

    glue = SNIP_GLUE.encode("utf-8")
    if front_weight in (0.0, 1.0):
        glue = b""
    budget = max(max_bytes - len(glue), 0)
    n_front = int(budget * front_weight)
    n_back = budget - n_front

    front = data[:n_front]
    back = data[len(data) - n_back :] if n_back else b""
    return (front + glue + back).decode("utf-8", errors="ignore")


def sanitize_output_for_xml(output: str, front_weight: float = 0.0) -> str:
    """Make step output safe to embed in the XML report.

    Replaces characters XML cannot represent with U+FFFD. Output larger than
    MAX_STEP_OUTPUT_SIZE is truncated (keeping the tail by default, where
    failures usually show up) and prefixed with TRUNCATION_MARKER; the
    marked result still fits within MAX_STEP_OUTPUT_SIZE.

    Args:
        output: Captured step output.
        front_weight: Share of the budget kept from the start of the output.

    Returns:
        Sanitized output. Empty input is returned unchanged.
    """
    if not output:
        return output

    output = _INVALID_XML_CHARS.sub(REPLACEMENT_CHARACTER, output)
    if _utf8_size(output) <= MAX_STEP_OUTPUT_SIZE:
        return output

    budget = MAX_STEP_OUTPUT_SIZE - _utf8_size(TRUNCATION_MARKER)
    truncated = truncate_text_to_approximate_size(
        output, budget, front_weight=front_weight
    )
    return f"{TRUNCATION_MARKER}{truncated}"
