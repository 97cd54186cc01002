import html
import re

# Any tag: <p>, </div>, <br/>, <a href="...">
_TAG = re.compile(r"<[^>]*>")


def strip_html(content: str | None) -> str:
    """
    Return the visible text of `content`: tags removed, entities decoded, surrounding whitespace trimmed.

    Used to decide whether a message body is empty; the stored content keeps its markup.
    """
    if not content:
        return ""
    # &nbsp; / &#160; decode to U+00A0, which str.strip() removes
    return html.unescape(_TAG.sub("", content)).strip()


def unique(values) -> list:
    """Drop None/empty values and duplicates, keeping first-seen order."""
    seen = []
    for value in values or []:
        if value and value not in seen:
            seen.append(value)
    return seen


__all__ = ["strip_html", "unique"]
