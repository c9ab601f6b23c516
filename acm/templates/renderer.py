"""Template Renderer - Substitute ||/name|| markers in prompt and message templates."""

import re
from collections.abc import Mapping

from acm.errors import TemplateError

CLOSE = "||"

# Order matters: escaped delimiter, complete marker, dangling opener
_TOKEN_RE = re.compile(
    r"(?P<escape>\\\|\|)"
    r"|\|\|/(?P<name>[A-Za-z_][A-Za-z0-9_.-]*)\|\|"
    r"|(?P<dangling>\|\|/)"
)


def placeholders(template: str) -> list[str]:
    """Names referenced by the template, in order of appearance."""
    return [m.group("name") for m in _TOKEN_RE.finditer(template) if m.group("name")]


def render(template: str, fields: Mapping[str, object], strict: bool = True) -> str:
    """Replace every ||/name|| marker in `template` with the value from `fields`.

    Names without a value render as an empty string. `\\||` renders as a
    literal `||`. Strict mode rejects an escape whose `||` would be followed
    by `/` or preceded by a backslash in the output.

    In strict mode, an opener that never becomes a valid marker and a name
    that only matches a field under different casing raise TemplateError.
    Lenient mode keeps the dangling opener verbatim and renders the
    mismatched name as empty.
    """
    folded = {key.lower(): key for key in fields}

    def _substitute(match: re.Match) -> str:
        if match.group("escape"):
            return CLOSE
        if match.group("dangling"):
            if strict:
                raise TemplateError(
                    f"Unterminated or invalid placeholder at offset {match.start()}: "
                    f"{template[match.start():match.start() + 20]!r}"
                )
            return match.group(0)

        name = match.group("name")
        if name in fields:
            value = fields[name]
            return "" if value is None else str(value)
        if strict and name.lower() in folded:
            raise TemplateError(
                f"Placeholder '{name}' does not match field '{folded[name.lower()]}' (names are case-sensitive)"
            )
        return ""

    out = []
    length = 0
    escapes = []  # (offset in template, end in output)
    pos = 0
    for match in _TOKEN_RE.finditer(template):
        for piece in (template[pos:match.start()], _substitute(match)):
            out.append(piece)
            length += len(piece)
        if match.group("escape"):
            escapes.append((match.start(), length))
        pos = match.end()
    out.append(template[pos:])
    result = "".join(out)

    if strict:
        # A literal || in the output must not read as an opener or an escape
        for offset, end in escapes:
            if result.startswith(("/", "|/"), end) or result[end - 3:end - 2] == "\\":
                raise TemplateError(
                    f"Escaped delimiter at offset {offset} would not render back to itself: "
                    f"{template[offset:offset + 20]!r}"
                )
    return result
