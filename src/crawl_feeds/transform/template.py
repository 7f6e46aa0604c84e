"""Field templates: text with `{{name}}` placeholders.

`{{ name }}` and `{{.name}}` are accepted too. A placeholder whose key is
missing from the field-mapping renders as an empty string.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from crawl_feeds.errors import ConfigurationError
from crawl_feeds.models import FieldMapping

TEMPLATE_FIELDS = ("title", "uri", "description")

_OPEN = "{{"
_CLOSE = "}}"
_NAME_RE = re.compile(r"\s*\.?([A-Za-z_][A-Za-z0-9_]*)\s*")


@dataclass(frozen=True)
class Template:
    text: str
    # Alternating literal and placeholder name, starting and ending with a literal
    parts: tuple[str, ...]

    @property
    def names(self) -> frozenset[str]:
        return frozenset(self.parts[1::2])

    def render(self, mapping: FieldMapping) -> str:
        out = []
        for i, part in enumerate(self.parts):
            if i % 2 == 0:
                out.append(part)
            elif part in mapping:
                out.append(str(mapping[part]))
        return "".join(out)


def compile_template(text: str) -> Template:
    """Split `text` into literals and placeholders.

    Raises:
        ConfigurationError: On an unterminated or malformed placeholder.
    """
    parts: list[str] = []
    pos = 0

    while True:
        start = text.find(_OPEN, pos)
        if start == -1:
            parts.append(text[pos:])
            break

        end = text.find(_CLOSE, start + len(_OPEN))
        if end == -1:
            raise ConfigurationError(f"unterminated placeholder at offset {start} in template {text!r}")

        inner = text[start + len(_OPEN):end]
        match = _NAME_RE.fullmatch(inner)
        if match is None:
            raise ConfigurationError(f"bad placeholder {_OPEN}{inner}{_CLOSE} in template {text!r}")

        parts.append(text[pos:start])
        parts.append(match.group(1))
        pos = end + len(_CLOSE)

    return Template(text=text, parts=tuple(parts))


def compile_templates(fields: dict[str, str]) -> dict[str, Template]:
    """Compile the templates of a transform document, keyed by field name."""
    templates = {}
    for name, text in fields.items():
        if name not in TEMPLATE_FIELDS:
            raise ConfigurationError(f"unknown field {name!r}")
        templates[name] = compile_template(text)
    return templates


def render(text: str, mapping: FieldMapping) -> str:
    """Compile and render `text` in one go."""
    return compile_template(text).render(mapping)
