"""Structured dialogue templates.

A LineTemplate is parsed once, at definition time, into literal text and
named slots. Rendering asks a resolver per slot; a slot with no resolver, or
whose resolver returns nothing, renders its fallback instead.

    {target}            slot "target", empty fallback
    {target|everyone}   slot "target", fallback "everyone"
    {{ and }}           literal braces
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass

Resolver = Callable[[], "str | None"]


class TemplateError(Exception):
    """Raised for a malformed template definition or prompt."""


@dataclass(frozen=True)
class Slot:
    name: str
    fallback: str = ""


Part = str | Slot


@dataclass(frozen=True)
class LineTemplate:
    parts: tuple[Part, ...]

    @classmethod
    def parse(cls, text: str) -> LineTemplate:
        parts: list[Part] = []
        buf: list[str] = []
        i = 0
        while i < len(text):
            ch = text[i]
            if ch == "{" and text.startswith("{{", i):
                buf.append("{")
                i += 2
                continue
            if ch == "}" and text.startswith("}}", i):
                buf.append("}")
                i += 2
                continue
            if ch == "}":
                raise TemplateError(f"Unmatched '}}' at {i} in {text!r}")
            if ch == "{":
                end = text.find("}", i + 1)
                if end == -1:
                    raise TemplateError(f"Unterminated slot at {i} in {text!r}")
                name, _, fallback = text[i + 1 : end].partition("|")
                name = name.strip()
                if not name.isidentifier():
                    raise TemplateError(f"Bad slot name {name!r} in {text!r}")
                if buf:
                    parts.append("".join(buf))
                    buf = []
                parts.append(Slot(name, fallback))
                i = end + 1
                continue
            buf.append(ch)
            i += 1
        if buf:
            parts.append("".join(buf))
        return cls(tuple(parts))

    @property
    def slots(self) -> tuple[str, ...]:
        return tuple(p.name for p in self.parts if isinstance(p, Slot))

    def missing_slots(self, resolvers: Mapping[str, Resolver]) -> list[str]:
        return [name for name in self.slots if name not in resolvers]

    def render(self, resolvers: Mapping[str, Resolver] | None = None) -> str:
        resolvers = resolvers or {}
        out: list[str] = []
        for part in self.parts:
            if isinstance(part, str):
                out.append(part)
                continue
            resolver = resolvers.get(part.name)
            value = resolver() if resolver is not None else None
            out.append(value if value else part.fallback)
        return "".join(out)


def bank(*lines: str) -> tuple[LineTemplate, ...]:
    return tuple(LineTemplate.parse(line) for line in lines)
