from __future__ import annotations

from dataclasses import dataclass

EXCLUDE = "-"
HASH = "hash"
RANGE = "range"


@dataclass(frozen=True)
class TagOptions:
    tokens: tuple[str, ...] = ()

    def contains(self, token: str) -> bool:
        if not token:
            return False
        return token in self.tokens

    def __contains__(self, token: object) -> bool:
        return isinstance(token, str) and self.contains(token)


def parse_tag(tag: str | None) -> tuple[str, TagOptions]:
    """Split a field tag into its attribute name and option tokens.

    Everything before the first comma is the name (empty means "use the
    declared field name"); the remainder is a comma-delimited option list.
    """
    if not tag:
        return "", TagOptions()

    name, sep, rest = tag.partition(",")
    if not sep:
        return name, TagOptions()
    return name, TagOptions(tuple(t for t in rest.split(",") if t))


@dataclass(frozen=True)
class FieldTag:
    name: str | None
    hash_key: bool
    range_key: bool
    excluded: bool
    options: TagOptions = TagOptions()

    @classmethod
    def parse(cls, raw: str | None) -> FieldTag:
        name, options = parse_tag(raw)
        return cls(
            name=name or None,
            hash_key=options.contains(HASH),
            range_key=options.contains(RANGE),
            excluded=name == EXCLUDE,
            options=options,
        )

    @property
    def is_key(self) -> bool:
        return self.hash_key or self.range_key

    def attribute_name(self, declared: str) -> str:
        return self.name or declared
