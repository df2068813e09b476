"""
Crudforge Naming - Casing and pluralization helpers

Every generated artifact derives its names from these functions so that
model, repository, service, handler, migration and frontend all agree.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_SEPARATORS = ("_", "-", " ")


def snake_case(s: str) -> str:
    """Convert to snake_case."""
    out: list[str] = []
    for i, ch in enumerate(s):
        if ch in _SEPARATORS:
            ch = "_"
        elif ch.isupper() and i > 0:
            out.append("_")
        out.append(ch.lower())
    return re.sub(r"_+", "_", "".join(out)).strip("_")


def _is_pascal_case(s: str) -> bool:
    return bool(s) and s[0].isupper() and not any(sep in s for sep in _SEPARATORS)


def pascal_case(s: str) -> str:
    """Convert to PascalCase."""
    if _is_pascal_case(s):
        return s
    out = ""
    for part in re.split(r"[_\-\s]+", s):
        if not part:
            continue
        # A digit cannot mark a word boundary, keep the separator
        if part[0].isdigit() and out:
            out += "_"
        # Upper the first char only, preserve the rest
        out += part[0].upper() + part[1:]
    return out


def camel_case(s: str) -> str:
    """Convert to camelCase."""
    pascal = pascal_case(s)
    return pascal[:1].lower() + pascal[1:]


def kebab_case(s: str) -> str:
    """Convert to kebab-case."""
    return snake_case(s).replace("_", "-")


def pluralize(s: str) -> str:
    """Simple English pluralization, no irregular words."""
    if s.endswith("y"):
        return s[:-1] + "ies"
    if s.endswith(("s", "sh", "ch", "x", "z")):
        return s + "es"
    return s + "s"


def singularize(s: str) -> str:
    """Simple English singularization."""
    if s.endswith("ies"):
        return s[:-3] + "y"
    if s.endswith("es"):
        return s[:-2]
    if s.endswith("s") and not s.endswith("ss"):
        return s[:-1]
    return s


def humanize(s: str) -> str:
    """Space-separated label: ``QuantityAfter`` -> ``Quantity After``."""
    return " ".join(w.capitalize() for w in snake_case(s).split("_") if w)


_TABLE_PREFIXES = ("tbl_", "tb_", "t_")


def model_name_from_table(table: str) -> str:
    """Derive a model name from a table name (``tb_order_items`` -> ``OrderItem``)."""
    for prefix in _TABLE_PREFIXES:
        if table.startswith(prefix):
            table = table[len(prefix):]
            break
    return pascal_case(singularize(table))


# ═══════════════════════════════════════════════════════════════════════════
# NAMING SET
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class NamingSet:
    """Every casing/pluralization variant of one entity name."""

    name: str
    camel: str
    snake: str
    kebab: str
    lower: str
    plural: str
    plural_camel: str
    plural_snake: str
    plural_kebab: str

    @classmethod
    def derive(cls, name: str) -> "NamingSet":
        pascal = pascal_case(name)
        snake = snake_case(pascal)
        lower = pascal.lower()
        return cls(
            name=pascal,
            camel=camel_case(pascal),
            snake=snake,
            kebab=kebab_case(pascal),
            lower=lower,
            plural=pluralize(lower),
            plural_camel=camel_case(pluralize(pascal)),
            plural_snake=pluralize(snake),
            plural_kebab=pluralize(kebab_case(pascal)),
        )

    @property
    def table(self) -> str:
        return self.plural_snake

    def as_context(self) -> dict[str, str]:
        """Template keys shared by every generator."""
        return {
            "name": self.name,
            "name_camel": self.camel,
            "name_snake": self.snake,
            "name_kebab": self.kebab,
            "name_lower": self.lower,
            "name_plural": self.plural,
            "name_plural_camel": self.plural_camel,
            "name_plural_snake": self.plural_snake,
            "name_plural_kebab": self.plural_kebab,
            "table_name": self.table,
        }
