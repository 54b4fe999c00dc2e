"""
Entity schemas for the spreadsheet import engine.

One EntitySchema describes everything that differs between imported
entities: where records are stored, how headers map onto fields, which
fields are dates or numbers, the natural key and the injected defaults.
The engine itself is shared.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Union

# Canonical field → acceptable header spellings, in precedence order
AliasTable = Mapping[str, tuple[str, ...]]

# Literal source header → canonical field
ColumnMapping = dict[str, str]

# Canonical field → coerced value, one per accepted source row
CanonicalRecord = dict[str, Any]

# A default is either a literal or computed from the partially built record
DefaultValue = Union[Any, Callable[[CanonicalRecord], Any]]


@dataclass(frozen=True)
class ParentReference:
    """Rows must reference an existing record in another table."""
    field: str
    table: str
    column: str


@dataclass(frozen=True)
class CompanionTable:
    """Subset of fields written to a second table keyed the same way."""
    table: str
    fields: tuple[str, ...]


@dataclass(frozen=True)
class EntitySchema:
    """
    Field-type manifest for one importable entity.

    Attributes:
        name: Entity name used in URLs and logs (e.g. "inventory")
        table: Target table for the upsert
        natural_key: Field(s) identifying a record; also the conflict target
        aliases: Alias table, in declaration order
        required_fields: Fields some column must resolve to before importing
        date_fields: Fields coerced to YYYY-MM-DD
        numeric_fields: Fields coerced to numbers
        additive_fields: Numeric fields that default to 0 instead of None
        defaults: Values injected when a field is absent or None
        transient_fields: Fields used while transforming but never stored
        stamp_updated_at: Set updated_at on every committed row
        parent: Optional reference every row must satisfy
        companion: Optional second table written after the main table
    """
    name: str
    table: str
    natural_key: tuple[str, ...]
    aliases: AliasTable
    required_fields: tuple[str, ...] = ()
    date_fields: frozenset[str] = frozenset()
    numeric_fields: frozenset[str] = frozenset()
    additive_fields: frozenset[str] = frozenset()
    defaults: Mapping[str, DefaultValue] = field(default_factory=dict)
    transient_fields: tuple[str, ...] = ()
    stamp_updated_at: bool = False
    parent: Optional[ParentReference] = None
    companion: Optional[CompanionTable] = None

    def __post_init__(self):
        if not self.natural_key:
            raise ValueError(f"Entity {self.name} must declare a natural key")
        unknown = set(self.natural_key) - set(self.aliases) - set(self.defaults)
        if unknown:
            raise ValueError(
                f"Entity {self.name} natural key fields have no alias or default: "
                f"{sorted(unknown)}"
            )
        # A computed key value changes between runs and breaks idempotent re-imports
        computed = [f for f in self.natural_key if callable(self.defaults.get(f))]
        if computed:
            raise ValueError(
                f"Entity {self.name} natural key fields cannot have computed defaults: "
                f"{computed}"
            )

    @property
    def all_required_fields(self) -> tuple[str, ...]:
        """Required fields plus any natural-key field lacking a default."""
        required = list(self.required_fields)
        for key_field in self.natural_key:
            if key_field not in required and key_field not in self.defaults:
                required.append(key_field)
        return tuple(required)
