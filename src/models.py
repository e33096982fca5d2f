"""Data classes for family member records and resolved tree nodes."""

from dataclasses import dataclass, field

# Roles a resolved node can play in the tree
ROLE_ORIGINATOR = "Originator"
ROLE_DESCENDANT = "Descendant"
ROLE_SPOUSE = "Spouse"

# Edge types used when the resolved nodes are turned into a graph
PARENT_OF = "PARENT_OF"
SPOUSE_OF = "SPOUSE_OF"

# Lineage tags, used by renderers as opaque styling keys
TAG_FOUNDER = "founder"
TAG_FIRST_GENERATION = "first_generation"
TAG_MALE_BRANCH_1 = "male_branch_1"
TAG_MALE_BRANCH_2 = "male_branch_2"
TAG_MALE_BRANCH_3 = "male_branch_3"
TAG_MALE_BRANCH_OVERFLOW = "male_branch_overflow"
TAG_FEMALE_BRANCH = "female_branch"
TAG_DEFAULT = "default"


@dataclass(frozen=True)
class MemberRecord:
    id: str
    first_name: str = ""
    last_name: str = ""
    gender: str = ""
    father_first_name: str = ""
    father_last_name: str = ""
    mother_first_name: str = ""
    mother_last_name: str = ""
    spouse_first_name: str = ""
    spouse_last_name: str = ""
    birth_order: int | None = None
    marriage_order: int | None = None
    marital_status: str = ""
    birth_date: str | None = None  # ISO format YYYY-MM-DD or None
    portrait_url: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def normalized_gender(self) -> str:
        """Gender folded to 'male', 'female' or 'other'."""
        g = (self.gender or "").strip().lower()
        if g in ("male", "m"):
            return "male"
        if g in ("female", "f"):
            return "female"
        return "other"


@dataclass(frozen=True)
class Relationships:
    father_id: str | None = None
    mother_id: str | None = None
    # An empty set means "none"; there is no separate unset state
    spouse_ids: frozenset[str] = field(default_factory=frozenset)
    children_ids: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class DerivedAttributes:
    is_originator: bool = False
    is_twin: bool = False
    is_polygamous: bool = False
    is_out_of_wedlock: bool = False
    role: str = ROLE_DESCENDANT
    lineage_tag: str = TAG_DEFAULT
    multiple_birth_label: str | None = None  # Twins, Triplets, Multiples


@dataclass(frozen=True)
class ResolvedNode:
    id: str
    record: MemberRecord
    relationships: Relationships
    derived: DerivedAttributes

    @property
    def attributes(self) -> dict:
        """Display fields plus computed flags, as handed to UI callbacks."""
        r = self.record
        d = self.derived
        return {
            "id": self.id,
            "first_name": r.first_name,
            "last_name": r.last_name,
            "gender": r.normalized_gender,
            "birth_date": r.birth_date,
            "portrait_url": r.portrait_url,
            "birth_order": r.birth_order,
            "marriage_order": r.marriage_order,
            "marital_status": r.marital_status,
            "is_originator": d.is_originator,
            "is_twin": d.is_twin,
            "is_polygamous": d.is_polygamous,
            "is_out_of_wedlock": d.is_out_of_wedlock,
            "role": d.role,
            "lineage_tag": d.lineage_tag,
            "multiple_birth_label": d.multiple_birth_label,
        }
