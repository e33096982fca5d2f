"""Tree configuration: founder identity, named ancestors and override tables."""

from dataclasses import dataclass, field, replace
import json
from pathlib import Path

from models import (
    MemberRecord,
    TAG_DEFAULT,
    TAG_FEMALE_BRANCH,
    TAG_FIRST_GENERATION,
    TAG_FOUNDER,
    TAG_MALE_BRANCH_1,
    TAG_MALE_BRANCH_2,
    TAG_MALE_BRANCH_3,
    TAG_MALE_BRANCH_OVERFLOW,
)


class ConfigError(ValueError):
    """Raised when a configuration file cannot be read or is malformed."""


DEFAULT_LINEAGE_COLORS = {
    TAG_FOUNDER: "#8B4513",
    TAG_FIRST_GENERATION: "#2563EB",
    TAG_MALE_BRANCH_1: "#DC2626",
    TAG_MALE_BRANCH_2: "#059669",
    TAG_MALE_BRANCH_3: "#7C3AED",
    TAG_MALE_BRANCH_OVERFLOW: "#EA580C",
    TAG_FEMALE_BRANCH: "#FDE68A",
    TAG_DEFAULT: "#6B7280",
}


@dataclass(frozen=True)
class NamedMember:
    """
    A reference to one specific person, by id and/or name.

    A record matches when its id equals `id`, or when its first name (and last
    name, if one is given) equals the configured name, case-insensitively.
    """

    id: str | None = None
    first_name: str | None = None
    last_name: str | None = None

    def matches(self, record: MemberRecord) -> bool:
        if self.id and record.id == self.id:
            return True
        if not self.first_name:
            return False
        if (record.first_name or "").strip().lower() != self.first_name.strip().lower():
            return False
        if self.last_name:
            return (record.last_name or "").strip().lower() == self.last_name.strip().lower()
        return True


@dataclass(frozen=True)
class ParentOverride:
    """Known under-linked parent edge that name matching cannot recover."""

    child: NamedMember
    father: NamedMember | None = None
    mother: NamedMember | None = None


@dataclass(frozen=True)
class TreeConfig:
    founder: NamedMember = NamedMember(id="D00Z00001", first_name="LAKETU")
    first_generation: NamedMember | None = NamedMember(id="D01Z00002", first_name="EGUNDEBI")
    spouse_id_prefix: str | None = "S"
    descendant_id_prefix: str | None = "D"
    # id -> canonical "First Last" registered as an extra name key
    aliases: dict[str, str] = field(default_factory=dict)
    parent_overrides: tuple[ParentOverride, ...] = (
        ParentOverride(
            child=NamedMember(id="EGUNDEBI", first_name="EGUNDEBI"),
            father=NamedMember(id="LAKETU", first_name="LAKETU"),
        ),
    )
    lineage_colors: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_LINEAGE_COLORS))
    max_depth: int = 6

    def color_for(self, tag: str) -> str:
        return self.lineage_colors.get(tag, self.lineage_colors.get(TAG_DEFAULT, "#6B7280"))


def _named_member(data, key: str) -> NamedMember | None:
    if data is None:
        return None
    if not isinstance(data, dict):
        raise ConfigError(f"'{key}' must be an object with id/first_name/last_name")
    unknown = set(data) - {"id", "first_name", "last_name"}
    if unknown:
        raise ConfigError(f"Unknown keys in '{key}': {sorted(unknown)}")
    member = NamedMember(
        id=data.get("id"),
        first_name=data.get("first_name"),
        last_name=data.get("last_name"),
    )
    if not member.id and not member.first_name:
        raise ConfigError(f"'{key}' needs at least an id or a first_name")
    return member


def config_from_dict(data: dict) -> TreeConfig:
    """Overlay a plain dict (e.g. parsed JSON) on the default configuration."""
    config = TreeConfig()
    changes = {}

    if "founder" in data:
        founder = _named_member(data["founder"], "founder")
        if founder is None:
            raise ConfigError("'founder' cannot be null")
        changes["founder"] = founder
    if "first_generation" in data:
        changes["first_generation"] = _named_member(data["first_generation"], "first_generation")

    for key in ("spouse_id_prefix", "descendant_id_prefix"):
        if key in data:
            value = data[key]
            if value is not None and not isinstance(value, str):
                raise ConfigError(f"'{key}' must be a string or null")
            changes[key] = value or None

    if "aliases" in data:
        if not isinstance(data["aliases"], dict):
            raise ConfigError("'aliases' must map ids to names")
        changes["aliases"] = {str(k): str(v) for k, v in data["aliases"].items()}

    if "parent_overrides" in data:
        overrides = []
        for i, entry in enumerate(data["parent_overrides"] or []):
            if not isinstance(entry, dict) or "child" not in entry:
                raise ConfigError(f"parent_overrides[{i}] needs a 'child'")
            overrides.append(
                ParentOverride(
                    child=_named_member(entry["child"], f"parent_overrides[{i}].child"),
                    father=_named_member(entry.get("father"), f"parent_overrides[{i}].father"),
                    mother=_named_member(entry.get("mother"), f"parent_overrides[{i}].mother"),
                )
            )
        changes["parent_overrides"] = tuple(overrides)

    if "lineage_colors" in data:
        if not isinstance(data["lineage_colors"], dict):
            raise ConfigError("'lineage_colors' must map tags to colors")
        colors = dict(DEFAULT_LINEAGE_COLORS)
        colors.update({str(k): str(v) for k, v in data["lineage_colors"].items()})
        changes["lineage_colors"] = colors

    if "max_depth" in data:
        max_depth = data["max_depth"]
        if not isinstance(max_depth, int) or isinstance(max_depth, bool) or max_depth < 1:
            raise ConfigError("'max_depth' must be a positive integer")
        changes["max_depth"] = max_depth

    return replace(config, **changes)


def load_config(path: Path) -> TreeConfig:
    """Load a JSON configuration file, falling back to defaults for missing keys."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Cannot read config {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in config {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config {path} must contain a JSON object")
    return config_from_dict(data)
