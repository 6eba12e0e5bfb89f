"""
cargo_rank/index/records.py — Package and dependency records from a registry index.

One line of a crates.io-style index file is one published version of a crate:

    {"name": "serde_json", "vers": "1.0.0", "deps": [...], "cksum": "...",
     "features": {...}, "yanked": false}

The ranking core only reads `name` and the dependency names. Everything else
(version requirement, optional flag, feature lists, checksum, yanked status,
and any keys this module does not know about) is preserved so that a record
can be written back out unchanged via to_dict().
"""

from dataclasses import dataclass, field
from typing import Any, Optional

_DEPENDENCY_KEYS = (
    "name", "req", "features", "optional", "default_features", "target", "kind", "package",
)
_PACKAGE_KEYS = ("name", "vers", "deps", "cksum", "features", "yanked")


@dataclass(frozen=True)
class Dependency:
    """A single dependency reference declared by a package version."""

    name: str
    req: str = "*"
    features: tuple[str, ...] = ()
    optional: bool = False
    default_features: bool = True
    target: Optional[str] = None
    kind: Optional[str] = None     # None / "normal", "dev" or "build"
    package: Optional[str] = None  # original crate name when the dependency is renamed
    extra: dict[str, Any] = field(default_factory=dict, hash=False, compare=False)

    @property
    def crate_name(self) -> str:
        """Registry name of the depended-on crate; `name` is only a local alias when renamed."""
        return self.package or self.name

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Dependency":
        return cls(
            name=str(data["name"]),
            req=str(data.get("req", "*")),
            features=tuple(data.get("features") or ()),
            optional=bool(data.get("optional", False)),
            default_features=bool(data.get("default_features", True)),
            target=data.get("target"),
            kind=data.get("kind"),
            package=data.get("package"),
            extra={k: v for k, v in data.items() if k not in _DEPENDENCY_KEYS},
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "name": self.name,
            "req": self.req,
            "features": list(self.features),
            "optional": self.optional,
            "default_features": self.default_features,
            "target": self.target,
            "kind": self.kind,
        }
        if self.package is not None:
            out["package"] = self.package
        out.update(self.extra)
        return out


@dataclass(frozen=True)
class PackageRecord:
    """
    The latest known version of one package.

    Uniqueness of `name` across a collection is the loader's responsibility;
    the graph builder assumes it.
    """

    name: str
    vers: str = "0.0.0"
    deps: tuple[Dependency, ...] = ()
    cksum: str = ""
    features: dict[str, Any] = field(default_factory=dict, hash=False, compare=False)
    yanked: bool = False
    extra: dict[str, Any] = field(default_factory=dict, hash=False, compare=False)

    @property
    def dependency_names(self) -> list[str]:
        """Depended-on crate names in declaration order (duplicates kept, renames resolved)."""
        return [dep.crate_name for dep in self.deps]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PackageRecord":
        """
        Build a record from one decoded index line.

        Raises:
            KeyError:  if `name` (or a dependency's `name`) is missing.
            TypeError: if `deps` is not a list of objects.
        """
        return cls(
            name=str(data["name"]),
            vers=str(data.get("vers", "0.0.0")),
            deps=tuple(Dependency.from_dict(d) for d in data.get("deps") or ()),
            cksum=str(data.get("cksum", "")),
            features=dict(data.get("features") or {}),
            yanked=bool(data.get("yanked", False)),
            extra={k: v for k, v in data.items() if k not in _PACKAGE_KEYS},
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "name": self.name,
            "vers": self.vers,
            "deps": [dep.to_dict() for dep in self.deps],
            "cksum": self.cksum,
            "features": dict(self.features),
            "yanked": self.yanked,
        }
        out.update(self.extra)
        return out

