"""Data models passed between resolvers, the cache and the rewriter."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from ..utils.manifest import ManifestEntry


@dataclass
class Resolved:
    """Resolved descriptor: the value to substitute plus optional structured data."""

    path: str
    data: Optional[Any] = None

    @classmethod
    def from_outcome(cls, outcome: "ResolverOutcome") -> "Resolved":
        """Normalize a resolver return value (str, dict or Resolved)."""
        if isinstance(outcome, Resolved):
            return outcome
        if isinstance(outcome, str):
            return cls(path=outcome)
        if isinstance(outcome, dict) and isinstance(outcome.get("path"), str):
            return cls(path=outcome["path"], data=outcome.get("data"))
        raise TypeError(f"Resolver returned unsupported value: {outcome!r}")

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"path": self.path}
        if self.data is not None:
            out["data"] = self.data
        return out


ResolverOutcome = Union[str, Resolved, Dict[str, Any]]


@dataclass
class HtmlResult:
    """Rewritten HTML and the manifest of resolutions applied to it."""

    html: str
    map: List[ManifestEntry] = field(default_factory=list)


@dataclass
class UrlResult:
    """Resolved value for a single URL."""

    path: str
    data: Optional[Any] = None
    map: List[ManifestEntry] = field(default_factory=list)
