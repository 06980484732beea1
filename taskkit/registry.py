from __future__ import annotations

import difflib
from dataclasses import dataclass
from typing import Any, Callable, Iterable


@dataclass(frozen=True)
class PluginRef:
    id: str
    apply: Callable[[Any], Any]
    doc: str | None = None
    source: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id.strip():
            raise TypeError("PluginRef.id must be a non-empty string")
        object.__setattr__(self, "id", self.id.strip())

        if not callable(self.apply):
            raise TypeError(f"PluginRef.apply must be callable (type={type(self.apply).__name__})")
        if self.doc is not None and (not isinstance(self.doc, str) or not self.doc.strip()):
            raise TypeError("PluginRef.doc must be a non-empty string or None")
        if self.source is None:
            module = getattr(self.apply, "__module__", None) or "<unknown_module>"
            qualname = getattr(self.apply, "__qualname__", None) or "<callable>"
            object.__setattr__(self, "source", f"{module}.{qualname}")


@dataclass(frozen=True)
class PluginRegistry:
    _by_id: dict[str, PluginRef]

    @classmethod
    def from_refs(cls, refs: Iterable[PluginRef]) -> "PluginRegistry":
        entries: dict[str, PluginRef] = {}
        for ref in refs:
            if ref.id in entries:
                raise ValueError(f"Duplicate plugin id: {ref.id}")
            entries[ref.id] = ref
        return cls(_by_id=entries)

    def available(self) -> tuple[str, ...]:
        return tuple(sorted(self._by_id.keys()))

    def describe(self) -> tuple[dict[str, Any], ...]:
        return tuple(
            {"plugin_id": ref.id, "doc": ref.doc, "source": ref.source}
            for ref in sorted(self._by_id.values(), key=lambda r: r.id)
        )

    def resolve(self, plugin_id: str) -> PluginRef:
        if not isinstance(plugin_id, str) or not plugin_id.strip():
            raise ValueError("plugin_id must be a non-empty string")
        key = plugin_id.strip()

        ref = self._by_id.get(key)
        if ref is not None:
            return ref

        suggestions = self.suggest(key)
        if suggestions:
            raise ValueError(
                f"Plugin with id '{plugin_id}' not found (did you mean: {', '.join(suggestions)}?)"
            )
        available = ", ".join(self.available()) or "<none>"
        raise ValueError(f"Plugin with id '{plugin_id}' not found (available: {available})")

    def suggest(self, plugin_id: str, *, limit: int = 3) -> tuple[str, ...]:
        key = (plugin_id or "").strip()
        if not key:
            return ()
        return tuple(difflib.get_close_matches(key, list(self._by_id.keys()), n=limit))
