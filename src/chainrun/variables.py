# variables.py
from __future__ import annotations

import re
import threading
from typing import Dict, Mapping, Optional

from .errors import UnresolvedVariable

TOKEN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_\-\.]*)\}")


class VariableStore:
    """
    Name -> value bindings for one script run.

    Three provenance classes, looked up in this order:
      captures   (set at runtime, most recent wins)
      params     (bound positionally at script entry)
      secrets    (bound from the environment at script entry, read-only)

    Parallel lanes work on a fork(): they read a snapshot taken when the
    group started, and every capture they set is also written through to the
    parent store (under its lock, last writer wins).
    """

    def __init__(
        self,
        params: Optional[Mapping[str, str]] = None,
        secrets: Optional[Mapping[str, str]] = None,
        *,
        _captures: Optional[Dict[str, str]] = None,
        _parent: Optional[VariableStore] = None,
    ):
        self._params: Dict[str, str] = dict(params or {})
        self._secrets: Dict[str, str] = dict(secrets or {})
        self._captures: Dict[str, str] = dict(_captures or {})
        self._parent = _parent
        self._lock = threading.Lock()

    # ---- reads ----
    def lookup(self, name: str) -> Optional[str]:
        with self._lock:
            if name in self._captures:
                return self._captures[name]
        if name in self._params:
            return self._params[name]
        return self._secrets.get(name)

    def __contains__(self, name: str) -> bool:
        return self.lookup(name) is not None

    @property
    def params(self) -> Dict[str, str]:
        return dict(self._params)

    @property
    def secrets(self) -> Dict[str, str]:
        return dict(self._secrets)

    @property
    def captures(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._captures)

    # ---- writes ----
    def set_capture(self, name: str, value: str) -> None:
        with self._lock:
            self._captures[name] = value
        if self._parent is not None:
            self._parent.set_capture(name, value)

    def fork(self) -> VariableStore:
        """Snapshot view for a parallel lane (writes propagate to self)."""
        with self._lock:
            snapshot = dict(self._captures)
        child = VariableStore(_captures=snapshot, _parent=self)
        # params/secrets never change after entry; share them as-is
        child._params = self._params
        child._secrets = self._secrets
        return child


def resolve(template: str, store: VariableStore) -> str:
    """
    Render `template` against `store`.

    Every ${name} is replaced; resolution is all-or-nothing, the first token
    without a binding raises UnresolvedVariable.
    """
    def _sub(m: re.Match) -> str:
        name = m.group(1)
        value = store.lookup(name)
        if value is None:
            raise UnresolvedVariable(
                message=f"No value bound for ${{{name}}}",
                name=name,
                details={"template": template},
            )
        return value

    return TOKEN.sub(_sub, template)


def references(template: str) -> list[str]:
    """Variable names referenced by a template, in order of appearance."""
    return TOKEN.findall(template)
