"""Locator candidate sets for SunoBot browser automation.

Each semantic UI role (e.g. "style_input") maps to an ordered list of
selectors, most specific first.  Adaptive roles learn from use: a selector
that works gets promoted to the front and one that errors gets demoted,
with the learned order persisted between sessions.  Roles whose order
encodes disambiguation are registered as non-adaptive and always keep
their declared order.

The lists are data: a JSON overrides file can replace any role's
candidates without touching control-flow code::

    {
      "create_button": ["button[data-testid=create]", "button:has-text('Create')"],
      "style_input": {"selectors": ["textarea#style"], "adaptive": false}
    }
"""

import json
import logging
from dataclasses import dataclass, replace
from pathlib import Path

from automation.atomic_io import atomic_write_json

logger = logging.getLogger("sunobot.automation")

DEFAULT_REGISTRY_PATH = Path.home() / ".sunobot" / "selector_registry.json"


@dataclass(frozen=True)
class CandidateSet:
    """Ordered selector strategies for one UI role."""
    role: str
    selectors: tuple[str, ...]
    require_enabled: bool = False
    adaptive: bool = True
    pick_last: bool = False

    def __post_init__(self):
        if not self.role:
            raise ValueError("CandidateSet needs a role name")
        if isinstance(self.selectors, (list, str)):
            object.__setattr__(
                self, "selectors",
                (self.selectors,) if isinstance(self.selectors, str) else tuple(self.selectors),
            )
        if not self.selectors:
            raise ValueError(f"CandidateSet {self.role!r} has no selectors")
        if any(not isinstance(s, str) or not s.strip() for s in self.selectors):
            raise ValueError(f"CandidateSet {self.role!r} contains a blank selector")


class SelectorRegistry:
    """Holds candidate sets and their learned priority order."""

    def __init__(self, path: Path | str | None = None,
                 defaults: list[CandidateSet] | None = None,
                 overrides_path: Path | str | None = None):
        self._path = Path(path) if path else DEFAULT_REGISTRY_PATH
        self._sets: dict[str, CandidateSet] = {}
        self._learned: dict[str, list[str]] = {}
        if defaults is None:
            from automation.locator_table import DEFAULT_CANDIDATES
            defaults = DEFAULT_CANDIDATES
        for candidate_set in defaults:
            self._sets[candidate_set.role] = candidate_set
        if overrides_path:
            self.load_overrides(overrides_path)
        self._load()

    # ------------------------------------------------------------------
    # Candidate sets
    # ------------------------------------------------------------------

    def register(self, candidate_set: CandidateSet) -> None:
        """Add or replace a role.  Learned order for it is discarded."""
        self._sets[candidate_set.role] = candidate_set
        self._learned.pop(candidate_set.role, None)

    def get(self, role: str) -> CandidateSet | None:
        return self._sets.get(role)

    def roles(self) -> list[str]:
        return sorted(self._sets)

    def get_selectors(self, role: str) -> list[str]:
        """Return selectors for a role in current priority order."""
        candidate_set = self._sets.get(role)
        if candidate_set is None:
            return []
        declared = list(candidate_set.selectors)
        learned = self._learned.get(role)
        if candidate_set.adaptive and learned and sorted(learned) == sorted(declared):
            return list(learned)
        return declared

    def load_overrides(self, path: Path | str) -> int:
        """Replace roles from a JSON overrides file.  Returns roles applied."""
        path = Path(path).expanduser()
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Failed to read selector overrides {path}: {e}")
            return 0
        if not isinstance(data, dict):
            logger.warning(f"Selector overrides {path} must be a JSON object")
            return 0

        applied = 0
        for role, spec in data.items():
            base = self._sets.get(role) or CandidateSet(role, ("*",))
            try:
                if isinstance(spec, dict):
                    candidate_set = replace(
                        base,
                        selectors=tuple(spec.get("selectors", base.selectors)),
                        require_enabled=spec.get("require_enabled", base.require_enabled),
                        adaptive=spec.get("adaptive", base.adaptive),
                        pick_last=spec.get("pick_last", base.pick_last),
                    )
                else:
                    candidate_set = replace(base, selectors=tuple(spec))
            except (TypeError, ValueError) as e:
                logger.warning(f"Skipping selector override for {role!r}: {e}")
                continue
            self.register(candidate_set)
            applied += 1
        logger.info(f"Applied {applied} selector override(s) from {path}")
        return applied

    # ------------------------------------------------------------------
    # Learning
    # ------------------------------------------------------------------

    def promote(self, role: str, selector: str) -> None:
        """Move a selector to the front of its role (it worked)."""
        order = self._adaptive_order(role)
        if order is None or selector not in order or order[0] == selector:
            return
        order.remove(selector)
        order.insert(0, selector)
        self._learned[role] = order
        self._save()

    def demote(self, role: str, selector: str) -> None:
        """Move a selector to the back of its role (it errored)."""
        order = self._adaptive_order(role)
        if order is None or selector not in order or order[-1] == selector:
            return
        order.remove(selector)
        order.append(selector)
        self._learned[role] = order
        self._save()

    def reset(self, role: str | None = None) -> None:
        """Forget learned ordering for one role, or for all of them."""
        if role is None:
            self._learned.clear()
        else:
            self._learned.pop(role, None)
        self._save()

    def _adaptive_order(self, role: str) -> list[str] | None:
        candidate_set = self._sets.get(role)
        if candidate_set is None or not candidate_set.adaptive:
            return None
        return self.get_selectors(role)

    def _load(self) -> None:
        """Load learned ordering from disk."""
        if not self._path.exists():
            return
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Failed to load selector registry: {e}")
            return
        if isinstance(data, dict):
            self._learned = {
                role: list(order) for role, order in data.items()
                if isinstance(order, list)
            }
            logger.debug(f"Selector registry loaded: {len(self._learned)} roles")

    def _save(self) -> None:
        """Save learned ordering to disk."""
        try:
            atomic_write_json(str(self._path), self._learned)
        except OSError as e:
            logger.warning(f"Failed to save selector registry: {e}")
