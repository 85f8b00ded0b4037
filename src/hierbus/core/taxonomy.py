# src/hierbus/core/taxonomy.py
"""Category taxonomies and the resolver that flattens them.

A taxonomy answers three questions about a category token: its direct
parent, the traits it directly refines, and (for events) which category an
event belongs to. ``resolve`` walks those answers upward and returns every
category an event of the given category also belongs to, most specific
first:

    node, node's traits (and their ancestors, depth first), node's parent, ...

Two taxonomies ship with the bus:

- ``ClassTaxonomy``: categories are ``Event`` / ``Trait`` subclasses and the
  declarations are simply the class bases.
- ``DeclaredTaxonomy``: categories are hashable tokens declared explicitly,
  for embedders that route on names rather than classes.
"""
from __future__ import annotations

from typing import Any, Dict, Hashable, List, Optional, Protocol, Sequence, Tuple

from hierbus.core.contracts import Event, Trait
from hierbus.core.errors import TaxonomyCycleError, TaxonomyError


class Taxonomy(Protocol):
    version: int

    def category_of(self, event: Any) -> Hashable: ...

    def parent_of(self, category: Hashable) -> Optional[Hashable]: ...

    def traits_of(self, category: Hashable) -> Sequence[Hashable]: ...

    def is_category(self, obj: Any) -> bool: ...


# ---------------- Class taxonomy ----------------

class ClassTaxonomy:
    """Python classes as categories: bases are the declarations."""

    # class hierarchies do not change after import
    version = 0

    def is_category(self, obj: Any) -> bool:
        return (
            isinstance(obj, type)
            and obj is not Trait
            and issubclass(obj, (Event, Trait))
        )

    def category_of(self, event: Any) -> type:
        if not isinstance(event, Event):
            raise TypeError(f"expected an Event instance, got {type(event).__name__}")
        return type(event)

    def parent_of(self, category: type) -> Optional[type]:
        if issubclass(category, Trait):
            return None
        for base in category.__bases__:
            if issubclass(base, Event) and not issubclass(base, Trait):
                return base
        return None

    def traits_of(self, category: type) -> Tuple[type, ...]:
        parent = self.parent_of(category)
        return tuple(
            b for b in category.__bases__
            if b is not parent and self.is_category(b)
        )


# ---------------- Declared taxonomy ----------------

class DeclaredTaxonomy:
    """Explicit, open taxonomy over hashable tokens.

    Undeclared tokens are valid categories without ancestors, so a flat
    topic bus works with no declarations at all.
    """

    def __init__(self) -> None:
        self._parents: Dict[Hashable, Optional[Hashable]] = {}
        self._traits: Dict[Hashable, Tuple[Hashable, ...]] = {}
        self.version = 0

    def declare(self, category: Hashable, parent: Optional[Hashable] = None,
                traits: Sequence[Hashable] = ()) -> None:
        if category is None:
            raise TaxonomyError("category must not be None")
        traits = tuple(traits)
        if category in self._parents:
            if self._parents[category] == parent and self._traits[category] == traits:
                return
            raise TaxonomyError(
                f"category {category!r} already declared with parent="
                f"{self._parents[category]!r} traits={self._traits[category]!r}"
            )
        self._parents[category] = parent
        self._traits[category] = traits
        self.version += 1

    def declared(self) -> List[Hashable]:
        return list(self._parents)

    def is_category(self, obj: Any) -> bool:
        if obj is None:
            return False
        try:
            hash(obj)
        except TypeError:
            return False
        return True

    def category_of(self, event: Any) -> Hashable:
        try:
            category = event.category
        except AttributeError:
            raise TypeError(
                f"{type(event).__name__} has no 'category' attribute"
            ) from None
        if category is None:
            raise TypeError(f"{type(event).__name__}.category must not be None")
        return category

    def parent_of(self, category: Hashable) -> Optional[Hashable]:
        return self._parents.get(category)

    def traits_of(self, category: Hashable) -> Tuple[Hashable, ...]:
        return self._traits.get(category, ())


# ---------------- Resolution ----------------

def resolve(taxonomy: Taxonomy, category: Hashable) -> Tuple[Hashable, ...]:
    """Return ``category`` followed by every broader category, de-duplicated.

    Raises TaxonomyCycleError when a category is reached again along its own
    refinement chain.
    """
    if category is None:
        raise TypeError("None is not a category")
    seen: Dict[Hashable, None] = {}
    _collect(taxonomy, category, seen, [])
    return tuple(seen)


def _collect(taxonomy: Taxonomy, category: Hashable,
             seen: Dict[Hashable, None], chain: List[Hashable]) -> None:
    # chain holds the categories refined by the current node, nearest last
    depth = len(chain)
    node: Optional[Hashable] = category
    while node is not None:
        if node in chain:
            raise TaxonomyCycleError(chain[chain.index(node):] + [node])
        chain.append(node)
        seen.setdefault(node, None)
        traits = tuple(taxonomy.traits_of(node))
        for t in traits:
            seen.setdefault(t, None)
        for t in traits:
            _collect(taxonomy, t, seen, chain)
        node = taxonomy.parent_of(node)
    del chain[depth:]


class CategoryResolver:
    """Memoising front for ``resolve``; invalidated when the taxonomy version moves.

    At most ``maxsize`` categories are kept, oldest evicted first. Class
    taxonomies never change version, so the bound is the only eviction.
    """

    def __init__(self, taxonomy: Taxonomy, maxsize: int = 1024):
        if maxsize < 1:
            raise ValueError("maxsize must be >= 1")
        self.taxonomy = taxonomy
        self.maxsize = maxsize
        self._memo: Dict[Hashable, Tuple[Hashable, ...]] = {}
        self._version = taxonomy.version

    def __len__(self) -> int:
        return len(self._memo)

    def resolve(self, category: Hashable) -> Tuple[Hashable, ...]:
        if self._version != self.taxonomy.version:
            self._memo.clear()
            self._version = self.taxonomy.version
        cats = self._memo.get(category)
        if cats is None:
            cats = resolve(self.taxonomy, category)
            if len(self._memo) >= self.maxsize:
                del self._memo[next(iter(self._memo))]
            self._memo[category] = cats
        return cats
