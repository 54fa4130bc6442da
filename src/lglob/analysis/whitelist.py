"""
Whitelist Model and Resolution.

A whitelist is a tree of permitted names. Each node is one of:

*   `Namespace`: a mapping from name component to child node (``string``,
    ``os``, a required module's export table, ...).
*   `ANY`: any name at or below this point is permitted. Used for names the
    unit defines itself.
*   `Opaque`: a terminal symbol (a function or value) with no known members.

`resolve` walks a dotted name through the tree. `ScopedWhitelist` is the
copy-on-write working copy the policy engine mutates while checking one unit,
leaving the caller's whitelist untouched.
"""

from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Sequence, Tuple, Union


class AnySymbol:
  """Sentinel permitting every name under the node it replaces."""

  _instance = None

  def __new__(cls) -> "AnySymbol":
    if cls._instance is None:
      cls._instance = super().__new__(cls)
    return cls._instance

  def __repr__(self) -> str:
    return "ANY"


ANY = AnySymbol()


class Opaque:
  """
  A terminal whitelist entry.

  Attributes:
      identity: Free-form label of the symbol (e.g. "function").
  """

  __slots__ = ("identity",)

  def __init__(self, identity: str = "symbol"):
    self.identity = identity

  def __eq__(self, other: object) -> bool:
    return isinstance(other, Opaque) and other.identity == self.identity

  def __hash__(self) -> int:
    return hash(("Opaque", self.identity))

  def __repr__(self) -> str:
    return f"Opaque({self.identity!r})"


class Namespace:
  """
  A table of named whitelist entries.
  """

  __slots__ = ("entries",)

  def __init__(self, entries: Optional[Dict[str, "WhitelistValue"]] = None):
    self.entries: Dict[str, WhitelistValue] = entries if entries is not None else {}

  @classmethod
  def from_mapping(cls, mapping: Mapping[str, Any]) -> "Namespace":
    """
    Converts a plain nested mapping into whitelist nodes.

    Nested mappings become namespaces; `ANY` and existing nodes are kept as
    they are; every other value becomes an `Opaque` terminal.

    Args:
        mapping: e.g. ``{"print": True, "string": {"format": True}}``.

    Returns:
        The root Namespace.
    """
    return cls({str(key): _to_node(value) for key, value in mapping.items()})

  def get(self, name: str) -> Optional["WhitelistValue"]:
    return self.entries.get(name)

  def merged(self, other: "Namespace") -> "Namespace":
    """Returns a new namespace with `other`'s entries layered over this one's."""
    entries = dict(self.entries)
    for key, value in other.entries.items():
      current = entries.get(key)
      if isinstance(current, Namespace) and isinstance(value, Namespace):
        entries[key] = current.merged(value)
      else:
        entries[key] = value
    return Namespace(entries)

  def __contains__(self, name: object) -> bool:
    return name in self.entries

  def __iter__(self) -> Iterator[str]:
    return iter(self.entries)

  def __len__(self) -> int:
    return len(self.entries)

  def __eq__(self, other: object) -> bool:
    return isinstance(other, Namespace) and other.entries == self.entries

  def __repr__(self) -> str:
    return f"Namespace({self.entries!r})"


WhitelistValue = Union[Namespace, AnySymbol, Opaque]


def _to_node(value: Any) -> WhitelistValue:
  if isinstance(value, (Namespace, AnySymbol, Opaque)):
    return value
  if isinstance(value, Mapping):
    return Namespace.from_mapping(value)
  if isinstance(value, str):
    return Opaque(value)
  return Opaque(type(value).__name__)


def resolve(root: Namespace, qualified_name: str) -> Tuple[Optional[WhitelistValue], bool]:
  """
  Resolves a dotted name against a whitelist tree.

  Args:
      root: The whitelist root.
      qualified_name: e.g. ``"string.format"``.

  Returns:
      Tuple of (value, root_resolved). `value` is the node the full path leads
      to (`ANY` as soon as the walk reaches that sentinel), or None if some
      component is missing. `root_resolved` is True when at least the first
      component was found, which separates an unknown symbol from an unknown
      member of a known one.
  """
  node: WhitelistValue = root
  root_resolved = False
  for part in qualified_name.split("."):
    if node is ANY:
      return ANY, root_resolved
    if not isinstance(node, Namespace):
      return None, root_resolved
    child = node.get(part)
    if child is None:
      return None, root_resolved
    node = child
    root_resolved = True
  return node, root_resolved


class ScopedWhitelist:
  """
  Copy-on-write view of a whitelist for the duration of one unit.

  Top-level bindings are written into a private copy of the root entries made
  on the first mutation; the base namespace is never modified.
  """

  def __init__(self, base: Namespace):
    self._base = base
    self._entries: Dict[str, WhitelistValue] = base.entries
    self._owned = False

  @property
  def root(self) -> Namespace:
    """The namespace lookups should run against."""
    if not self._owned:
      return self._base
    return Namespace(self._entries)

  @property
  def copied(self) -> bool:
    """True once a mutation forced a private copy."""
    return self._owned

  def bind(self, name: str, value: WhitelistValue) -> None:
    """
    Binds a top-level name in the working copy.

    Args:
        name: Global or alias name.
        value: Node to bind.
    """
    if not self._owned:
      self._entries = dict(self._entries)
      self._owned = True
    self._entries[name] = value

  def rebuild(self, entries: Mapping[str, WhitelistValue]) -> None:
    """
    Discards every binding, keeping only `entries`.

    Args:
        entries: The complete new set of top-level bindings.
    """
    self._entries = dict(entries)
    self._owned = True

  def resolve(self, qualified_name: str) -> Tuple[Optional[WhitelistValue], bool]:
    return resolve(self.root, qualified_name)


def bind_path(node: Optional[WhitelistValue], parts: Sequence[str]) -> WhitelistValue:
  """
  Returns a copy of `node` that also permits the path `parts` below it.

  Namespaces along the path are copied, never modified. A missing or opaque
  node on the path becomes a fresh namespace.

  Args:
      node: Current value at the start of the path, if any.
      parts: Remaining name components.

  Returns:
      The new node.
  """
  if not parts or node is ANY:
    return ANY
  entries = dict(node.entries) if isinstance(node, Namespace) else {}
  entries[parts[0]] = bind_path(entries.get(parts[0]), parts[1:])
  return Namespace(entries)


def written_bindings(names: Iterable[str], base: Optional[Namespace] = None) -> Dict[str, WhitelistValue]:
  """
  Builds top-level bindings for the names a unit assigns.

  A bare name binds as `ANY`. A qualified name such as ``string.trim`` only
  permits its own path: the root keeps the members it has in `base` and gains
  the written one.

  Args:
      names: Qualified names written by the unit.
      base: Whitelist the roots are looked up in (None for a fresh environment).

  Returns:
      Mapping of root name to its new node.
  """
  bindings: Dict[str, WhitelistValue] = {}
  for name in sorted(names):
    root, _, rest = name.partition(".")
    current = bindings.get(root)
    if current is None and base is not None:
      current = base.get(root)
    bindings[root] = bind_path(current, rest.split(".") if rest else ())
  return bindings
