# Copyright (c) 2025 Voxgig Ltd. MIT LICENSE.
#
# Immutable Model Struct
# ======================
#
# Immutable containers for in-memory JSON-like value trees, and the
# utilities to move plain data in and out of them. Containers are
# never changed in place: every update returns a new container that
# shares its unchanged children with the original.
#
# Containers
# - FrozenMap: immutable mapping, keys kept in insertion order.
# - FrozenList: immutable indexed sequence.
# - OrderedFrozenSet: immutable set, elements kept in first-seen order.
# - frozenset: the builtin, used as the unordered set.
#
# Main utilities
# - coerce: convert a plain value to a container, one level deep.
# - freeze: convert a plain value to containers, all the way down.
# - toplain: convert containers back to plain dicts and lists.
# - getin, setin, updatein: read and update a value deep inside a tree.
#
# Minor utilities
# - ismap, islist, isset, isnode: identify container kinds.
# - iskey, parsepath, ispath: key paths.
# - pathify: human-friendly string version of a path.
# - isref, ismeta: identify reference instances and metadata keys.


from collections.abc import Mapping, Sequence, Set
from typing import Any, Callable, Iterable, List


# The standard undefined value for this language.
UNDEF = None

# Metadata keys carried by model instances.
S_CID = '__cid'
S_TYPENAME = '__typename'

# Type name of reference instances.
S_REFERENCE = '__reference'

# General strings.
S_MT = ''
S_DT = '.'
S_CN = ':'

META_KEYS = (S_CID, S_TYPENAME)


class FrozenMap(Mapping):
    """
    Immutable mapping with keys in insertion order. Use `set`,
    `remove` and `update` to derive new maps.
    """

    __slots__ = ('_data', '_hashval')

    def __init__(self, data: Any = UNDEF) -> None:
        self._data = {} if data is UNDEF else dict(data)
        self._hashval = UNDEF

    @classmethod
    def _wrap(cls, data: dict) -> 'FrozenMap':
        # Takes ownership of data, which must not be used by the caller again.
        fmap = cls.__new__(cls)
        fmap._data = data
        fmap._hashval = UNDEF
        return fmap

    def __getitem__(self, key: Any) -> Any:
        return self._data[key]

    def __iter__(self):
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: Any) -> bool:
        return key in self._data

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, FrozenMap):
            return self._data == other._data
        if isinstance(other, Mapping):
            return self._data == dict(other.items())
        return NotImplemented

    def __hash__(self) -> int:
        if self._hashval is UNDEF:
            self._hashval = hash(frozenset(self._data.items()))
        return self._hashval

    def __repr__(self) -> str:
        return 'FrozenMap(' + repr(self._data) + ')'

    def set(self, key: Any, val: Any) -> 'FrozenMap':
        "New map with key set to val."
        if key in self._data and self._data[key] is val:
            return self
        data = dict(self._data)
        data[key] = val
        return FrozenMap._wrap(data)

    def remove(self, key: Any) -> 'FrozenMap':
        "New map without key."
        if key not in self._data:
            return self
        data = dict(self._data)
        del data[key]
        return FrozenMap._wrap(data)

    def update(self, *others: Any) -> 'FrozenMap':
        """
        New map with the entries of each of the other mappings laid over
        this one. Later mappings have precedence. This is a shallow merge.
        """
        others = [other for other in others if other]
        if 0 == len(others):
            return self
        data = dict(self._data)
        for other in others:
            data.update(other.items() if isinstance(other, Mapping) else other)
        return FrozenMap._wrap(data)

    def getin(self, path: Any, alt: Any = UNDEF) -> Any:
        return getin(self, path, alt)

    def setin(self, path: Any, val: Any) -> Any:
        return setin(self, path, val)

    def updatein(self, path: Any, updater: Callable[[Any], Any]) -> Any:
        return updatein(self, path, updater)


class FrozenList(Sequence):
    "Immutable indexed sequence. Compares equal to lists and tuples with the same items."

    __slots__ = ('_items',)

    def __init__(self, items: Iterable = UNDEF) -> None:
        self._items = () if items is UNDEF else tuple(items)

    def __getitem__(self, index: Any) -> Any:
        if isinstance(index, slice):
            return FrozenList(self._items[index])
        return self._items[index]

    def __iter__(self):
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, FrozenList):
            return self._items == other._items
        if isinstance(other, (list, tuple)):
            return self._items == tuple(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._items)

    def __repr__(self) -> str:
        return 'FrozenList(' + repr(list(self._items)) + ')'

    def set(self, index: int, val: Any) -> 'FrozenList':
        """
        New list with the element at index replaced. An index past the
        end appends, a negative index counts from the end.
        """
        size = len(self._items)
        if index < 0:
            index = size + index
            if index < 0:
                return FrozenList((val,) + self._items)
        if size <= index:
            return FrozenList(self._items + (val,))
        if self._items[index] is val:
            return self
        return FrozenList(self._items[:index] + (val,) + self._items[index + 1:])

    def push(self, val: Any) -> 'FrozenList':
        "New list with val appended."
        return FrozenList(self._items + (val,))


class OrderedFrozenSet(Set):
    """
    Immutable set that iterates in first-seen order. Equality ignores
    order, as for other sets.
    """

    __slots__ = ('_items', '_hashval')

    def __init__(self, items: Iterable = UNDEF) -> None:
        self._items = dict.fromkeys(() if items is UNDEF else items)
        self._hashval = UNDEF

    def __contains__(self, val: Any) -> bool:
        return val in self._items

    def __iter__(self):
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __hash__(self) -> int:
        if self._hashval is UNDEF:
            self._hashval = Set._hash(self)
        return self._hashval

    def __repr__(self) -> str:
        return 'OrderedFrozenSet(' + repr(list(self._items)) + ')'

    def add(self, val: Any) -> 'OrderedFrozenSet':
        "New set with val added at the end, unless already present."
        if val in self._items:
            return self
        return OrderedFrozenSet(list(self._items) + [val])


# Values of these types are already immutable value tree nodes.
CONTAINERS = (FrozenMap, FrozenList, frozenset, OrderedFrozenSet)


def ismap(val: Any = UNDEF) -> bool:
    "Value is an immutable map."
    return isinstance(val, FrozenMap)


def islist(val: Any = UNDEF) -> bool:
    "Value is an immutable list."
    return isinstance(val, FrozenList)


def isset(val: Any = UNDEF) -> bool:
    "Value is an immutable set, ordered or not."
    return isinstance(val, (frozenset, OrderedFrozenSet))


def isnode(val: Any = UNDEF) -> bool:
    "Value is an immutable container."
    return isinstance(val, CONTAINERS)


def iskey(key: Any = UNDEF) -> bool:
    "Value is a defined string (non-empty) or integer key."
    if isinstance(key, str):
        return 0 < len(key)
    # Exclude bool (which is a subclass of int)
    if isinstance(key, bool):
        return False
    return isinstance(key, int)


def ismeta(key: Any = UNDEF) -> bool:
    "Key is one of the instance metadata keys."
    return key in META_KEYS


def isref(val: Any = UNDEF) -> bool:
    "Value is a reference instance. Detected by shape alone."
    return ismap(val) and S_REFERENCE == val.get(S_TYPENAME)


def coerce(raw: Any = UNDEF) -> Any:
    """
    Convert a plain value to an immutable container, one level deep.
    Containers are returned as is. Children are left alone, so that
    they can be converted when (and if) they are visited.
    """
    if isinstance(raw, CONTAINERS):
        return raw
    if isinstance(raw, Mapping):
        return FrozenMap(raw)
    if isinstance(raw, (list, tuple)):
        return FrozenList(raw)
    if isinstance(raw, set):
        return frozenset(raw)
    return raw


def freeze(raw: Any = UNDEF) -> Any:
    "Convert a plain value to immutable containers, all the way down."
    if isinstance(raw, CONTAINERS):
        return raw
    if isinstance(raw, Mapping):
        return FrozenMap._wrap({key: freeze(val) for key, val in raw.items()})
    if isinstance(raw, (list, tuple)):
        return FrozenList(freeze(val) for val in raw)
    if isinstance(raw, set):
        return frozenset(freeze(val) for val in raw)
    return raw


def toplain(val: Any = UNDEF, omitmeta: bool = False) -> Any:
    """
    Convert containers back to plain dicts and lists. Sets become lists.
    If omitmeta is true, instance metadata keys are dropped.
    """
    if isinstance(val, Mapping):
        return {
            key: toplain(child, omitmeta)
            for key, child in val.items()
            if not (omitmeta and ismeta(key))
        }
    if isinstance(val, (FrozenList, list, tuple, Set)):
        return [toplain(child, omitmeta) for child in val]
    return val


def parsepath(path: Any = UNDEF) -> Any:
    """
    Parse a key path. Accepts a dot separated string, a single integer
    key, or a sequence of keys. Returns a FrozenList, or UNDEF if path
    cannot be a key path.
    """
    if islist(path):
        return path
    if isinstance(path, (list, tuple)):
        return FrozenList(path)
    if isinstance(path, str):
        return FrozenList() if S_MT == path else FrozenList(path.split(S_DT))
    if iskey(path):
        return FrozenList((path,))
    return UNDEF


def ispath(val: Any = UNDEF) -> bool:
    "Value is a parsed key path."
    return islist(val) and all(iskey(key) for key in val)


def getin(tree: Any, path: Any, alt: Any = UNDEF) -> Any:
    """
    Get the value at a key path inside a tree. If any part of the path
    is missing, return the alternative value.
    """
    path = parsepath(path)
    if path is UNDEF:
        return alt

    node = tree
    for key in path:
        if isinstance(node, Mapping):
            if key not in node:
                return alt
            node = node[key]
        elif isinstance(node, (FrozenList, list, tuple)):
            index = _index(key)
            if UNDEF == index or not (-len(node) <= index < len(node)):
                return alt
            node = node[index]
        else:
            return alt

    return node


def setin(tree: Any, path: Any, val: Any) -> Any:
    "New tree with the value at a key path replaced by val."
    return updatein(tree, path, lambda _current: val)


def updatein(tree: Any, path: Any, updater: Callable[[Any], Any]) -> Any:
    """
    New tree with the value at a key path replaced by updater(value).
    Only the nodes on the path are copied; missing intermediate nodes
    are created as maps. A path that is not a key path leaves the tree
    unchanged.
    """
    path = parsepath(path)
    if not ispath(path):
        return tree
    return _updatein(freeze(tree), path, 0, updater)


def pathify(val: Any = UNDEF, startin: int = 0) -> str:
    "Human-friendly string version of a key path."
    path = list(val) if isinstance(val, (FrozenList, list, tuple)) else \
        [val] if iskey(val) else \
        UNDEF

    if path is UNDEF:
        return '<unknown-path' + (S_MT if val is UNDEF else S_CN + str(val)) + '>'

    path = path[max(0, startin):]
    if 0 == len(path):
        return '<root>'

    return S_DT.join(str(part).replace(S_DT, S_MT) for part in path if iskey(part))


# Internal utilities
# ==================

def _index(key: Any) -> Any:
    if isinstance(key, bool):
        return UNDEF
    if isinstance(key, int):
        return key
    if isinstance(key, str) and key.lstrip('-').isdigit():
        return int(key)
    return UNDEF


def _updatein(node: Any, path: List[Any], pI: int, updater: Callable[[Any], Any]) -> Any:
    if len(path) == pI:
        return updater(node)

    key = path[pI]
    node = coerce(node)

    if islist(node):
        index = _index(key)
        if UNDEF != index:
            child = node[index] if -len(node) <= index < len(node) else UNDEF
            return node.set(index, _updatein(child, path, pI + 1, updater))

    if not ismap(node):
        node = FrozenMap()

    return node.set(key, _updatein(node.get(key), path, pI + 1, updater))


__all__ = [
    'CONTAINERS',
    'FrozenList',
    'FrozenMap',
    'META_KEYS',
    'OrderedFrozenSet',
    'S_CID',
    'S_REFERENCE',
    'S_TYPENAME',
    'UNDEF',
    'coerce',
    'freeze',
    'getin',
    'ismap',
    'islist',
    'isset',
    'isnode',
    'iskey',
    'ismeta',
    'ispath',
    'isref',
    'parsepath',
    'pathify',
    'setin',
    'toplain',
    'updatein',
]
